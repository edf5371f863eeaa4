"""Delegation records, hashing, building and chain assembly.

Quick start
-----------
::

    from scoped_delegation.config import NetworkConfig
    from scoped_delegation.delegation import (
        ChainAssembler,
        DelegationBuilder,
        delegation_hash,
    )

    config = NetworkConfig()
    builder = DelegationBuilder(config)

    root = builder.build(delegator=alice, delegate=bob, amount=1000, expiry_seconds=86400)
    child = builder.build(
        delegator=bob,
        delegate=carol,
        authority=delegation_hash(root),
        amount=300,
        expiry_seconds=43200,
    )

    chain = ChainAssembler().assemble(child, [root])
"""
from __future__ import annotations

from scoped_delegation.delegation.builder import DelegationBuilder, SaltSource
from scoped_delegation.delegation.chain import ChainAssembler, DelegationChain
from scoped_delegation.delegation.document import (
    ancestors_from_document,
    chain_from_document,
    from_document,
    load_document,
    meta_hash_matches,
    save_document,
    to_document,
)
from scoped_delegation.delegation.hashing import (
    CAVEAT_TYPEHASH,
    DELEGATION_TYPEHASH,
    delegation_hash,
    delegation_hash_hex,
    domain_separator,
    hash_caveat,
    hash_caveats,
    signing_digest,
)
from scoped_delegation.delegation.model import ROOT_AUTHORITY, Delegation

__all__ = [
    "CAVEAT_TYPEHASH",
    "ChainAssembler",
    "DELEGATION_TYPEHASH",
    "Delegation",
    "DelegationBuilder",
    "DelegationChain",
    "ROOT_AUTHORITY",
    "SaltSource",
    "ancestors_from_document",
    "chain_from_document",
    "delegation_hash",
    "delegation_hash_hex",
    "domain_separator",
    "from_document",
    "hash_caveat",
    "hash_caveats",
    "load_document",
    "meta_hash_matches",
    "save_document",
    "signing_digest",
    "to_document",
]
