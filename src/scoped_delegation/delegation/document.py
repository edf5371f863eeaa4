"""Delegation documents — the JSON file format used to hand delegations between parties.

A document is the delegation's :meth:`~Delegation.to_dict` form plus two
advisory sections that are neither hashed nor signed:

``_meta``
    ``createdAt``, ``delegationHash``, ``parentHash`` (sub-delegations only),
    ``chain``, ``chainId`` and ``delegationManager``.
``_chain``
    ``{"parent": <parent document>}`` for sub-delegations, so the delegate
    can present the whole chain at redemption. Parent documents nest their
    own ``_chain`` recursively up to the root.
"""
from __future__ import annotations

import datetime
import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from web3 import Web3

from scoped_delegation.config import NetworkConfig
from scoped_delegation.delegation.chain import ChainAssembler, DelegationChain
from scoped_delegation.delegation.hashing import delegation_hash, delegation_hash_hex
from scoped_delegation.delegation.model import Delegation

logger = logging.getLogger(__name__)

Document = dict[str, Any]


def to_document(
    delegation: Delegation,
    config: NetworkConfig,
    parent_document: Optional[Document] = None,
    created_at: Optional[datetime.datetime] = None,
) -> Document:
    """Serialize *delegation* with its ``_meta`` and, optionally, its parent chain."""
    created = created_at or datetime.datetime.now(datetime.timezone.utc)
    meta: dict[str, object] = {
        "createdAt": created.isoformat(),
        "delegationHash": delegation_hash_hex(delegation),
        "chain": config.chain_name,
        "chainId": config.chain_id,
        "delegationManager": config.delegation_manager,
    }
    if not delegation.is_root:
        meta["parentHash"] = Web3.to_hex(delegation.authority)

    document: Document = dict(delegation.to_dict())
    document["_meta"] = meta
    if parent_document is not None:
        document["_chain"] = {"parent": parent_document}
    return document


def from_document(document: Document) -> Delegation:
    """Reconstruct the delegation in *document*, ignoring advisory sections."""
    return Delegation.from_dict(document)


def meta_hash_matches(document: Document) -> bool:
    """Return True if ``_meta.delegationHash`` equals the recomputed hash.

    Documents without a recorded hash are reported as not matching.
    """
    recorded = (document.get("_meta") or {}).get("delegationHash")
    if not recorded:
        return False
    return Web3.to_bytes(hexstr=str(recorded)) == delegation_hash(from_document(document))


def ancestors_from_document(document: Document) -> list[Delegation]:
    """Return the ancestors embedded in *document*, immediate parent first."""
    ancestors: list[Delegation] = []
    current = (document.get("_chain") or {}).get("parent")
    while current:
        ancestors.append(from_document(current))
        current = (current.get("_chain") or {}).get("parent")
    return ancestors


def chain_from_document(
    document: Document, assembler: Optional[ChainAssembler] = None
) -> DelegationChain:
    """Assemble and verify the leaf-to-root chain recorded in *document*.

    Raises
    ------
    ChainIntegrityError
        If the embedded ancestors do not link up to a root.
    """
    assembler = assembler or ChainAssembler()
    return assembler.assemble(from_document(document), ancestors_from_document(document))


def load_document(path: Union[str, Path]) -> Document:
    """Read a delegation document from *path*.

    A ``_meta.delegationHash`` that disagrees with the recomputed hash is
    logged as a warning; ``_meta`` is advisory and never trusted.
    """
    document: Document = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(document, dict):
        raise ValueError(f"{path} does not contain a delegation object")
    if "_meta" in document and not meta_hash_matches(document):
        logger.warning(
            "Recorded delegationHash in %s does not match the recomputed hash %s",
            path,
            delegation_hash_hex(from_document(document)),
        )
    return document


def save_document(document: Document, path: Union[str, Path]) -> None:
    """Write *document* to *path* as indented JSON."""
    Path(path).write_text(json.dumps(document, indent=2), encoding="utf-8")
