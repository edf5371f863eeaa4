"""Delegation hashing — canonical structural hashes and the EIP-712 signing digest.

The hash of a delegation is both the identifier children use as their
``authority`` and the EIP-712 ``hashStruct`` the delegator signs, over the
typed data

    Delegation(address delegate,address delegator,bytes32 authority,Caveat[] caveats,uint256 salt)
    Caveat(address enforcer,bytes terms)

so it matches ``eth_account.messages.encode_typed_data`` for the same message:

* ``hash_caveat  = keccak(abi.encode(CAVEAT_TYPEHASH, enforcer, keccak(terms)))``
* ``hash_caveats = keccak(hash_caveat(c0) ‖ hash_caveat(c1) ‖ ...)``
* ``delegation_hash = keccak(abi.encode(DELEGATION_TYPEHASH, delegate, delegator,
  authority, hash_caveats, salt))``

Caveat ``args`` and the delegation ``signature`` are never hashed.
"""
from __future__ import annotations

from typing import Sequence

from eth_abi import encode
from web3 import Web3

from scoped_delegation.caveats.caveat import Caveat
from scoped_delegation.config import NetworkConfig
from scoped_delegation.delegation.model import Delegation

CAVEAT_TYPE = "Caveat(address enforcer,bytes terms)"

CAVEAT_TYPEHASH: bytes = bytes(Web3.keccak(text=CAVEAT_TYPE))

DELEGATION_TYPE = (
    "Delegation(address delegate,address delegator,bytes32 authority,"
    "Caveat[] caveats,uint256 salt)"
)

# Referenced struct types are appended to the primary type, per EIP-712 encodeType.
DELEGATION_TYPEHASH: bytes = bytes(Web3.keccak(text=DELEGATION_TYPE + CAVEAT_TYPE))

EIP712_DOMAIN_TYPEHASH: bytes = bytes(
    Web3.keccak(
        text="EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
    )
)


def hash_caveat(caveat: Caveat) -> bytes:
    """Return the struct hash of a single caveat (``args`` excluded)."""
    return bytes(
        Web3.keccak(
            encode(
                ["bytes32", "address", "bytes32"],
                [CAVEAT_TYPEHASH, caveat.enforcer, bytes(Web3.keccak(caveat.terms))],
            )
        )
    )


def hash_caveats(caveats: Sequence[Caveat]) -> bytes:
    """Return the hash of an ordered caveat list."""
    return bytes(Web3.keccak(b"".join(hash_caveat(c) for c in caveats)))


def delegation_hash(delegation: Delegation) -> bytes:
    """Return the canonical 32-byte hash of *delegation*.

    The result is identical whether or not the delegation is signed.
    """
    return bytes(
        Web3.keccak(
            encode(
                ["bytes32", "address", "address", "bytes32", "bytes32", "uint256"],
                [
                    DELEGATION_TYPEHASH,
                    delegation.delegate,
                    delegation.delegator,
                    delegation.authority,
                    hash_caveats(delegation.caveats),
                    delegation.salt,
                ],
            )
        )
    )


def delegation_hash_hex(delegation: Delegation) -> str:
    """Return :func:`delegation_hash` as a 0x-prefixed hex string."""
    return Web3.to_hex(delegation_hash(delegation))


def domain_separator(config: NetworkConfig) -> bytes:
    """Return the EIP-712 domain separator of the configured DelegationManager."""
    return bytes(
        Web3.keccak(
            encode(
                ["bytes32", "bytes32", "bytes32", "uint256", "address"],
                [
                    EIP712_DOMAIN_TYPEHASH,
                    bytes(Web3.keccak(text=config.domain_name)),
                    bytes(Web3.keccak(text=config.domain_version)),
                    config.chain_id,
                    config.delegation_manager,
                ],
            )
        )
    )


def signing_digest(delegation: Delegation, config: NetworkConfig) -> bytes:
    """Return the EIP-712 digest the delegator signs."""
    return bytes(
        Web3.keccak(b"\x19\x01" + domain_separator(config) + delegation_hash(delegation))
    )
