"""Signers — produce delegator signatures over the EIP-712 signing digest.

The digest is ``keccak(0x1901 ‖ domainSeparator ‖ delegationHash)``, so a
signature is only valid for one delegation on one DelegationManager
deployment. Signing must happen after all caveats are final; a signed
delegation is never mutated, only replaced.
"""
from __future__ import annotations

import abc
import logging

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError
from web3 import Web3

from scoped_delegation.config import NetworkConfig
from scoped_delegation.delegation.hashing import delegation_hash_hex, signing_digest
from scoped_delegation.delegation.model import Delegation
from scoped_delegation.errors import IdentityMismatch

logger = logging.getLogger(__name__)

SIGNATURE_BYTES = 65


class Signer(abc.ABC):
    """Something that can sign delegations for one address."""

    @property
    @abc.abstractmethod
    def address(self) -> str:
        """Checksummed address whose signatures this signer produces."""

    @abc.abstractmethod
    def sign_digest(self, digest: bytes) -> bytes:
        """Return a 65-byte ``r ‖ s ‖ v`` signature over *digest*."""

    def sign_delegation(self, delegation: Delegation, config: NetworkConfig) -> Delegation:
        """Return a signed copy of *delegation*.

        Raises
        ------
        IdentityMismatch
            If this signer is not the delegation's delegator.
        """
        if delegation.delegator != self.address:
            raise IdentityMismatch("delegator", delegation.delegator, self.address)
        signature = self.sign_digest(signing_digest(delegation, config))
        logger.info("Signed delegation %s as %s", delegation_hash_hex(delegation), self.address)
        return delegation.with_signature(signature)


class LocalAccountSigner(Signer):
    """Signer backed by an in-process ``eth_account`` private key.

    Parameters
    ----------
    account:
        The local account holding the private key.
    """

    def __init__(self, account: LocalAccount) -> None:
        self._account = account

    @classmethod
    def from_key(cls, private_key: str) -> "LocalAccountSigner":
        """Create a signer from a hex-encoded private key."""
        return cls(Account.from_key(private_key))

    @property
    def account(self) -> LocalAccount:
        return self._account

    @property
    def address(self) -> str:
        return Web3.to_checksum_address(self._account.address)

    def sign_digest(self, digest: bytes) -> bytes:
        signed = self._account.unsafe_sign_hash(digest)
        return bytes(signed.signature)


def recover_signer(delegation: Delegation, config: NetworkConfig) -> str:
    """Recover the address that produced ``delegation.signature``.

    Raises
    ------
    ValueError
        If the delegation is unsigned or the signature is malformed.
    """
    signature = delegation.signature
    if len(signature) != SIGNATURE_BYTES:
        raise ValueError(
            f"Signature must be {SIGNATURE_BYTES} bytes, got {len(signature)}"
        )
    v = signature[64]
    if v >= 27:
        v -= 27
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:64], "big")
    try:
        public_key = keys.Signature(vrs=(v, r, s)).recover_public_key_from_msg_hash(
            signing_digest(delegation, config)
        )
    except (BadSignature, ValidationError) as exc:
        raise ValueError(f"Malformed signature: {exc}") from exc
    return public_key.to_checksum_address()


def verify_signature(delegation: Delegation, config: NetworkConfig) -> bool:
    """Return True if the delegation is signed by its delegator."""
    try:
        return recover_signer(delegation, config) == delegation.delegator
    except ValueError:
        return False
