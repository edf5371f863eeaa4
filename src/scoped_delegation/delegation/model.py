"""Delegation — a signed grant of authority from a delegator to a delegate."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Iterable, Optional

from web3 import Web3

from scoped_delegation.caveats.caveat import Caveat
from scoped_delegation.caveats.kinds import CaveatKind
from scoped_delegation.caveats.terms import Terms

if TYPE_CHECKING:
    from scoped_delegation.config import EnforcerRegistry

ROOT_AUTHORITY: bytes = b"\x00" * 32


def _address(value: str, field_name: str) -> str:
    if not Web3.is_address(value):
        raise ValueError(f"{field_name} {value!r} is not a valid address")
    return Web3.to_checksum_address(value)


@dataclass(frozen=True)
class Delegation:
    """A delegation record.

    Instances are immutable. Signing produces a new record via
    :meth:`with_signature`; every other field participates in the
    delegation hash, so any change to them yields a different delegation.

    Parameters
    ----------
    delegate:
        Address receiving the authority.
    delegator:
        Address granting the authority and signing the record.
    authority:
        :data:`ROOT_AUTHORITY` for a root delegation, otherwise the 32-byte
        hash of the parent delegation.
    caveats:
        Ordered constraints. Order is part of the hash.
    salt:
        Nonce distinguishing otherwise-identical delegations.
    signature:
        Delegator's signature over the signing digest. Empty until signed.
    """

    delegate: str
    delegator: str
    authority: bytes = ROOT_AUTHORITY
    caveats: tuple[Caveat, ...] = field(default_factory=tuple)
    salt: int = 0
    signature: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "delegate", _address(self.delegate, "delegate"))
        object.__setattr__(self, "delegator", _address(self.delegator, "delegator"))
        authority = bytes(self.authority)
        if len(authority) != 32:
            raise ValueError(f"authority must be 32 bytes, got {len(authority)}")
        object.__setattr__(self, "authority", authority)
        object.__setattr__(self, "caveats", tuple(self.caveats))
        if isinstance(self.salt, bool) or not isinstance(self.salt, int) or self.salt < 0:
            raise ValueError(f"salt must be a non-negative int, got {self.salt!r}")
        object.__setattr__(self, "signature", bytes(self.signature))

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_root(self) -> bool:
        """True when this delegation draws on the delegator's own holdings."""
        return self.authority == ROOT_AUTHORITY

    @property
    def is_signed(self) -> bool:
        return len(self.signature) > 0

    # ------------------------------------------------------------------
    # Caveat access
    # ------------------------------------------------------------------

    def find_caveat(self, kind: CaveatKind, registry: EnforcerRegistry) -> Optional[Caveat]:
        """Return the first caveat of *kind*, or None."""
        for caveat in self.caveats:
            if caveat.kind(registry) == kind:
                return caveat
        return None

    def decoded_terms(self, kind: CaveatKind, registry: EnforcerRegistry) -> Optional[Terms]:
        """Decode the first caveat of *kind*; None if the delegation has none."""
        caveat = self.find_caveat(kind, registry)
        return None if caveat is None else caveat.decode(registry)

    def opaque_caveats(self, registry: EnforcerRegistry) -> list[Caveat]:
        """Return caveats whose enforcer this client cannot decode."""
        return [c for c in self.caveats if c.kind(registry) is None]

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def with_signature(self, signature: bytes) -> "Delegation":
        """Return a copy of this delegation carrying *signature*."""
        return replace(self, signature=bytes(signature))

    def with_caveats(self, caveats: Iterable[Caveat]) -> "Delegation":
        """Return an unsigned copy with *caveats* replacing the current list."""
        return replace(self, caveats=tuple(caveats), signature=b"")

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, object]:
        """Serialize to the file representation (salt as a decimal string)."""
        return {
            "delegate": self.delegate,
            "delegator": self.delegator,
            "authority": Web3.to_hex(self.authority),
            "caveats": [c.to_dict() for c in self.caveats],
            "salt": str(self.salt),
            "signature": Web3.to_hex(self.signature),
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "Delegation":
        """Reconstruct a delegation from :meth:`to_dict` output.

        ``salt`` is restored to an int so hashing sees the numeric value.
        """
        caveats_raw = data.get("caveats") or []
        if not isinstance(caveats_raw, list):
            raise ValueError("caveats must be a list")
        return cls(
            delegate=str(data["delegate"]),
            delegator=str(data["delegator"]),
            authority=Web3.to_bytes(hexstr=str(data["authority"])),
            caveats=tuple(Caveat.from_dict(c) for c in caveats_raw),
            salt=int(str(data["salt"])),
            signature=Web3.to_bytes(hexstr=str(data.get("signature") or "0x")),
        )
