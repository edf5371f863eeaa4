"""Caveat — a single constraint attached to a delegation."""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from web3 import Web3

from scoped_delegation.caveats.kinds import CaveatKind
from scoped_delegation.caveats.terms import Terms, decode_terms

if TYPE_CHECKING:
    from scoped_delegation.config import EnforcerRegistry


@dataclass(frozen=True)
class Caveat:
    """One constraint, identified by the enforcer contract that applies it.

    Generic code treats ``terms`` as opaque bytes; only code that resolves
    the enforcer to a :class:`CaveatKind` through an
    :class:`~scoped_delegation.config.EnforcerRegistry` decodes them.

    Parameters
    ----------
    enforcer:
        Address of the enforcer contract.
    terms:
        Signed, kind-specific terms.
    args:
        Runtime arguments supplied at redemption. Not hashed, not signed,
        and ignored by validation; must not carry security-relevant data.
    """

    enforcer: str
    terms: bytes
    args: bytes = b""

    def __post_init__(self) -> None:
        if not Web3.is_address(self.enforcer):
            raise ValueError(f"Caveat enforcer {self.enforcer!r} is not a valid address")
        object.__setattr__(self, "enforcer", Web3.to_checksum_address(self.enforcer))
        object.__setattr__(self, "terms", bytes(self.terms))
        object.__setattr__(self, "args", bytes(self.args))

    @classmethod
    def from_terms(
        cls, terms: Terms, registry: EnforcerRegistry, args: bytes = b""
    ) -> "Caveat":
        """Build a caveat for a known kind from its decoded terms."""
        return cls(enforcer=registry.address_of(terms.KIND), terms=terms.encode(), args=args)

    def kind(self, registry: EnforcerRegistry) -> Optional[CaveatKind]:
        """Return the known kind of this caveat, or None if its enforcer is opaque."""
        return registry.kind_of(self.enforcer)

    def decode(self, registry: EnforcerRegistry) -> Optional[Terms]:
        """Decode the terms of a known kind; None for opaque caveats.

        Raises
        ------
        DecodeError
            If the terms do not match the fixed layout of the kind.
        """
        kind = self.kind(registry)
        if kind is None:
            return None
        return decode_terms(kind, self.terms)

    def to_dict(self) -> dict[str, str]:
        """Serialize to the hex-encoded form used in delegation files."""
        return {
            "enforcer": self.enforcer,
            "terms": Web3.to_hex(self.terms),
            "args": Web3.to_hex(self.args),
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "Caveat":
        """Reconstruct a caveat from :meth:`to_dict` output."""
        return cls(
            enforcer=str(data["enforcer"]),
            terms=Web3.to_bytes(hexstr=str(data.get("terms") or "0x")),
            args=Web3.to_bytes(hexstr=str(data.get("args") or "0x")),
        )
