"""Validation results — violations are values, not exceptions."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ViolationKind(str, Enum):
    """Dimension of scope or caveat that a request violated."""

    AMOUNT = "amount"
    EXPIRY = "expiry"
    NOT_YET_VALID = "not_yet_valid"
    EXPIRED = "expired"
    TOKEN_MISMATCH = "token_mismatch"
    RECIPIENT = "recipient"
    METHOD = "method"
    CALL_LIMIT = "call_limit"


@dataclass(frozen=True)
class Violation:
    """A single failed check.

    Parameters
    ----------
    kind:
        Which dimension failed.
    message:
        Human-readable description suitable for printing.
    link:
        Position of the offending delegation in a chain (0 = leaf), or None
        when a single delegation was checked.
    """

    kind: ViolationKind
    message: str
    link: Optional[int] = None


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a scope or transfer check, listing every violation found."""

    violations: tuple[Violation, ...] = field(default_factory=tuple)

    @property
    def valid(self) -> bool:
        return not self.violations

    @property
    def messages(self) -> list[str]:
        return [v.message for v in self.violations]

    def kinds(self) -> list[ViolationKind]:
        return [v.kind for v in self.violations]

    def __bool__(self) -> bool:
        return self.valid
