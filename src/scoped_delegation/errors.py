"""Exception taxonomy for scoped-delegation.

Validators report invalid scopes and transfers as return values
(:class:`~scoped_delegation.validation.results.ValidationResult`). The
exceptions below cover structurally impossible input, identity checks and
failures of external collaborators, plus the two violation errors raised
when a caller explicitly asks for a result to be enforced.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from scoped_delegation.validation.results import Violation


class DelegationError(Exception):
    """Base class for all scoped-delegation errors."""


class DecodeError(DelegationError):
    """Raised when caveat terms have the wrong length or an unparseable value."""


class ChainIntegrityError(DelegationError):
    """Raised when a delegation's authority does not match its parent's hash."""


class _ViolationError(DelegationError):
    """Shared base for errors that carry a list of violations."""

    label = "Validation"

    def __init__(self, violations: Sequence["Violation"]) -> None:
        self.violations = list(violations)
        details = "; ".join(v.message for v in self.violations)
        super().__init__(f"{self.label} failed with {len(self.violations)} violation(s): {details}")


class ScopeViolationError(_ViolationError):
    """Raised when a sub-delegation request exceeds its parent's scope."""

    label = "Scope narrowing"


class CaveatViolationError(_ViolationError):
    """Raised when a proposed transfer fails one or more caveats."""

    label = "Caveat enforcement"


class IdentityMismatch(DelegationError):
    """Raised when the acting identity is not the one the operation requires.

    Parameters
    ----------
    role:
        The delegation field the actor was checked against
        (``"delegator"`` or ``"delegate"``).
    expected:
        The address recorded in the delegation.
    actual:
        The address of the caller attempting the operation.
    """

    def __init__(self, role: str, expected: str, actual: str) -> None:
        self.role = role
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Caller {actual} is not the {role} of this delegation (expected {expected})."
        )


class ExternalFailure(DelegationError):
    """Raised when a signer or ledger client fails.

    The external system's message is preserved verbatim in ``message``.
    """

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")
