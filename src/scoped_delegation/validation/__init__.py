"""Scope and transfer validation.

Both validators return a :class:`ValidationResult` listing every violation
found; invalid input is a normal outcome, not an exception.
"""
from __future__ import annotations

from scoped_delegation.validation.results import ValidationResult, Violation, ViolationKind
from scoped_delegation.validation.scope import ScopeRequest, ScopeValidator
from scoped_delegation.validation.transfer import ProposedTransfer, TransferValidator

__all__ = [
    "ProposedTransfer",
    "ScopeRequest",
    "ScopeValidator",
    "TransferValidator",
    "ValidationResult",
    "Violation",
    "ViolationKind",
]
