"""LedgerClient — the boundary to the chain hosting the DelegationManager."""
from __future__ import annotations

import abc
from dataclasses import dataclass

from scoped_delegation.delegation.model import Delegation
from scoped_delegation.ledger.encoding import RedemptionCall


@dataclass(frozen=True)
class SimulationResult:
    """Outcome of a dry-run execution that commits no state."""

    success: bool
    reason: str = ""


@dataclass(frozen=True)
class TransactionReceipt:
    """Identifier and final status of a submitted transaction."""

    transaction_hash: str
    success: bool
    block_number: int = 0
    gas_used: int = 0


class LedgerClient(abc.ABC):
    """Submits, simulates and queries delegation operations.

    Implementations raise :class:`~scoped_delegation.errors.ExternalFailure`
    when the underlying system fails; they do not retry.
    """

    @abc.abstractmethod
    def simulate(self, call: RedemptionCall, sender: str) -> SimulationResult:
        """Execute *call* as *sender* without committing state."""

    @abc.abstractmethod
    def submit(self, call: RedemptionCall, sender: str) -> TransactionReceipt:
        """Submit *call* from *sender* and wait for its receipt."""

    @abc.abstractmethod
    def is_revoked(self, delegation_hash: bytes) -> bool:
        """Return True if the delegation with *delegation_hash* is disabled."""

    @abc.abstractmethod
    def disable(self, delegation: Delegation, sender: str) -> TransactionReceipt:
        """Disable (revoke) *delegation*; *sender* must be its delegator."""
