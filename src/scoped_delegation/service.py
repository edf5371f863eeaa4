"""DelegationService — end-to-end delegation workflows for one acting identity.

Ties the builder, validators, signer and ledger together the way the CLI
uses them: create and sign a root delegation, narrow it into a signed
sub-delegation, validate and redeem a transfer, and revoke. Every workflow
first checks that the acting identity holds the role the operation needs.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from web3 import Web3

from scoped_delegation.config import NetworkConfig
from scoped_delegation.delegation.builder import DelegationBuilder
from scoped_delegation.delegation.chain import DelegationChain
from scoped_delegation.delegation.hashing import delegation_hash, delegation_hash_hex
from scoped_delegation.delegation.model import Delegation
from scoped_delegation.errors import (
    CaveatViolationError,
    ExternalFailure,
    IdentityMismatch,
    ScopeViolationError,
)
from scoped_delegation.ledger.base import LedgerClient, SimulationResult, TransactionReceipt
from scoped_delegation.ledger.encoding import RedemptionCall
from scoped_delegation.signing.signer import Signer
from scoped_delegation.units import AmountLike, parse_units
from scoped_delegation.validation.results import ValidationResult
from scoped_delegation.validation.scope import ScopeRequest, ScopeValidator
from scoped_delegation.validation.transfer import ProposedTransfer, TransferValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferOutcome:
    """What happened to a requested transfer.

    ``simulation`` and ``receipt`` stay None for dry runs; ``receipt`` stays
    None when only a simulation was requested.
    """

    validation: ValidationResult
    call: RedemptionCall
    simulation: Optional[SimulationResult] = None
    receipt: Optional[TransactionReceipt] = None


class DelegationService:
    """Delegation workflows performed by the holder of *signer*.

    Parameters
    ----------
    config:
        Network configuration.
    signer:
        The acting identity.
    ledger:
        Ledger client for simulation, submission and revocation. Workflows
        that need it raise :class:`ExternalFailure` when it is None.
    clock:
        Source of the current unix time.
    """

    def __init__(
        self,
        config: NetworkConfig,
        signer: Signer,
        ledger: Optional[LedgerClient] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._signer = signer
        self._ledger = ledger
        self._clock = clock
        self._builder = DelegationBuilder(config, clock=clock)
        self._scope_validator = ScopeValidator(config)
        self._transfer_validator = TransferValidator(config, clock=clock)

    @property
    def address(self) -> str:
        return self._signer.address

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_root(
        self,
        delegate: str,
        amount: Optional[AmountLike],
        expiry_seconds: Optional[int],
        value_ceiling: Optional[int] = 0,
        not_before: Optional[int] = None,
        recipient: Optional[str] = None,
        methods: Optional[Sequence[str]] = None,
        max_calls: Optional[int] = None,
    ) -> Delegation:
        """Build and sign a root delegation from the acting identity to *delegate*."""
        delegation = self._builder.build(
            delegator=self.address,
            delegate=delegate,
            amount=amount,
            expiry_seconds=expiry_seconds,
            not_before=not_before,
            value_ceiling=value_ceiling,
            recipient=recipient,
            methods=methods,
            max_calls=max_calls,
        )
        return self._signer.sign_delegation(delegation, self._config)

    def check_subdelegation(
        self,
        parent: Delegation,
        amount: Optional[AmountLike],
        expiry_seconds: Optional[int],
        recipient: Optional[str] = None,
        methods: Optional[Sequence[str]] = None,
        max_calls: Optional[int] = None,
    ) -> ValidationResult:
        """Run the scope narrowing check for a prospective sub-delegation."""
        request = ScopeRequest.for_duration(
            amount,
            expiry_seconds,
            now=int(self._clock()),
            recipient=recipient,
            methods=methods,
            max_calls=max_calls,
        )
        return self._scope_validator.validate(parent, request)

    def create_subdelegation(
        self,
        parent: Delegation,
        subdelegate: str,
        amount: Optional[AmountLike],
        expiry_seconds: Optional[int],
        value_ceiling: Optional[int] = 0,
        recipient: Optional[str] = None,
        methods: Optional[Sequence[str]] = None,
        max_calls: Optional[int] = None,
    ) -> Delegation:
        """Build and sign a sub-delegation narrowing *parent*.

        Raises
        ------
        IdentityMismatch
            If the acting identity is not the parent's delegate.
        ScopeViolationError
            If the requested scope exceeds the parent's; carries every violation.
        """
        self._require(parent.delegate, "delegate")
        result = self.check_subdelegation(
            parent,
            amount,
            expiry_seconds,
            recipient=recipient,
            methods=methods,
            max_calls=max_calls,
        )
        if not result.valid:
            raise ScopeViolationError(result.violations)

        delegation = self._builder.build(
            delegator=self.address,
            delegate=subdelegate,
            authority=delegation_hash(parent),
            amount=amount,
            expiry_seconds=expiry_seconds,
            value_ceiling=value_ceiling,
            recipient=recipient,
            methods=methods,
            max_calls=max_calls,
        )
        return self._signer.sign_delegation(delegation, self._config)

    # ------------------------------------------------------------------
    # Redemption
    # ------------------------------------------------------------------

    def prepare_transfer(
        self, chain: DelegationChain, recipient: str, amount: AmountLike
    ) -> tuple[ValidationResult, RedemptionCall]:
        """Validate a transfer against every link and build its redemption call.

        Raises
        ------
        IdentityMismatch
            If the acting identity is not the leaf's delegate.
        """
        self._require(chain.leaf.delegate, "delegate")
        transfer = ProposedTransfer(recipient=recipient, amount=amount)
        result = self._transfer_validator.validate(chain, transfer)
        call = RedemptionCall.for_transfer(
            chain,
            self._config,
            transfer.recipient,
            parse_units(amount, self._config.token_decimals),
        )
        return result, call

    def transfer(
        self,
        chain: DelegationChain,
        recipient: str,
        amount: AmountLike,
        dry_run: bool = False,
        simulate_only: bool = False,
    ) -> TransferOutcome:
        """Validate and redeem a token transfer through *chain*.

        With ``dry_run`` the ledger is never contacted. With
        ``simulate_only`` the call is simulated but never submitted.

        Raises
        ------
        CaveatViolationError
            If the transfer violates any decoded caveat.
        ExternalFailure
            If a link is revoked, the simulation or the submitted transaction
            reverts, or the ledger fails.
        """
        result, call = self.prepare_transfer(chain, recipient, amount)
        if not result.valid:
            raise CaveatViolationError(result.violations)
        if dry_run:
            return TransferOutcome(validation=result, call=call)

        ledger = self._require_ledger("redeemDelegations")
        revoked = self.revoked_links(chain)
        if revoked:
            raise ExternalFailure(
                "redeemDelegations",
                f"delegation chain contains revoked link(s) at position(s) {revoked}",
            )

        simulation = ledger.simulate(call, self.address)
        if not simulation.success:
            raise ExternalFailure("simulate", simulation.reason)
        if simulate_only:
            return TransferOutcome(validation=result, call=call, simulation=simulation)

        receipt = self._confirmed("redeemDelegations", ledger.submit(call, self.address))
        logger.info(
            "Redeemed %s via %s in tx %s",
            amount,
            delegation_hash_hex(chain.leaf),
            receipt.transaction_hash,
        )
        return TransferOutcome(validation=result, call=call, simulation=simulation, receipt=receipt)

    # ------------------------------------------------------------------
    # Revocation
    # ------------------------------------------------------------------

    def is_revoked(self, delegation: Delegation) -> bool:
        """Ask the ledger whether *delegation* has been disabled."""
        return self._require_ledger("disabledDelegations").is_revoked(delegation_hash(delegation))

    def revoked_links(self, chain: DelegationChain) -> list[int]:
        """Return positions of revoked links; any revoked link disables the chain."""
        ledger = self._require_ledger("disabledDelegations")
        return [i for i, h in enumerate(chain.hashes()) if ledger.is_revoked(h)]

    def revoke(self, delegation: Delegation) -> TransactionReceipt:
        """Disable *delegation* on the ledger.

        Raises
        ------
        IdentityMismatch
            If the acting identity is not the delegation's delegator.
        ExternalFailure
            If the ledger fails or the revocation transaction reverts.
        """
        self._require(delegation.delegator, "delegator")
        receipt = self._confirmed(
            "disableDelegation",
            self._require_ledger("disableDelegation").disable(delegation, self.address),
        )
        logger.info("Revoked delegation %s", delegation_hash_hex(delegation))
        return receipt

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require(self, expected: str, role: str) -> None:
        if Web3.to_checksum_address(expected) != self.address:
            raise IdentityMismatch(role, expected, self.address)

    def _require_ledger(self, operation: str) -> LedgerClient:
        if self._ledger is None:
            raise ExternalFailure(operation, "no ledger client configured")
        return self._ledger

    def _confirmed(self, operation: str, receipt: TransactionReceipt) -> TransactionReceipt:
        if not receipt.success:
            logger.error("%s reverted in tx %s", operation, receipt.transaction_hash)
            raise ExternalFailure(operation, f"transaction {receipt.transaction_hash} reverted")
        return receipt
