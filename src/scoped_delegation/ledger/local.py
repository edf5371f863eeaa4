"""LocalLedger — an offline, file-persistable stand-in for the DelegationManager.

Mirrors the parts of the on-chain behaviour this client relies on:

* disabled delegation hashes, with redemption refused for any chain that
  contains one (revocation cascades to every descendant);
* signature checks for every link;
* caveat enforcement for every link, including cumulative spend and
  redemption count per delegation hash as the ERC-20 amount and call-limit
  enforcers track them;
* refusal of caveats whose enforcer it cannot evaluate.

Only single ERC-20 ``transfer`` executions of the configured token are
supported. State is kept in memory; callers persist it with
:meth:`snapshot` and :meth:`restore`.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from web3 import Web3

from scoped_delegation.caveats.terms import (
    AllowedMethodsTerms,
    AmountLimitTerms,
    CallLimitTerms,
    ValueCeilingTerms,
)
from scoped_delegation.config import NetworkConfig
from scoped_delegation.delegation.chain import DelegationChain
from scoped_delegation.delegation.hashing import delegation_hash
from scoped_delegation.delegation.model import Delegation
from scoped_delegation.errors import ExternalFailure, IdentityMismatch
from scoped_delegation.ledger.base import LedgerClient, SimulationResult, TransactionReceipt
from scoped_delegation.ledger.encoding import Execution, RedemptionCall
from scoped_delegation.signing.signer import verify_signature
from scoped_delegation.units import format_units
from scoped_delegation.validation.transfer import ProposedTransfer, TransferValidator

logger = logging.getLogger(__name__)


class LocalLedger(LedgerClient):
    """Thread-safe in-memory ledger.

    Parameters
    ----------
    config:
        Network configuration (token, enforcers and signing domain).
    clock:
        Source of the current unix time used for time-window checks.
    """

    def __init__(self, config: NetworkConfig, clock: Callable[[], float] = time.time) -> None:
        self._config = config
        self._clock = clock
        self._validator = TransferValidator(config, clock)
        self._revoked: set[bytes] = set()
        self._spent: dict[bytes, int] = {}
        self._calls: dict[bytes, int] = {}
        self._transactions = 0
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # LedgerClient
    # ------------------------------------------------------------------

    def simulate(self, call: RedemptionCall, sender: str) -> SimulationResult:
        with self._lock:
            return self._simulate(call, sender)

    def submit(self, call: RedemptionCall, sender: str) -> TransactionReceipt:
        with self._lock:
            result = self._simulate(call, sender)
            if not result.success:
                raise ExternalFailure("redeemDelegations", result.reason)
            for chain, execution in zip(call.chains, call.executions):
                transfer = execution.token_transfer()
                for link_hash in chain.hashes():
                    self._calls[link_hash] = self._calls.get(link_hash, 0) + 1
                    if transfer is not None:
                        self._spent[link_hash] = self._spent.get(link_hash, 0) + transfer[1]
            receipt = self._receipt(call)
        logger.info("Local redemption %s executed for %s", receipt.transaction_hash, sender)
        return receipt

    def is_revoked(self, delegation_hash: bytes) -> bool:
        with self._lock:
            return bytes(delegation_hash) in self._revoked

    def disable(self, delegation: Delegation, sender: str) -> TransactionReceipt:
        if Web3.to_checksum_address(sender) != delegation.delegator:
            raise IdentityMismatch("delegator", delegation.delegator, sender)
        target = delegation_hash(delegation)
        with self._lock:
            if target in self._revoked:
                raise ExternalFailure(
                    "disableDelegation", "DelegationManager__AlreadyDisabled"
                )
            self._revoked.add(target)
            receipt = self._receipt(target)
        logger.info("Delegation %s disabled locally", Web3.to_hex(target))
        return receipt

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def spent(self, delegation_hash: bytes) -> int:
        """Return minor units already transferred under *delegation_hash*."""
        with self._lock:
            return self._spent.get(bytes(delegation_hash), 0)

    def calls(self, delegation_hash: bytes) -> int:
        """Return how many redemptions have used *delegation_hash*."""
        with self._lock:
            return self._calls.get(bytes(delegation_hash), 0)

    def revoked_hashes(self) -> frozenset[bytes]:
        """Return a snapshot of all disabled delegation hashes."""
        with self._lock:
            return frozenset(self._revoked)

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-serialisable copy of the ledger state."""
        with self._lock:
            return {
                "revoked": sorted(Web3.to_hex(h) for h in self._revoked),
                "spent": {Web3.to_hex(h): str(v) for h, v in sorted(self._spent.items())},
                "calls": {Web3.to_hex(h): v for h, v in sorted(self._calls.items())},
                "transactions": self._transactions,
            }

    def restore(self, data: dict[str, object]) -> None:
        """Merge state previously produced by :meth:`snapshot`."""
        revoked = data.get("revoked") or []
        spent = data.get("spent") or {}
        calls = data.get("calls") or {}
        with self._lock:
            self._revoked.update(Web3.to_bytes(hexstr=str(h)) for h in revoked)  # type: ignore[union-attr]
            for key, value in spent.items():  # type: ignore[union-attr]
                self._spent[Web3.to_bytes(hexstr=str(key))] = int(str(value))
            for key, value in calls.items():  # type: ignore[union-attr]
                self._calls[Web3.to_bytes(hexstr=str(key))] = int(str(value))
            self._transactions = max(self._transactions, int(str(data.get("transactions", 0))))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _simulate(self, call: RedemptionCall, sender: str) -> SimulationResult:
        for chain, execution in zip(call.chains, call.executions):
            reason = self._check_redemption(chain, execution, sender)
            if reason:
                return SimulationResult(success=False, reason=reason)
        return SimulationResult(success=True)

    def _check_redemption(
        self, chain: DelegationChain, execution: Execution, sender: str
    ) -> Optional[str]:
        registry = self._config.registry
        if Web3.to_checksum_address(sender) != chain.leaf.delegate:
            return "InvalidDelegate: sender is not the delegate of the leaf delegation"

        transfer = execution.token_transfer()
        if transfer is None or execution.target.lower() != self._config.token_address.lower():
            return "LocalLedger only executes ERC-20 transfers of the configured token"
        recipient, amount = transfer

        for position, (link, link_hash) in enumerate(zip(chain, chain.hashes())):
            if link_hash in self._revoked:
                return f"CannotUseADisabledDelegation: link {position} {Web3.to_hex(link_hash)}"
            if not verify_signature(link, self._config):
                return f"InvalidSignature: link {position} is not signed by its delegator"
            for caveat in link.caveats:
                terms = caveat.decode(registry)
                if terms is None:
                    return (
                        f"Unsupported enforcer {caveat.enforcer} on link {position}; "
                        "cannot evaluate offline"
                    )
                if isinstance(terms, ValueCeilingTerms) and execution.value > terms.max_value:
                    return f"ValueLteEnforcer:value-too-high on link {position}"
                if isinstance(terms, AllowedMethodsTerms) and not terms.allows(
                    execution.call_data[:4]
                ):
                    return f"AllowedMethodsEnforcer:method-not-allowed on link {position}"
                if isinstance(terms, CallLimitTerms):
                    if self._calls.get(link_hash, 0) >= terms.max_calls:
                        return (
                            f"LimitedCallsEnforcer:limit-exceeded on link {position}: "
                            f"{terms.max_calls} call(s) allowed"
                        )
                if isinstance(terms, AmountLimitTerms):
                    spent = self._spent.get(link_hash, 0)
                    if spent + amount > terms.max_amount:
                        decimals = self._config.token_decimals
                        return (
                            f"ERC20TransferAmountEnforcer:allowance-exceeded on link {position}: "
                            f"{format_units(spent, decimals)} already spent of "
                            f"{format_units(terms.max_amount, decimals)}"
                        )

        result = self._validator.validate(
            chain,
            ProposedTransfer(
                recipient=recipient,
                amount=format_units(amount, self._config.token_decimals),
                token=execution.target,
            ),
        )
        if not result.valid:
            return "; ".join(result.messages)
        return None

    def _receipt(self, payload: object) -> TransactionReceipt:
        self._transactions += 1
        digest = Web3.keccak(text=f"{self._transactions}:{payload!r}")
        return TransactionReceipt(
            transaction_hash=Web3.to_hex(digest),
            success=True,
            block_number=self._transactions,
        )
