"""TransferValidator — off-chain caveat enforcement for a proposed token transfer.

Every caveat of every link is decoded and checked; all failures are
reported together. Caveats whose enforcer this client does not know are
skipped: the DelegationManager still enforces them on-chain, and the client
must not block an otherwise admissible transfer because of them. Value
ceilings are not checked because token transfers carry zero native value.
Call limits depend on redemption history, which only the ledger knows, so
here only a limit of zero is reported.

No result is cached. Time-window checks use the transfer's timestamp or,
when absent, the validator's clock at call time.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, Union

from web3 import Web3

from scoped_delegation.caveats.terms import (
    AllowedMethodsTerms,
    AmountLimitTerms,
    CallLimitTerms,
    RecipientTerms,
    TimeWindowTerms,
    selector_of,
)
from scoped_delegation.config import NetworkConfig
from scoped_delegation.delegation.chain import DelegationChain
from scoped_delegation.delegation.model import Delegation
from scoped_delegation.units import AmountLike, format_units, parse_units
from scoped_delegation.validation.results import ValidationResult, Violation, ViolationKind

TRANSFER_SELECTOR: bytes = selector_of("transfer(address,uint256)")


@dataclass(frozen=True)
class ProposedTransfer:
    """A token transfer the delegate wants to make.

    Parameters
    ----------
    recipient:
        Address receiving the tokens.
    amount:
        Amount in token units (e.g. ``Decimal("12.5")`` USDC).
    timestamp:
        Unix time at which the transfer would execute; now when None.
    token:
        Token being transferred; the configured token when None.
    """

    recipient: str
    amount: AmountLike
    timestamp: Optional[int] = None
    token: Optional[str] = None

    def __post_init__(self) -> None:
        if not Web3.is_address(self.recipient):
            raise ValueError(f"recipient {self.recipient!r} is not a valid address")
        object.__setattr__(self, "recipient", Web3.to_checksum_address(self.recipient))


class TransferValidator:
    """Checks a proposed transfer against decoded caveats.

    Parameters
    ----------
    config:
        Network configuration (enforcer registry, token and decimals).
    clock:
        Source of the current unix time, used when a transfer has no timestamp.
    """

    def __init__(self, config: NetworkConfig, clock: Callable[[], float] = time.time) -> None:
        self._config = config
        self._clock = clock

    def validate(
        self,
        target: Union[Delegation, DelegationChain],
        transfer: ProposedTransfer,
    ) -> ValidationResult:
        """Return every caveat violation of *transfer*.

        Parameters
        ----------
        target:
            The delegation being redeemed, or a full chain whose links are
            all checked.
        transfer:
            The proposed transfer.

        Raises
        ------
        DecodeError
            If a known caveat has malformed terms.
        """
        now = transfer.timestamp if transfer.timestamp is not None else int(self._clock())
        amount = parse_units(transfer.amount, self._config.token_decimals)
        token = transfer.token or self._config.token_address

        if isinstance(target, DelegationChain):
            links = [(index, link) for index, link in enumerate(target)]
        else:
            links = [(None, target)]

        violations: list[Violation] = []
        for position, delegation in links:
            violations.extend(
                self._check_delegation(
                    delegation, position, transfer.recipient, amount, token, now
                )
            )
        return ValidationResult(violations=tuple(violations))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _check_delegation(
        self,
        delegation: Delegation,
        position: Optional[int],
        recipient: str,
        amount: int,
        token: str,
        now: int,
    ) -> list[Violation]:
        registry = self._config.registry
        violations: list[Violation] = []
        for caveat in delegation.caveats:
            terms = caveat.decode(registry)
            if isinstance(terms, AmountLimitTerms):
                violations.extend(self._check_amount(terms, position, amount, token))
            elif isinstance(terms, TimeWindowTerms):
                violations.extend(self._check_window(terms, position, now))
            elif isinstance(terms, RecipientTerms) and not terms.allows(recipient):
                violations.append(
                    Violation(
                        kind=ViolationKind.RECIPIENT,
                        message=(
                            f"Delegation only allows transfers to {terms.recipient}, "
                            f"not {recipient}"
                        ),
                        link=position,
                    )
                )
            elif isinstance(terms, AllowedMethodsTerms) and not terms.allows(TRANSFER_SELECTOR):
                violations.append(
                    Violation(
                        kind=ViolationKind.METHOD,
                        message="Delegation does not allow transfer(address,uint256) calls",
                        link=position,
                    )
                )
            elif isinstance(terms, CallLimitTerms) and terms.max_calls == 0:
                violations.append(
                    Violation(
                        kind=ViolationKind.CALL_LIMIT,
                        message="Delegation allows no redemptions (call limit 0)",
                        link=position,
                    )
                )
        return violations

    def _check_amount(
        self,
        terms: AmountLimitTerms,
        position: Optional[int],
        amount: int,
        token: str,
    ) -> list[Violation]:
        if not terms.same_token(token):
            return [
                Violation(
                    kind=ViolationKind.TOKEN_MISMATCH,
                    message=f"Delegation only covers token {terms.token}, not {token}",
                    link=position,
                )
            ]
        if amount > terms.max_amount:
            decimals = self._config.token_decimals
            return [
                Violation(
                    kind=ViolationKind.AMOUNT,
                    message=(
                        f"Transfer amount {format_units(amount, decimals)} exceeds delegated "
                        f"limit of {format_units(terms.max_amount, decimals)} "
                        f"{self._config.token_symbol}"
                    ),
                    link=position,
                )
            ]
        return []

    @staticmethod
    def _check_window(
        terms: TimeWindowTerms, position: Optional[int], now: int
    ) -> list[Violation]:
        if not terms.has_started(now):
            return [
                Violation(
                    kind=ViolationKind.NOT_YET_VALID,
                    message=f"Delegation is not valid until {terms.not_before} (now {now})",
                    link=position,
                )
            ]
        if terms.has_expired(now):
            return [
                Violation(
                    kind=ViolationKind.EXPIRED,
                    message=f"Delegation expired at {terms.not_after} (now {now})",
                    link=position,
                )
            ]
        return []
