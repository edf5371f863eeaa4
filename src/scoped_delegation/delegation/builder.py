"""DelegationBuilder — assembles unsigned delegations from intent-level parameters.

Caveats are always emitted in the same order, because order is part of the
delegation hash and both parties to a delegation must agree on it:

1. value ceiling (ValueLteEnforcer)
2. amount limit (ERC20TransferAmountEnforcer)
3. time window (TimestampEnforcer)
4. pinned recipient (AllowedCalldataEnforcer)
5. allowed methods (AllowedMethodsEnforcer)
6. call limit (LimitedCallsEnforcer)
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, Sequence

from scoped_delegation.caveats.caveat import Caveat
from scoped_delegation.caveats.terms import (
    AllowedMethodsTerms,
    AmountLimitTerms,
    CallLimitTerms,
    RecipientTerms,
    TimeWindowTerms,
    ValueCeilingTerms,
)
from scoped_delegation.config import NetworkConfig
from scoped_delegation.delegation.model import ROOT_AUTHORITY, Delegation
from scoped_delegation.units import AmountLike, parse_units

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

TOKEN_METHODS: tuple[str, ...] = ("transfer(address,uint256)", "approve(address,uint256)")


class SaltSource:
    """Produces strictly increasing salts from a millisecond clock.

    Thread-safe. When two calls land in the same millisecond (or the clock
    goes backwards) the previous salt plus one is returned instead.
    """

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._last = -1
        self._lock = threading.Lock()

    def next_salt(self) -> int:
        with self._lock:
            candidate = int(self._clock() * 1000)
            salt = max(candidate, self._last + 1)
            self._last = salt
            return salt


class DelegationBuilder:
    """Builds unsigned :class:`Delegation` records.

    Parameters
    ----------
    config:
        Network configuration supplying enforcer addresses and the token.
    clock:
        Source of the current unix time in seconds. Defaults to ``time.time``.
    salts:
        Salt source; a new :class:`SaltSource` over *clock* when omitted.
    """

    def __init__(
        self,
        config: NetworkConfig,
        clock: Clock = time.time,
        salts: Optional[SaltSource] = None,
    ) -> None:
        self._config = config
        self._clock = clock
        self._salts = salts if salts is not None else SaltSource(clock)

    @property
    def config(self) -> NetworkConfig:
        return self._config

    def build(
        self,
        delegator: str,
        delegate: str,
        authority: bytes = ROOT_AUTHORITY,
        amount: Optional[AmountLike] = None,
        expiry_seconds: Optional[int] = None,
        not_before: Optional[int] = None,
        value_ceiling: Optional[int] = 0,
        recipient: Optional[str] = None,
        methods: Optional[Sequence[str]] = None,
        max_calls: Optional[int] = None,
    ) -> Delegation:
        """Build an unsigned delegation.

        Parameters
        ----------
        delegator:
            Address granting the delegation.
        delegate:
            Address receiving the delegation.
        authority:
            Parent delegation hash, or :data:`ROOT_AUTHORITY`.
        amount:
            Maximum cumulative transfer in token units (e.g. ``1000`` USDC).
            None omits the amount caveat, leaving the amount unbounded.
        expiry_seconds:
            Lifetime from now; sets the window's ``notAfter``.
        not_before:
            Absolute unix time before which the delegation is not usable.
        value_ceiling:
            Maximum native value in wei; 0 forbids native value and None
            omits the caveat.
        recipient:
            Only address the delegate may transfer to; None leaves the
            recipient open.
        methods:
            Function signatures (or ``0x`` selectors) the executed call may
            use, e.g. :data:`TOKEN_METHODS`. None omits the caveat.
        max_calls:
            Maximum number of redemptions; None leaves it unbounded.

        Returns
        -------
        Delegation
            Unsigned delegation with caveats in canonical order.
        """
        registry = self._config.registry
        caveats: list[Caveat] = []

        if value_ceiling is not None:
            caveats.append(Caveat.from_terms(ValueCeilingTerms(max_value=value_ceiling), registry))

        if amount is not None:
            max_amount = parse_units(amount, self._config.token_decimals)
            caveats.append(
                Caveat.from_terms(
                    AmountLimitTerms(token=self._config.token_address, max_amount=max_amount),
                    registry,
                )
            )
        else:
            logger.warning(
                "Building delegation to %s without an amount caveat; "
                "the delegate may transfer the delegator's full balance.",
                delegate,
            )

        if expiry_seconds is not None or not_before is not None:
            if expiry_seconds is not None and expiry_seconds <= 0:
                raise ValueError(f"expiry_seconds must be positive, got {expiry_seconds}")
            not_after = 0
            if expiry_seconds is not None:
                not_after = int(self._clock()) + expiry_seconds
            caveats.append(
                Caveat.from_terms(
                    TimeWindowTerms(not_before=not_before or 0, not_after=not_after),
                    registry,
                )
            )

        if recipient is not None:
            caveats.append(Caveat.from_terms(RecipientTerms(recipient=recipient), registry))

        if methods is not None:
            caveats.append(
                Caveat.from_terms(AllowedMethodsTerms.from_signatures(methods), registry)
            )

        if max_calls is not None:
            if max_calls <= 0:
                raise ValueError(f"max_calls must be positive, got {max_calls}")
            caveats.append(Caveat.from_terms(CallLimitTerms(max_calls=max_calls), registry))

        if not caveats:
            logger.warning("Delegation to %s carries no caveats at all.", delegate)

        delegation = Delegation(
            delegate=delegate,
            delegator=delegator,
            authority=authority,
            caveats=tuple(caveats),
            salt=self._salts.next_salt(),
        )
        logger.info(
            "Built %s delegation %s -> %s with %d caveat(s)",
            "root" if delegation.is_root else "sub",
            delegation.delegator,
            delegation.delegate,
            len(delegation.caveats),
        )
        return delegation
