"""ScopeValidator — sub-delegation scope narrowing checks.

A sub-delegation may only narrow its parent: it may not widen any
dimension the parent constrains (amount of the same token, expiry, pinned
recipient, allowed methods, redemption count). The check is advisory.
The DelegationManager enforces only each delegation's own caveats at
redemption, so this is the client-side safety net for narrowing, not a
re-validation performed on-chain.

Each call considers a single child request; allowances of sibling
sub-delegations are not pooled.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from scoped_delegation.caveats.kinds import CaveatKind
from scoped_delegation.caveats.terms import (
    AllowedMethodsTerms,
    AmountLimitTerms,
    CallLimitTerms,
    RecipientTerms,
    TimeWindowTerms,
    selector_of,
)
from scoped_delegation.config import NetworkConfig
from scoped_delegation.delegation.model import Delegation
from scoped_delegation.units import AmountLike, format_units, parse_units
from scoped_delegation.validation.results import ValidationResult, Violation, ViolationKind


@dataclass(frozen=True)
class ScopeRequest:
    """The scope a prospective sub-delegation asks for.

    Parameters
    ----------
    amount:
        Requested limit in token units, or None when no amount is requested.
    expiry:
        Requested absolute expiry (unix seconds), or None for no expiry.
    token:
        Token the amount refers to; the configured token when None.
    recipient:
        Recipient the child pins, or None.
    methods:
        Signatures or ``0x`` selectors the child allows, or None.
    max_calls:
        Redemption limit the child asks for, or None.
    """

    amount: Optional[AmountLike] = None
    expiry: Optional[int] = None
    token: Optional[str] = None
    recipient: Optional[str] = None
    methods: Optional[Sequence[str]] = None
    max_calls: Optional[int] = None

    @classmethod
    def for_duration(
        cls,
        amount: Optional[AmountLike],
        expiry_seconds: Optional[int],
        now: Optional[int] = None,
        token: Optional[str] = None,
        recipient: Optional[str] = None,
        methods: Optional[Sequence[str]] = None,
        max_calls: Optional[int] = None,
    ) -> "ScopeRequest":
        """Build a request whose expiry is *expiry_seconds* from *now*."""
        current = int(time.time()) if now is None else now
        expiry = None if expiry_seconds is None else current + expiry_seconds
        return cls(
            amount=amount,
            expiry=expiry,
            token=token,
            recipient=recipient,
            methods=methods,
            max_calls=max_calls,
        )

    @classmethod
    def from_delegation(cls, child: Delegation, config: NetworkConfig) -> "ScopeRequest":
        """Derive the request implied by an already-built child delegation."""
        registry = config.registry
        amount: Optional[Decimal] = None
        token: Optional[str] = None
        expiry: Optional[int] = None
        recipient: Optional[str] = None
        methods: Optional[tuple[str, ...]] = None
        max_calls: Optional[int] = None

        limit = child.decoded_terms(CaveatKind.AMOUNT_LIMIT, registry)
        if isinstance(limit, AmountLimitTerms):
            amount = Decimal(format_units(limit.max_amount, config.token_decimals))
            token = limit.token

        window = child.decoded_terms(CaveatKind.TIME_WINDOW, registry)
        if isinstance(window, TimeWindowTerms) and window.not_after:
            expiry = window.not_after

        pinned = child.decoded_terms(CaveatKind.RECIPIENT, registry)
        if isinstance(pinned, RecipientTerms):
            recipient = pinned.recipient

        allowed = child.decoded_terms(CaveatKind.ALLOWED_METHODS, registry)
        if isinstance(allowed, AllowedMethodsTerms):
            methods = tuple("0x" + selector.hex() for selector in allowed.selectors)

        calls = child.decoded_terms(CaveatKind.CALL_LIMIT, registry)
        if isinstance(calls, CallLimitTerms):
            max_calls = calls.max_calls

        return cls(
            amount=amount,
            expiry=expiry,
            token=token,
            recipient=recipient,
            methods=methods,
            max_calls=max_calls,
        )


class ScopeValidator:
    """Checks that a child request stays within its parent's decoded caveats.

    Parameters
    ----------
    config:
        Network configuration (enforcer registry, token and decimals).
    """

    def __init__(self, config: NetworkConfig) -> None:
        self._config = config

    def validate(self, parent: Delegation, request: ScopeRequest) -> ValidationResult:
        """Return every narrowing violation of *request* against *parent*.

        Raises
        ------
        DecodeError
            If one of the parent's known caveats has malformed terms.
        """
        registry = self._config.registry
        violations: list[Violation] = []

        parent_limit = parent.decoded_terms(CaveatKind.AMOUNT_LIMIT, registry)
        if isinstance(parent_limit, AmountLimitTerms) and request.amount is not None:
            violations.extend(self._check_amount(parent_limit, request))

        parent_window = parent.decoded_terms(CaveatKind.TIME_WINDOW, registry)
        if isinstance(parent_window, TimeWindowTerms) and parent_window.not_after:
            violations.extend(self._check_expiry(parent_window, request))

        parent_recipient = parent.decoded_terms(CaveatKind.RECIPIENT, registry)
        if isinstance(parent_recipient, RecipientTerms) and request.recipient is not None:
            if not parent_recipient.allows(request.recipient):
                violations.append(
                    Violation(
                        kind=ViolationKind.RECIPIENT,
                        message=(
                            f"Sub-delegation recipient {request.recipient} differs from "
                            f"parent recipient {parent_recipient.recipient}"
                        ),
                    )
                )

        parent_methods = parent.decoded_terms(CaveatKind.ALLOWED_METHODS, registry)
        if isinstance(parent_methods, AllowedMethodsTerms) and request.methods is not None:
            violations.extend(self._check_methods(parent_methods, request.methods))

        parent_calls = parent.decoded_terms(CaveatKind.CALL_LIMIT, registry)
        if isinstance(parent_calls, CallLimitTerms) and request.max_calls is not None:
            if request.max_calls > parent_calls.max_calls:
                violations.append(
                    Violation(
                        kind=ViolationKind.CALL_LIMIT,
                        message=(
                            f"Sub-delegation call limit ({request.max_calls}) exceeds "
                            f"parent limit of {parent_calls.max_calls}"
                        ),
                    )
                )

        return ValidationResult(violations=tuple(violations))

    def validate_child(self, parent: Delegation, child: Delegation) -> ValidationResult:
        """Validate an already-built child delegation against *parent*."""
        return self.validate(parent, ScopeRequest.from_delegation(child, self._config))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _check_amount(
        self, parent_limit: AmountLimitTerms, request: ScopeRequest
    ) -> list[Violation]:
        token = request.token or self._config.token_address
        if not parent_limit.same_token(token):
            return [
                Violation(
                    kind=ViolationKind.TOKEN_MISMATCH,
                    message=(
                        f"Sub-delegation token {token} differs from parent token "
                        f"{parent_limit.token}; amounts cannot be compared"
                    ),
                )
            ]
        decimals = self._config.token_decimals
        requested = parse_units(request.amount, decimals)  # type: ignore[arg-type]
        if requested > parent_limit.max_amount:
            return [
                Violation(
                    kind=ViolationKind.AMOUNT,
                    message=(
                        f"Sub-delegation amount ({format_units(requested, decimals)}) exceeds "
                        f"parent scope of {format_units(parent_limit.max_amount, decimals)} "
                        f"{self._config.token_symbol}"
                    ),
                )
            ]
        return []

    def _check_expiry(
        self, parent_window: TimeWindowTerms, request: ScopeRequest
    ) -> list[Violation]:
        if request.expiry is None:
            return [
                Violation(
                    kind=ViolationKind.EXPIRY,
                    message=(
                        "Sub-delegation has no expiry but parent expires at "
                        f"{parent_window.not_after}"
                    ),
                )
            ]
        if request.expiry > parent_window.not_after:
            return [
                Violation(
                    kind=ViolationKind.EXPIRY,
                    message=(
                        f"Sub-delegation expiry ({request.expiry}) exceeds parent expiry "
                        f"({parent_window.not_after})"
                    ),
                )
            ]
        return []

    @staticmethod
    def _check_methods(
        parent_methods: AllowedMethodsTerms, methods: Sequence[str]
    ) -> list[Violation]:
        extra = [m for m in methods if not parent_methods.allows(selector_of(m))]
        if not extra:
            return []
        return [
            Violation(
                kind=ViolationKind.METHOD,
                message=f"Sub-delegation allows methods the parent does not: {', '.join(extra)}",
            )
        ]
