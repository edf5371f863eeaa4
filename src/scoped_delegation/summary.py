"""Human-readable scope summaries of a delegation."""
from __future__ import annotations

import datetime
import time
from dataclasses import dataclass, field
from typing import Optional

from web3 import Web3

from scoped_delegation.caveats.caveat import Caveat
from scoped_delegation.caveats.terms import (
    AllowedMethodsTerms,
    AmountLimitTerms,
    CallLimitTerms,
    RecipientTerms,
    Terms,
    TimeWindowTerms,
    ValueCeilingTerms,
)
from scoped_delegation.config import NetworkConfig
from scoped_delegation.delegation.hashing import delegation_hash_hex
from scoped_delegation.delegation.model import Delegation
from scoped_delegation.errors import DecodeError
from scoped_delegation.units import format_units

NATIVE_DECIMALS = 18


@dataclass
class CaveatSummary:
    """Decoded description of one caveat.

    Parameters
    ----------
    index:
        One-based position in the delegation's caveat list.
    name:
        Enforcer name, or ``"Unknown"``.
    enforcer:
        Enforcer address.
    details:
        Human-readable lines describing the decoded terms.
    status:
        ``"active"``, ``"pending"``, ``"expired"``, ``"opaque"`` or ``"undecodable"``.
    terms_hex:
        Raw terms, for verbose output.
    """

    index: int
    name: str
    enforcer: str
    details: list[str] = field(default_factory=list)
    status: str = "active"
    terms_hex: str = "0x"


@dataclass
class DelegationSummary:
    """Overview of a delegation's parties, linkage and decoded caveats."""

    delegator: str
    delegate: str
    delegation_hash: str
    salt: int
    signed: bool
    is_root: bool
    parent_hash: Optional[str]
    caveats: list[CaveatSummary] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _iso(timestamp: int) -> str:
    return datetime.datetime.fromtimestamp(timestamp, tz=datetime.timezone.utc).isoformat()


def _remaining(seconds: int) -> str:
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60
    return f"{days}d {hours}h {minutes}m"


def summarize(
    delegation: Delegation, config: NetworkConfig, now: Optional[int] = None
) -> DelegationSummary:
    """Decode every caveat of *delegation* into a :class:`DelegationSummary`.

    Undecodable terms are reported in the summary rather than raised, so a
    summary can always be printed.
    """
    current = int(time.time()) if now is None else now
    summary = DelegationSummary(
        delegator=delegation.delegator,
        delegate=delegation.delegate,
        delegation_hash=delegation_hash_hex(delegation),
        salt=delegation.salt,
        signed=delegation.is_signed,
        is_root=delegation.is_root,
        parent_hash=None if delegation.is_root else Web3.to_hex(delegation.authority),
    )

    if not delegation.caveats:
        summary.warnings.append(
            "NO CAVEATS - delegation grants FULL authority over the delegator's account."
        )
    for index, caveat in enumerate(delegation.caveats, start=1):
        summary.caveats.append(_summarize_caveat(index, caveat, config, current))

    has_limit = any(
        isinstance(_safe_decode(c, config), AmountLimitTerms) for c in delegation.caveats
    )
    if delegation.caveats and not has_limit:
        summary.warnings.append("No amount limit - the delegate may transfer any amount.")
    if not delegation.is_signed:
        summary.warnings.append("Delegation is not signed.")
    return summary


def _safe_decode(caveat: Caveat, config: NetworkConfig) -> Optional[Terms]:
    try:
        return caveat.decode(config.registry)
    except DecodeError:
        return None


def _summarize_caveat(
    index: int, caveat: Caveat, config: NetworkConfig, now: int
) -> CaveatSummary:
    registry = config.registry
    entry = CaveatSummary(
        index=index,
        name=registry.label_of(caveat.enforcer),
        enforcer=caveat.enforcer,
        terms_hex=Web3.to_hex(caveat.terms),
    )
    try:
        terms = caveat.decode(registry)
    except DecodeError as exc:
        entry.status = "undecodable"
        entry.details.append(f"Could not decode terms: {exc}")
        return entry

    if terms is None:
        entry.status = "opaque"
        entry.details.append("Custom enforcer (not evaluated off-chain)")
    elif isinstance(terms, AmountLimitTerms):
        amount = format_units(terms.max_amount, config.token_decimals)
        symbol = config.token_symbol if terms.same_token(config.token_address) else ""
        entry.details.append(f"Maximum amount: {amount} {symbol}".rstrip())
        entry.details.append(f"Token: {terms.token}")
    elif isinstance(terms, ValueCeilingTerms):
        if terms.max_value == 0:
            entry.details.append("Max native value: 0 (token transfers only)")
        else:
            entry.details.append(
                f"Max native value: {format_units(terms.max_value, NATIVE_DECIMALS)} ETH"
            )
    elif isinstance(terms, TimeWindowTerms):
        entry.details.extend(_window_details(terms, now))
        if not terms.has_started(now):
            entry.status = "pending"
        elif terms.has_expired(now):
            entry.status = "expired"
    elif isinstance(terms, RecipientTerms):
        entry.details.append(f"Recipient: {terms.recipient}")
    elif isinstance(terms, AllowedMethodsTerms):
        selectors = ", ".join("0x" + s.hex() for s in terms.selectors)
        entry.details.append(f"Allowed selectors: {selectors}")
    elif isinstance(terms, CallLimitTerms):
        entry.details.append(f"Maximum redemptions: {terms.max_calls}")
    return entry


def _window_details(terms: TimeWindowTerms, now: int) -> list[str]:
    details: list[str] = []
    if terms.not_before:
        details.append(f"Valid after: {_iso(terms.not_before)}")
        if not terms.has_started(now):
            details.append(f"Not yet active - {_remaining(terms.not_before - now)} until valid")
    if terms.not_after:
        details.append(f"Expires: {_iso(terms.not_after)}")
        if terms.has_expired(now):
            details.append(f"Expired {(now - terms.not_after) // 60} minutes ago")
        else:
            details.append(f"{_remaining(terms.not_after - now)} remaining")
    if not terms.not_before and not terms.not_after:
        details.append("No time constraints (perpetual)")
    return details
