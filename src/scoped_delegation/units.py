"""Token unit conversion and duration parsing."""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Union

AmountLike = Union[Decimal, int, str]

_DURATION_RE = re.compile(r"^(\d+)(s|m|h|d)$")
_DURATION_MULTIPLIERS: dict[str, int] = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_units(amount: AmountLike, decimals: int) -> int:
    """Convert a token amount such as ``"12.5"`` to integer minor units.

    Raises
    ------
    ValueError
        If the amount is negative, not a number, or has more fractional
        digits than the token supports.
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid token amount: {amount!r}") from exc
    if not value.is_finite():
        raise ValueError(f"Invalid token amount: {amount!r}")
    if value < 0:
        raise ValueError(f"Token amount must not be negative: {amount!r}")
    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {amount!r} has more than {decimals} decimal places")
    return int(scaled)


def format_units(minor_units: int, decimals: int) -> str:
    """Render integer minor units as a plain decimal string (``1500000`` -> ``"1.5"``)."""
    value = Decimal(minor_units).scaleb(-decimals)
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def parse_duration(duration: str) -> int:
    """Parse ``30s``, ``5m``, ``24h`` or ``7d`` into seconds."""
    match = _DURATION_RE.match(duration.strip())
    if not match:
        raise ValueError("Invalid duration format. Use: 30s, 5m, 24h, 7d")
    return int(match.group(1)) * _DURATION_MULTIPLIERS[match.group(2)]
