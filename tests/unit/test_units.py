"""Tests for scoped_delegation.units — token amounts and durations."""
from __future__ import annotations

from decimal import Decimal

import pytest

from scoped_delegation.units import format_units, parse_duration, parse_units


# ---------------------------------------------------------------------------
# parse_units / format_units
# ---------------------------------------------------------------------------


class TestParseUnits:
    def test_whole_amount(self) -> None:
        assert parse_units(1000, 6) == 1_000_000_000

    def test_fractional_string(self) -> None:
        assert parse_units("12.5", 6) == 12_500_000

    def test_smallest_unit(self) -> None:
        assert parse_units(Decimal("0.000001"), 6) == 1

    def test_zero(self) -> None:
        assert parse_units("0", 6) == 0

    def test_excess_precision_rejected(self) -> None:
        with pytest.raises(ValueError, match="decimal places"):
            parse_units("0.0000001", 6)

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError, match="negative"):
            parse_units("-1", 6)

    @pytest.mark.parametrize("bad", ["abc", "", "NaN", "Infinity"])
    def test_non_numeric_rejected(self, bad: str) -> None:
        with pytest.raises(ValueError):
            parse_units(bad, 6)


class TestFormatUnits:
    def test_strips_trailing_zeros(self) -> None:
        assert format_units(1_500_000, 6) == "1.5"

    def test_whole_number(self) -> None:
        assert format_units(500_000_000, 6) == "500"

    def test_zero(self) -> None:
        assert format_units(0, 6) == "0"

    def test_zero_decimals(self) -> None:
        assert format_units(42, 0) == "42"

    def test_inverse_of_parse(self) -> None:
        assert format_units(parse_units("1000.000001", 6), 6) == "1000.000001"


# ---------------------------------------------------------------------------
# parse_duration
# ---------------------------------------------------------------------------


class TestParseDuration:
    @pytest.mark.parametrize(
        ("text", "seconds"),
        [("30s", 30), ("5m", 300), ("24h", 86_400), ("7d", 604_800), (" 12h ", 43_200)],
    )
    def test_valid_durations(self, text: str, seconds: int) -> None:
        assert parse_duration(text) == seconds

    @pytest.mark.parametrize("text", ["", "7", "7w", "h", "-5m", "1.5h"])
    def test_invalid_durations(self, text: str) -> None:
        with pytest.raises(ValueError, match="Invalid duration format"):
            parse_duration(text)
