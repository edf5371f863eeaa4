"""CaveatKind — the caveat kinds this client knows how to decode."""
from __future__ import annotations

from enum import Enum


class CaveatKind(str, Enum):
    """Known caveat kinds, each backed by one enforcer contract.

    VALUE_CEILING    — maximum native value attached to the execution.
    AMOUNT_LIMIT     — maximum cumulative ERC-20 transfer amount.
    TIME_WINDOW      — execution allowed only within [notBefore, notAfter).
    RECIPIENT        — the transfer's recipient argument is pinned to one address.
    ALLOWED_METHODS  — the executed call must use one of a set of selectors.
    CALL_LIMIT       — maximum number of redemptions of the delegation.
    """

    VALUE_CEILING = "value_ceiling"
    AMOUNT_LIMIT = "amount_limit"
    TIME_WINDOW = "time_window"
    RECIPIENT = "recipient"
    ALLOWED_METHODS = "allowed_methods"
    CALL_LIMIT = "call_limit"

    @property
    def enforcer_name(self) -> str:
        """Contract name of the enforcer implementing this kind."""
        return _ENFORCER_NAMES[self]


_ENFORCER_NAMES: dict[CaveatKind, str] = {
    CaveatKind.VALUE_CEILING: "ValueLteEnforcer",
    CaveatKind.AMOUNT_LIMIT: "ERC20TransferAmountEnforcer",
    CaveatKind.TIME_WINDOW: "TimestampEnforcer",
    CaveatKind.RECIPIENT: "AllowedCalldataEnforcer",
    CaveatKind.ALLOWED_METHODS: "AllowedMethodsEnforcer",
    CaveatKind.CALL_LIMIT: "LimitedCallsEnforcer",
}
