"""Caveat terms codec — binary terms for each known caveat kind.

The layouts match the enforcer contracts of the MetaMask Delegation
Framework v1.3.0 and are the only wire format this package supports:

================  ============================================  ========
Kind              Layout (big-endian, packed)                   Bytes
================  ============================================  ========
VALUE_CEILING     uint256 maxValue                              32
AMOUNT_LIMIT      address token, uint256 maxAmount              52
TIME_WINDOW       uint128 notBefore, uint128 notAfter           32
RECIPIENT         uint256 offset (= 4), bytes32 recipient word  64
ALLOWED_METHODS   bytes4 selector, repeated                     4 * n
CALL_LIMIT        uint256 maxCalls                              32
================  ============================================  ========

Decoding a blob whose length differs from the layout raises
:class:`~scoped_delegation.errors.DecodeError`; nothing is truncated or
zero-filled.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union

from web3 import Web3

from scoped_delegation.caveats.kinds import CaveatKind
from scoped_delegation.errors import DecodeError

ADDRESS_BYTES = 20
UINT128_BYTES = 16
UINT256_BYTES = 32

UINT128_MAX = 2**128 - 1
UINT256_MAX = 2**256 - 1


def _uint_to_bytes(value: int, width: int, field_name: str) -> bytes:
    limit = 2 ** (width * 8) - 1
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{field_name} must be an int, got {type(value).__name__}")
    if value < 0 or value > limit:
        raise ValueError(f"{field_name} {value} does not fit in uint{width * 8}")
    return value.to_bytes(width, "big")


def _require_length(blob: bytes, expected: int, kind: CaveatKind) -> bytes:
    data = bytes(blob)
    if len(data) != expected:
        raise DecodeError(
            f"{kind.enforcer_name} terms must be exactly {expected} bytes, got {len(data)}"
        )
    return data


@dataclass(frozen=True)
class ValueCeilingTerms:
    """Maximum native value (in wei) attached to a delegated execution.

    A ceiling of 0 forbids native value entirely, restricting a generic
    execution capability to token-only calls.
    """

    max_value: int

    KIND = CaveatKind.VALUE_CEILING
    LENGTH = UINT256_BYTES

    def encode(self) -> bytes:
        return _uint_to_bytes(self.max_value, UINT256_BYTES, "max_value")

    @classmethod
    def decode(cls, blob: bytes) -> "ValueCeilingTerms":
        data = _require_length(blob, cls.LENGTH, cls.KIND)
        return cls(max_value=int.from_bytes(data, "big"))


@dataclass(frozen=True)
class AmountLimitTerms:
    """Maximum cumulative transfer amount of one ERC-20 token.

    Parameters
    ----------
    token:
        Checksummed address of the token.
    max_amount:
        Limit in the token's minor units.
    """

    token: str
    max_amount: int

    KIND = CaveatKind.AMOUNT_LIMIT
    LENGTH = ADDRESS_BYTES + UINT256_BYTES

    def encode(self) -> bytes:
        if not Web3.is_address(self.token):
            raise ValueError(f"token {self.token!r} is not a valid address")
        token_bytes = Web3.to_bytes(hexstr=self.token)
        return token_bytes + _uint_to_bytes(self.max_amount, UINT256_BYTES, "max_amount")

    @classmethod
    def decode(cls, blob: bytes) -> "AmountLimitTerms":
        data = _require_length(blob, cls.LENGTH, cls.KIND)
        return cls(
            token=Web3.to_checksum_address(data[:ADDRESS_BYTES]),
            max_amount=int.from_bytes(data[ADDRESS_BYTES:], "big"),
        )

    def same_token(self, token: str) -> bool:
        """Return True if *token* is the token this limit applies to."""
        return self.token.lower() == token.lower()


@dataclass(frozen=True)
class TimeWindowTerms:
    """Half-open execution window ``[not_before, not_after)`` in unix seconds.

    A bound of 0 means that side of the window is open.
    """

    not_before: int = 0
    not_after: int = 0

    KIND = CaveatKind.TIME_WINDOW
    LENGTH = 2 * UINT128_BYTES

    def encode(self) -> bytes:
        return _uint_to_bytes(self.not_before, UINT128_BYTES, "not_before") + _uint_to_bytes(
            self.not_after, UINT128_BYTES, "not_after"
        )

    @classmethod
    def decode(cls, blob: bytes) -> "TimeWindowTerms":
        data = _require_length(blob, cls.LENGTH, cls.KIND)
        return cls(
            not_before=int.from_bytes(data[:UINT128_BYTES], "big"),
            not_after=int.from_bytes(data[UINT128_BYTES:], "big"),
        )

    def has_started(self, now: int) -> bool:
        return self.not_before == 0 or now >= self.not_before

    def has_expired(self, now: int) -> bool:
        return self.not_after != 0 and now >= self.not_after

    def contains(self, now: int) -> bool:
        """Return True if *now* lies within the window."""
        return self.has_started(now) and not self.has_expired(now)


RECIPIENT_ARGUMENT_OFFSET = 4
"""Calldata offset of the first argument, right after the 4-byte selector."""


@dataclass(frozen=True)
class RecipientTerms:
    """Pins the recipient argument of ``transfer(address,uint256)``.

    Stored as AllowedCalldataEnforcer terms: a uint256 calldata offset
    followed by the 32-byte ABI word expected there. The offset is always
    :data:`RECIPIENT_ARGUMENT_OFFSET`; any other offset fails to decode.
    """

    recipient: str

    KIND = CaveatKind.RECIPIENT
    LENGTH = 2 * UINT256_BYTES

    def encode(self) -> bytes:
        if not Web3.is_address(self.recipient):
            raise ValueError(f"recipient {self.recipient!r} is not a valid address")
        word = bytes(UINT256_BYTES - ADDRESS_BYTES) + Web3.to_bytes(hexstr=self.recipient)
        return _uint_to_bytes(RECIPIENT_ARGUMENT_OFFSET, UINT256_BYTES, "offset") + word

    @classmethod
    def decode(cls, blob: bytes) -> "RecipientTerms":
        data = _require_length(blob, cls.LENGTH, cls.KIND)
        offset = int.from_bytes(data[:UINT256_BYTES], "big")
        if offset != RECIPIENT_ARGUMENT_OFFSET:
            raise DecodeError(
                f"{cls.KIND.enforcer_name} terms pin calldata offset {offset}, "
                f"expected {RECIPIENT_ARGUMENT_OFFSET}"
            )
        word = data[UINT256_BYTES:]
        if any(word[: UINT256_BYTES - ADDRESS_BYTES]):
            raise DecodeError(f"{cls.KIND.enforcer_name} terms do not hold an address")
        return cls(recipient=Web3.to_checksum_address(word[-ADDRESS_BYTES:]))

    def allows(self, recipient: str) -> bool:
        return self.recipient.lower() == recipient.lower()


@dataclass(frozen=True)
class AllowedMethodsTerms:
    """Function selectors the executed call may use, packed 4 bytes each."""

    selectors: tuple[bytes, ...]

    KIND = CaveatKind.ALLOWED_METHODS
    SELECTOR_BYTES = 4

    def __post_init__(self) -> None:
        object.__setattr__(self, "selectors", tuple(bytes(s) for s in self.selectors))

    @classmethod
    def from_signatures(cls, signatures: Iterable[str]) -> "AllowedMethodsTerms":
        """Build terms from ``"name(type,...)"`` signatures or ``0x`` selectors."""
        return cls(selectors=tuple(selector_of(signature) for signature in signatures))

    def encode(self) -> bytes:
        if not self.selectors:
            raise ValueError("allowed methods need at least one selector")
        for selector in self.selectors:
            if len(selector) != self.SELECTOR_BYTES:
                raise ValueError(f"selector {selector.hex()} is not 4 bytes")
        return b"".join(self.selectors)

    @classmethod
    def decode(cls, blob: bytes) -> "AllowedMethodsTerms":
        data = bytes(blob)
        if not data or len(data) % cls.SELECTOR_BYTES:
            raise DecodeError(
                f"{cls.KIND.enforcer_name} terms must be a non-empty multiple of "
                f"{cls.SELECTOR_BYTES} bytes, got {len(data)}"
            )
        size = cls.SELECTOR_BYTES
        return cls(selectors=tuple(data[i : i + size] for i in range(0, len(data), size)))

    def allows(self, selector: bytes) -> bool:
        return bytes(selector) in self.selectors


@dataclass(frozen=True)
class CallLimitTerms:
    """Maximum number of times the delegation may be redeemed."""

    max_calls: int

    KIND = CaveatKind.CALL_LIMIT
    LENGTH = UINT256_BYTES

    def encode(self) -> bytes:
        return _uint_to_bytes(self.max_calls, UINT256_BYTES, "max_calls")

    @classmethod
    def decode(cls, blob: bytes) -> "CallLimitTerms":
        data = _require_length(blob, cls.LENGTH, cls.KIND)
        return cls(max_calls=int.from_bytes(data, "big"))


def selector_of(signature: str) -> bytes:
    """Return the 4-byte selector of *signature*, or parse a ``0x`` selector."""
    text = signature.strip()
    if text.startswith("0x"):
        selector = Web3.to_bytes(hexstr=text)
        if len(selector) != AllowedMethodsTerms.SELECTOR_BYTES:
            raise ValueError(f"selector {text!r} is not 4 bytes")
        return selector
    if "(" not in text or not text.endswith(")"):
        raise ValueError(f"{text!r} is neither a function signature nor a selector")
    return bytes(Web3.keccak(text=text.replace(" ", ""))[:4])


Terms = Union[
    ValueCeilingTerms,
    AmountLimitTerms,
    TimeWindowTerms,
    RecipientTerms,
    AllowedMethodsTerms,
    CallLimitTerms,
]

_TERMS_BY_KIND: dict[CaveatKind, type] = {
    CaveatKind.VALUE_CEILING: ValueCeilingTerms,
    CaveatKind.AMOUNT_LIMIT: AmountLimitTerms,
    CaveatKind.TIME_WINDOW: TimeWindowTerms,
    CaveatKind.RECIPIENT: RecipientTerms,
    CaveatKind.ALLOWED_METHODS: AllowedMethodsTerms,
    CaveatKind.CALL_LIMIT: CallLimitTerms,
}


def decode_terms(kind: CaveatKind, blob: bytes) -> Terms:
    """Decode *blob* using the layout of *kind*."""
    return _TERMS_BY_KIND[kind].decode(blob)
