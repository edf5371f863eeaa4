"""Redemption call encoding for ``DelegationManager.redeemDelegations``.

``redeemDelegations(bytes[] permissionContexts, bytes32[] modes, bytes[] executionCallDatas)``
takes, per execution:

* a permission context: ``abi.encode(Delegation[])`` of the chain, leaf first;
* an ERC-7579 execution mode;
* execution calldata: ``target ‖ value ‖ callData`` packed (single call).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from eth_abi import decode, encode
from eth_abi.packed import encode_packed
from web3 import Web3

from scoped_delegation.config import NetworkConfig
from scoped_delegation.delegation.chain import DelegationChain
from scoped_delegation.errors import DecodeError

SINGLE_CALL_MODE: bytes = b"\x00" * 32
BATCH_CALL_MODE: bytes = b"\x01" + b"\x00" * 31

ERC20_TRANSFER_SELECTOR: bytes = bytes(Web3.keccak(text="transfer(address,uint256)")[:4])

DELEGATION_ARRAY_TYPE = "(address,address,bytes32,(address,bytes,bytes)[],uint256,bytes)[]"


def encode_permission_context(chain: DelegationChain) -> bytes:
    """ABI-encode *chain* as the ``Delegation[]`` permission context."""
    delegations = [
        (
            link.delegate,
            link.delegator,
            link.authority,
            [(c.enforcer, c.terms, c.args) for c in link.caveats],
            link.salt,
            link.signature,
        )
        for link in chain
    ]
    return encode([DELEGATION_ARRAY_TYPE], [delegations])


def encode_erc20_transfer(recipient: str, amount: int) -> bytes:
    """Return calldata for ``transfer(address,uint256)``."""
    return ERC20_TRANSFER_SELECTOR + encode(
        ["address", "uint256"], [Web3.to_checksum_address(recipient), amount]
    )


def decode_erc20_transfer(call_data: bytes) -> tuple[str, int]:
    """Return ``(recipient, amount)`` from ``transfer(address,uint256)`` calldata.

    Raises
    ------
    DecodeError
        If *call_data* is not a transfer call.
    """
    if len(call_data) != 68 or call_data[:4] != ERC20_TRANSFER_SELECTOR:
        raise DecodeError("Calldata is not an ERC-20 transfer(address,uint256) call")
    recipient, amount = decode(["address", "uint256"], call_data[4:])
    return Web3.to_checksum_address(recipient), int(amount)


@dataclass(frozen=True)
class Execution:
    """A single call executed on the delegator's behalf."""

    target: str
    value: int
    call_data: bytes

    def encode(self) -> bytes:
        """Return ERC-7579 single-call execution calldata."""
        return encode_packed(
            ["address", "uint256", "bytes"],
            [Web3.to_checksum_address(self.target), self.value, self.call_data],
        )

    @classmethod
    def decode(cls, blob: bytes) -> "Execution":
        """Parse single-call execution calldata produced by :meth:`encode`."""
        if len(blob) < 52:
            raise DecodeError(f"Execution calldata too short ({len(blob)} bytes, need >= 52)")
        return cls(
            target=Web3.to_checksum_address(blob[:20]),
            value=int.from_bytes(blob[20:52], "big"),
            call_data=bytes(blob[52:]),
        )

    def token_transfer(self) -> Optional[tuple[str, int]]:
        """Return ``(recipient, amount)`` if this is an ERC-20 transfer, else None."""
        try:
            return decode_erc20_transfer(self.call_data)
        except DecodeError:
            return None


@dataclass(frozen=True)
class RedemptionCall:
    """Arguments for one ``redeemDelegations`` invocation."""

    chains: tuple[DelegationChain, ...]
    modes: tuple[bytes, ...]
    executions: tuple[Execution, ...]

    def __post_init__(self) -> None:
        if not (len(self.chains) == len(self.modes) == len(self.executions)):
            raise ValueError("chains, modes and executions must have the same length")

    @classmethod
    def for_transfer(
        cls,
        chain: DelegationChain,
        config: NetworkConfig,
        recipient: str,
        amount: int,
    ) -> "RedemptionCall":
        """Build a single-call redemption transferring *amount* minor units."""
        execution = Execution(
            target=config.token_address,
            value=0,
            call_data=encode_erc20_transfer(recipient, amount),
        )
        return cls(chains=(chain,), modes=(SINGLE_CALL_MODE,), executions=(execution,))

    def encoded_arguments(self) -> tuple[list[bytes], list[bytes], list[bytes]]:
        """Return the three ``redeemDelegations`` argument arrays."""
        return (
            [encode_permission_context(chain) for chain in self.chains],
            list(self.modes),
            [execution.encode() for execution in self.executions],
        )
