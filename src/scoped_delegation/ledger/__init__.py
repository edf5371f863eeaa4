"""Ledger clients and redemption call encoding.

Quick start
-----------
::

    from scoped_delegation.ledger import LocalLedger, RedemptionCall

    ledger = LocalLedger(config)
    call = RedemptionCall.for_transfer(chain, config, recipient, 500_000_000)
    if ledger.simulate(call, sender=chain.leaf.delegate).success:
        ledger.submit(call, sender=chain.leaf.delegate)
"""
from __future__ import annotations

from scoped_delegation.ledger.base import LedgerClient, SimulationResult, TransactionReceipt
from scoped_delegation.ledger.encoding import (
    BATCH_CALL_MODE,
    SINGLE_CALL_MODE,
    Execution,
    RedemptionCall,
    decode_erc20_transfer,
    encode_erc20_transfer,
    encode_permission_context,
)
from scoped_delegation.ledger.local import LocalLedger
from scoped_delegation.ledger.web3_client import DELEGATION_MANAGER_ABI, Web3LedgerClient

__all__ = [
    "BATCH_CALL_MODE",
    "DELEGATION_MANAGER_ABI",
    "Execution",
    "LedgerClient",
    "LocalLedger",
    "RedemptionCall",
    "SINGLE_CALL_MODE",
    "SimulationResult",
    "TransactionReceipt",
    "Web3LedgerClient",
    "decode_erc20_transfer",
    "encode_erc20_transfer",
    "encode_permission_context",
]
