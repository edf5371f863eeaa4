"""Web3LedgerClient — talks to a deployed DelegationManager over JSON-RPC."""
from __future__ import annotations

import logging
from typing import Any, Optional

from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import ContractLogicError, Web3Exception

from scoped_delegation.config import NetworkConfig
from scoped_delegation.delegation.hashing import delegation_hash_hex
from scoped_delegation.delegation.model import Delegation
from scoped_delegation.errors import ExternalFailure, IdentityMismatch
from scoped_delegation.ledger.base import LedgerClient, SimulationResult, TransactionReceipt
from scoped_delegation.ledger.encoding import RedemptionCall

logger = logging.getLogger(__name__)

_DELEGATION_TUPLE: dict[str, Any] = {
    "name": "delegation",
    "type": "tuple",
    "components": [
        {"name": "delegate", "type": "address"},
        {"name": "delegator", "type": "address"},
        {"name": "authority", "type": "bytes32"},
        {
            "name": "caveats",
            "type": "tuple[]",
            "components": [
                {"name": "enforcer", "type": "address"},
                {"name": "terms", "type": "bytes"},
                {"name": "args", "type": "bytes"},
            ],
        },
        {"name": "salt", "type": "uint256"},
        {"name": "signature", "type": "bytes"},
    ],
}

DELEGATION_MANAGER_ABI: list[dict[str, Any]] = [
    {
        "name": "redeemDelegations",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "_permissionContexts", "type": "bytes[]"},
            {"name": "_modes", "type": "bytes32[]"},
            {"name": "_executionCallDatas", "type": "bytes[]"},
        ],
        "outputs": [],
    },
    {
        "name": "disableDelegation",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [_DELEGATION_TUPLE],
        "outputs": [],
    },
    {
        "name": "disabledDelegations",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "delegationHash", "type": "bytes32"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
]


def _delegation_struct(delegation: Delegation) -> tuple[object, ...]:
    return (
        delegation.delegate,
        delegation.delegator,
        delegation.authority,
        [(c.enforcer, c.terms, c.args) for c in delegation.caveats],
        delegation.salt,
        delegation.signature,
    )


class Web3LedgerClient(LedgerClient):
    """Ledger client backed by ``web3``.

    Parameters
    ----------
    w3:
        Connected Web3 instance.
    config:
        Network configuration; supplies the DelegationManager address and chain ID.
    account:
        Local account used to sign submitted transactions. Read-only
        operations (simulate, is_revoked) work without one.
    """

    def __init__(
        self,
        w3: Web3,
        config: NetworkConfig,
        account: Optional[LocalAccount] = None,
    ) -> None:
        self._w3 = w3
        self._config = config
        self._account = account
        self._contract = w3.eth.contract(
            address=config.delegation_manager, abi=DELEGATION_MANAGER_ABI
        )

    @classmethod
    def from_config(
        cls, config: NetworkConfig, account: Optional[LocalAccount] = None
    ) -> "Web3LedgerClient":
        """Connect to ``config.rpc_url`` over HTTP."""
        return cls(Web3(Web3.HTTPProvider(config.rpc_url)), config, account)

    # ------------------------------------------------------------------
    # LedgerClient
    # ------------------------------------------------------------------

    def simulate(self, call: RedemptionCall, sender: str) -> SimulationResult:
        contexts, modes, executions = call.encoded_arguments()
        function = self._contract.functions.redeemDelegations(contexts, modes, executions)
        try:
            function.call({"from": Web3.to_checksum_address(sender)})
        except ContractLogicError as exc:
            logger.info("Simulation of redeemDelegations reverted: %s", exc)
            return SimulationResult(success=False, reason=str(exc))
        except (Web3Exception, OSError, ValueError) as exc:
            raise ExternalFailure("simulate", str(exc)) from exc
        return SimulationResult(success=True)

    def submit(self, call: RedemptionCall, sender: str) -> TransactionReceipt:
        contexts, modes, executions = call.encoded_arguments()
        function = self._contract.functions.redeemDelegations(contexts, modes, executions)
        return self._transact(function, sender, "redeemDelegations")

    def is_revoked(self, delegation_hash: bytes) -> bool:
        try:
            return bool(self._contract.functions.disabledDelegations(delegation_hash).call())
        except (Web3Exception, OSError, ValueError) as exc:
            raise ExternalFailure("disabledDelegations", str(exc)) from exc

    def disable(self, delegation: Delegation, sender: str) -> TransactionReceipt:
        if Web3.to_checksum_address(sender) != delegation.delegator:
            raise IdentityMismatch("delegator", delegation.delegator, sender)
        function = self._contract.functions.disableDelegation(_delegation_struct(delegation))
        receipt = self._transact(function, sender, "disableDelegation")
        logger.info(
            "disableDelegation for %s mined in tx %s",
            delegation_hash_hex(delegation),
            receipt.transaction_hash,
        )
        return receipt

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _transact(self, function: Any, sender: str, operation: str) -> TransactionReceipt:
        account = self._account
        if account is None:
            raise ExternalFailure(operation, "no local account configured for submission")
        if Web3.to_checksum_address(sender) != Web3.to_checksum_address(account.address):
            raise IdentityMismatch("sender", account.address, sender)

        try:
            transaction = function.build_transaction(
                {
                    "from": account.address,
                    "nonce": self._w3.eth.get_transaction_count(account.address),
                    "chainId": self._config.chain_id,
                }
            )
            signed = account.sign_transaction(transaction)
            tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
            logger.info("Submitted %s transaction %s", operation, Web3.to_hex(tx_hash))
            receipt = self._w3.eth.wait_for_transaction_receipt(tx_hash)
        except (Web3Exception, OSError, ValueError) as exc:
            raise ExternalFailure(operation, str(exc)) from exc

        return TransactionReceipt(
            transaction_hash=Web3.to_hex(tx_hash),
            success=receipt["status"] == 1,
            block_number=int(receipt["blockNumber"]),
            gas_used=int(receipt["gasUsed"]),
        )
