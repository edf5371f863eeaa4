"""Tests for scoped_delegation.ledger.local — the offline DelegationManager stand-in."""
from __future__ import annotations

import json

import pytest
from web3 import Web3

from conftest import ALICE, BOB, CAROL, DAVE, DAY, NOW, fixed_clock
from scoped_delegation.caveats import Caveat
from scoped_delegation.config import NetworkConfig
from scoped_delegation.delegation.builder import DelegationBuilder
from scoped_delegation.delegation.chain import ChainAssembler, DelegationChain
from scoped_delegation.delegation.hashing import delegation_hash
from scoped_delegation.delegation.model import Delegation
from scoped_delegation.errors import ExternalFailure, IdentityMismatch
from scoped_delegation.ledger.encoding import (
    SINGLE_CALL_MODE,
    Execution,
    RedemptionCall,
    encode_erc20_transfer,
)
from scoped_delegation.ledger.local import LocalLedger
from scoped_delegation.signing.signer import LocalAccountSigner


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def ledger(config: NetworkConfig) -> LocalLedger:
    return LocalLedger(config, clock=fixed_clock(NOW))


@pytest.fixture()
def root(
    builder: DelegationBuilder, alice_signer: LocalAccountSigner, config: NetworkConfig
) -> Delegation:
    unsigned = builder.build(ALICE, BOB, amount=1000, expiry_seconds=DAY)
    return alice_signer.sign_delegation(unsigned, config)


@pytest.fixture()
def child(
    builder: DelegationBuilder,
    bob_signer: LocalAccountSigner,
    config: NetworkConfig,
    root: Delegation,
) -> Delegation:
    unsigned = builder.build(
        BOB, CAROL, authority=delegation_hash(root), amount=300, expiry_seconds=DAY // 2
    )
    return bob_signer.sign_delegation(unsigned, config)


@pytest.fixture()
def root_chain(root: Delegation) -> DelegationChain:
    return ChainAssembler().assemble(root)


@pytest.fixture()
def child_chain(root: Delegation, child: Delegation) -> DelegationChain:
    return ChainAssembler().assemble(child, [root])


def transfer_call(chain: DelegationChain, config: NetworkConfig, amount: int) -> RedemptionCall:
    return RedemptionCall.for_transfer(chain, config, DAVE, amount)


# ---------------------------------------------------------------------------
# Redemption
# ---------------------------------------------------------------------------


class TestRedemption:
    def test_valid_transfer(
        self, ledger: LocalLedger, root_chain: DelegationChain, config: NetworkConfig
    ) -> None:
        call = transfer_call(root_chain, config, 500_000_000)
        assert ledger.simulate(call, BOB).success
        receipt = ledger.submit(call, BOB)
        assert receipt.success
        assert receipt.block_number == 1
        assert receipt.transaction_hash.startswith("0x")
        assert ledger.spent(delegation_hash(root_chain.root)) == 500_000_000

    def test_simulation_commits_nothing(
        self, ledger: LocalLedger, root_chain: DelegationChain, config: NetworkConfig
    ) -> None:
        ledger.simulate(transfer_call(root_chain, config, 1), BOB)
        assert ledger.spent(delegation_hash(root_chain.root)) == 0

    def test_cumulative_spend_enforced(
        self, ledger: LocalLedger, root_chain: DelegationChain, config: NetworkConfig
    ) -> None:
        ledger.submit(transfer_call(root_chain, config, 600_000_000), BOB)
        second = transfer_call(root_chain, config, 600_000_000)
        result = ledger.simulate(second, BOB)
        assert not result.success
        assert "allowance-exceeded" in result.reason
        with pytest.raises(ExternalFailure) as excinfo:
            ledger.submit(second, BOB)
        assert excinfo.value.operation == "redeemDelegations"

    def test_spend_recorded_on_every_link(
        self, ledger: LocalLedger, child_chain: DelegationChain, config: NetworkConfig
    ) -> None:
        ledger.submit(transfer_call(child_chain, config, 100_000_000), CAROL)
        assert [ledger.spent(h) for h in child_chain.hashes()] == [100_000_000, 100_000_000]

    def test_sender_must_be_leaf_delegate(
        self, ledger: LocalLedger, child_chain: DelegationChain, config: NetworkConfig
    ) -> None:
        result = ledger.simulate(transfer_call(child_chain, config, 1), BOB)
        assert not result.success
        assert "InvalidDelegate" in result.reason

    def test_unsigned_link_rejected(
        self,
        ledger: LocalLedger,
        builder: DelegationBuilder,
        config: NetworkConfig,
    ) -> None:
        chain = ChainAssembler().assemble(builder.build(ALICE, BOB, amount=10))
        result = ledger.simulate(transfer_call(chain, config, 1), BOB)
        assert "InvalidSignature" in result.reason

    def test_expired_delegation_rejected(
        self, config: NetworkConfig, root_chain: DelegationChain
    ) -> None:
        late = LocalLedger(config, clock=fixed_clock(NOW + DAY))
        result = late.simulate(transfer_call(root_chain, config, 1), BOB)
        assert not result.success
        assert "expired" in result.reason

    def test_native_value_rejected(
        self, ledger: LocalLedger, root_chain: DelegationChain, config: NetworkConfig
    ) -> None:
        execution = Execution(config.token_address, 1, encode_erc20_transfer(DAVE, 1))
        call = RedemptionCall(
            chains=(root_chain,), modes=(SINGLE_CALL_MODE,), executions=(execution,)
        )
        assert "value-too-high" in ledger.simulate(call, BOB).reason

    def test_non_token_execution_rejected(
        self, ledger: LocalLedger, root_chain: DelegationChain
    ) -> None:
        execution = Execution(DAVE, 0, b"")
        call = RedemptionCall(
            chains=(root_chain,), modes=(SINGLE_CALL_MODE,), executions=(execution,)
        )
        assert not ledger.simulate(call, BOB).success

    def test_opaque_enforcer_rejected(
        self,
        ledger: LocalLedger,
        builder: DelegationBuilder,
        alice_signer: LocalAccountSigner,
        config: NetworkConfig,
    ) -> None:
        base = builder.build(ALICE, BOB, amount=10)
        opaque = Caveat(enforcer=Web3.to_checksum_address("0x" + "88" * 20), terms=b"")
        signed = alice_signer.sign_delegation(
            base.with_caveats((*base.caveats, opaque)), config
        )
        chain = ChainAssembler().assemble(signed)
        assert "Unsupported enforcer" in ledger.simulate(transfer_call(chain, config, 1), BOB).reason

    def test_call_limit_enforced(
        self,
        ledger: LocalLedger,
        builder: DelegationBuilder,
        alice_signer: LocalAccountSigner,
        config: NetworkConfig,
    ) -> None:
        signed = alice_signer.sign_delegation(
            builder.build(ALICE, BOB, amount=10, max_calls=2), config
        )
        chain = ChainAssembler().assemble(signed)
        ledger.submit(transfer_call(chain, config, 1), BOB)
        ledger.submit(transfer_call(chain, config, 1), BOB)
        assert ledger.calls(delegation_hash(signed)) == 2

        result = ledger.simulate(transfer_call(chain, config, 1), BOB)
        assert not result.success
        assert "LimitedCallsEnforcer:limit-exceeded on link 0" in result.reason

    def test_disallowed_method_rejected(
        self,
        ledger: LocalLedger,
        builder: DelegationBuilder,
        alice_signer: LocalAccountSigner,
        config: NetworkConfig,
    ) -> None:
        signed = alice_signer.sign_delegation(
            builder.build(ALICE, BOB, amount=10, methods=["approve(address,uint256)"]), config
        )
        chain = ChainAssembler().assemble(signed)
        result = ledger.simulate(transfer_call(chain, config, 1), BOB)
        assert "AllowedMethodsEnforcer:method-not-allowed" in result.reason

    def test_pinned_recipient_enforced(
        self,
        ledger: LocalLedger,
        builder: DelegationBuilder,
        alice_signer: LocalAccountSigner,
        config: NetworkConfig,
    ) -> None:
        signed = alice_signer.sign_delegation(
            builder.build(ALICE, BOB, amount=10, recipient=CAROL), config
        )
        chain = ChainAssembler().assemble(signed)
        result = ledger.simulate(transfer_call(chain, config, 1), BOB)
        assert not result.success
        assert f"only allows transfers to {CAROL}" in result.reason

        to_carol = RedemptionCall.for_transfer(chain, config, CAROL, 1)
        assert ledger.simulate(to_carol, BOB).success


# ---------------------------------------------------------------------------
# Revocation
# ---------------------------------------------------------------------------


class TestRevocation:
    def test_disable_and_query(self, ledger: LocalLedger, root: Delegation) -> None:
        receipt = ledger.disable(root, ALICE)
        assert receipt.success
        assert ledger.is_revoked(delegation_hash(root))
        assert ledger.revoked_hashes() == frozenset({delegation_hash(root)})

    def test_only_delegator_may_disable(self, ledger: LocalLedger, root: Delegation) -> None:
        with pytest.raises(IdentityMismatch):
            ledger.disable(root, BOB)
        assert not ledger.is_revoked(delegation_hash(root))

    def test_disable_twice(self, ledger: LocalLedger, root: Delegation) -> None:
        ledger.disable(root, ALICE)
        with pytest.raises(ExternalFailure, match="AlreadyDisabled"):
            ledger.disable(root, ALICE)

    def test_revoking_parent_blocks_descendants(
        self,
        ledger: LocalLedger,
        root: Delegation,
        child_chain: DelegationChain,
        config: NetworkConfig,
    ) -> None:
        ledger.disable(root, ALICE)
        result = ledger.simulate(transfer_call(child_chain, config, 1), CAROL)
        assert not result.success
        assert "CannotUseADisabledDelegation: link 1" in result.reason


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class TestSnapshot:
    def test_restore_into_fresh_ledger(
        self,
        ledger: LocalLedger,
        root: Delegation,
        root_chain: DelegationChain,
        config: NetworkConfig,
    ) -> None:
        ledger.submit(transfer_call(root_chain, config, 5), BOB)
        ledger.disable(root, ALICE)
        snapshot = json.loads(json.dumps(ledger.snapshot()))

        restored = LocalLedger(config, clock=fixed_clock(NOW))
        restored.restore(snapshot)
        assert restored.is_revoked(delegation_hash(root))
        assert restored.spent(delegation_hash(root)) == 5
        assert restored.calls(delegation_hash(root)) == 1
        assert restored.snapshot() == ledger.snapshot()
