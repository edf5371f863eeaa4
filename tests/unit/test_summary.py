"""Tests for scoped_delegation.summary — human-readable scope summaries."""
from __future__ import annotations

from web3 import Web3

from conftest import ALICE, BOB, DAVE, DAY, NOW
from scoped_delegation.caveats import Caveat, CaveatKind, ValueCeilingTerms
from scoped_delegation.config import NetworkConfig
from scoped_delegation.delegation.builder import TOKEN_METHODS, DelegationBuilder
from scoped_delegation.delegation.hashing import delegation_hash, delegation_hash_hex
from scoped_delegation.delegation.model import Delegation
from scoped_delegation.summary import summarize


class TestSummarize:
    def test_full_delegation(self, builder: DelegationBuilder, config: NetworkConfig) -> None:
        delegation = builder.build(ALICE, BOB, amount="1000", expiry_seconds=DAY)
        summary = summarize(delegation, config, now=NOW)

        assert summary.delegation_hash == delegation_hash_hex(delegation)
        assert summary.is_root
        assert summary.parent_hash is None
        assert [c.name for c in summary.caveats] == [
            "ValueLteEnforcer",
            "ERC20TransferAmountEnforcer",
            "TimestampEnforcer",
        ]
        assert "Max native value: 0 (token transfers only)" in summary.caveats[0].details
        assert "Maximum amount: 1000 USDC" in summary.caveats[1].details
        assert summary.caveats[2].status == "active"
        assert "1d 0h 0m remaining" in summary.caveats[2].details
        assert summary.warnings == ["Delegation is not signed."]

    def test_expired_and_pending_windows(
        self, builder: DelegationBuilder, config: NetworkConfig
    ) -> None:
        delegation = builder.build(ALICE, BOB, amount=1, expiry_seconds=60)
        assert summarize(delegation, config, now=NOW + 120).caveats[-1].status == "expired"

        pending = builder.build(ALICE, BOB, amount=1, not_before=NOW + 3600)
        assert summarize(pending, config, now=NOW).caveats[-1].status == "pending"

    def test_restriction_details(self, builder: DelegationBuilder, config: NetworkConfig) -> None:
        delegation = builder.build(
            ALICE, BOB, amount=1, recipient=DAVE, methods=TOKEN_METHODS, max_calls=4
        )
        caveats = summarize(delegation, config, now=NOW).caveats[2:]
        assert [c.name for c in caveats] == [
            "AllowedCalldataEnforcer",
            "AllowedMethodsEnforcer",
            "LimitedCallsEnforcer",
        ]
        assert caveats[0].details == [f"Recipient: {DAVE}"]
        assert caveats[1].details == ["Allowed selectors: 0xa9059cbb, 0x095ea7b3"]
        assert caveats[2].details == ["Maximum redemptions: 4"]
        assert all(c.status == "active" for c in caveats)

    def test_no_caveats_warning(self, config: NetworkConfig) -> None:
        bare = Delegation(delegate=BOB, delegator=ALICE, signature=b"\x01" * 65)
        summary = summarize(bare, config, now=NOW)
        assert summary.caveats == []
        assert len(summary.warnings) == 1
        assert summary.warnings[0].startswith("NO CAVEATS")

    def test_missing_amount_limit_warning(
        self, builder: DelegationBuilder, config: NetworkConfig
    ) -> None:
        delegation = builder.build(ALICE, BOB, expiry_seconds=DAY)
        warnings = summarize(delegation, config, now=NOW).warnings
        assert "No amount limit - the delegate may transfer any amount." in warnings

    def test_opaque_and_undecodable(self, config: NetworkConfig) -> None:
        registry = config.registry
        opaque = Caveat(
            enforcer=Web3.to_checksum_address("0xde4f2fac4b3d87a1d9953ca5fc09fca7f366254f"),
            terms=b"\x05",
        )
        broken = Caveat(enforcer=registry.address_of(CaveatKind.TIME_WINDOW), terms=b"\x00")
        delegation = Delegation(delegate=BOB, delegator=ALICE, caveats=(opaque, broken))
        summary = summarize(delegation, config, now=NOW)
        assert summary.caveats[0].name == "NonceEnforcer"
        assert summary.caveats[0].status == "opaque"
        assert summary.caveats[0].terms_hex == "0x05"
        assert summary.caveats[1].status == "undecodable"

    def test_sub_delegation_parent(
        self, builder: DelegationBuilder, config: NetworkConfig
    ) -> None:
        parent = builder.build(ALICE, BOB, amount=10)
        child = builder.build(BOB, ALICE, authority=delegation_hash(parent), amount=1)
        summary = summarize(child, config, now=NOW)
        assert not summary.is_root
        assert summary.parent_hash == delegation_hash_hex(parent)

    def test_native_value_ceiling(self, config: NetworkConfig) -> None:
        caveat = Caveat.from_terms(ValueCeilingTerms(10**18), config.registry)
        delegation = Delegation(delegate=BOB, delegator=ALICE, caveats=(caveat,))
        assert "Max native value: 1 ETH" in summarize(delegation, config).caveats[0].details
