"""Tests for scoped_delegation.delegation.model — the Delegation record."""
from __future__ import annotations

import pytest
from web3 import Web3

from conftest import ALICE, BOB
from scoped_delegation.caveats import Caveat, CaveatKind, ValueCeilingTerms
from scoped_delegation.config import NetworkConfig
from scoped_delegation.delegation.builder import DelegationBuilder
from scoped_delegation.delegation.model import ROOT_AUTHORITY, Delegation


class TestConstruction:
    def test_addresses_are_checksummed(self) -> None:
        delegation = Delegation(delegate=BOB.lower(), delegator=ALICE.lower())
        assert delegation.delegate == BOB
        assert delegation.delegator == ALICE

    def test_defaults(self) -> None:
        delegation = Delegation(delegate=BOB, delegator=ALICE)
        assert delegation.authority == ROOT_AUTHORITY
        assert delegation.caveats == ()
        assert delegation.salt == 0
        assert delegation.signature == b""

    def test_invalid_address_rejected(self) -> None:
        with pytest.raises(ValueError, match="delegate"):
            Delegation(delegate="0x1234", delegator=ALICE)

    def test_short_authority_rejected(self) -> None:
        with pytest.raises(ValueError, match="32 bytes"):
            Delegation(delegate=BOB, delegator=ALICE, authority=b"\x00" * 31)

    @pytest.mark.parametrize("salt", [-1, True, "5"])
    def test_invalid_salt_rejected(self, salt: object) -> None:
        with pytest.raises(ValueError, match="salt"):
            Delegation(delegate=BOB, delegator=ALICE, salt=salt)  # type: ignore[arg-type]

    def test_immutable(self) -> None:
        delegation = Delegation(delegate=BOB, delegator=ALICE)
        with pytest.raises(AttributeError):
            delegation.salt = 5  # type: ignore[misc]


class TestDerivation:
    def test_with_signature_returns_new_record(self) -> None:
        delegation = Delegation(delegate=BOB, delegator=ALICE)
        signed = delegation.with_signature(b"\x01" * 65)
        assert signed.is_signed
        assert not delegation.is_signed

    def test_with_caveats_clears_signature(self, config: NetworkConfig) -> None:
        signed = Delegation(delegate=BOB, delegator=ALICE, signature=b"\x01" * 65)
        caveat = Caveat.from_terms(ValueCeilingTerms(0), config.registry)
        updated = signed.with_caveats([caveat])
        assert updated.caveats == (caveat,)
        assert not updated.is_signed


class TestCaveatAccess:
    def test_find_and_decode(self, builder: DelegationBuilder, config: NetworkConfig) -> None:
        delegation = builder.build(ALICE, BOB, amount=1000)
        assert delegation.find_caveat(CaveatKind.AMOUNT_LIMIT, config.registry) is not None
        assert delegation.find_caveat(CaveatKind.TIME_WINDOW, config.registry) is None
        assert delegation.decoded_terms(CaveatKind.TIME_WINDOW, config.registry) is None

    def test_opaque_caveats(self, config: NetworkConfig) -> None:
        opaque = Caveat(enforcer=Web3.to_checksum_address("0x" + "cd" * 20), terms=b"\x01")
        known = Caveat.from_terms(ValueCeilingTerms(0), config.registry)
        delegation = Delegation(delegate=BOB, delegator=ALICE, caveats=(known, opaque))
        assert delegation.opaque_caveats(config.registry) == [opaque]


class TestSerialization:
    def test_salt_written_as_decimal_string(self, builder: DelegationBuilder) -> None:
        delegation = builder.build(ALICE, BOB, amount=1)
        data = delegation.to_dict()
        assert data["salt"] == str(delegation.salt)
        assert data["authority"] == "0x" + "00" * 32
        assert data["signature"] == "0x"

    def test_from_dict_restores_record(self, builder: DelegationBuilder) -> None:
        delegation = builder.build(ALICE, BOB, amount=1).with_signature(b"\x02" * 65)
        assert Delegation.from_dict(delegation.to_dict()) == delegation

    def test_from_dict_requires_fields(self) -> None:
        with pytest.raises(KeyError):
            Delegation.from_dict({"delegate": BOB})
