"""Tests for scoped_delegation.delegation.hashing — structural hashes and signing digest."""
from __future__ import annotations

from dataclasses import replace

import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data
from web3 import Web3

from conftest import ALICE, ALICE_KEY, BOB, CAROL
from scoped_delegation.caveats import Caveat, TimeWindowTerms, ValueCeilingTerms
from scoped_delegation.config import NetworkConfig
from scoped_delegation.delegation.builder import DelegationBuilder
from scoped_delegation.delegation.hashing import (
    CAVEAT_TYPEHASH,
    DELEGATION_TYPEHASH,
    delegation_hash,
    delegation_hash_hex,
    domain_separator,
    hash_caveat,
    hash_caveats,
    signing_digest,
)
from scoped_delegation.delegation.model import Delegation
from scoped_delegation.signing.signer import LocalAccountSigner

EMPTY_KECCAK = "0xc5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"


@pytest.fixture()
def delegation(builder: DelegationBuilder) -> Delegation:
    return builder.build(ALICE, BOB, amount=1000, expiry_seconds=86_400)


class TestTypehashes:
    def test_typehashes_are_32_bytes_and_distinct(self) -> None:
        assert len(CAVEAT_TYPEHASH) == 32
        assert len(DELEGATION_TYPEHASH) == 32
        assert CAVEAT_TYPEHASH != DELEGATION_TYPEHASH


class TestCaveatHashing:
    def test_empty_caveat_list_hashes_to_empty_keccak(self) -> None:
        assert Web3.to_hex(hash_caveats([])) == EMPTY_KECCAK

    def test_args_are_not_hashed(self, config: NetworkConfig) -> None:
        caveat = Caveat.from_terms(ValueCeilingTerms(0), config.registry)
        with_args = replace(caveat, args=b"\x01\x02")
        assert hash_caveat(caveat) == hash_caveat(with_args)

    def test_terms_are_hashed(self, config: NetworkConfig) -> None:
        first = Caveat.from_terms(ValueCeilingTerms(0), config.registry)
        second = Caveat.from_terms(ValueCeilingTerms(1), config.registry)
        assert hash_caveat(first) != hash_caveat(second)

    def test_order_matters(self, config: NetworkConfig) -> None:
        a = Caveat.from_terms(ValueCeilingTerms(0), config.registry)
        b = Caveat.from_terms(TimeWindowTerms(0, 10), config.registry)
        assert hash_caveats([a, b]) != hash_caveats([b, a])


class TestDelegationHash:
    def test_deterministic(self, delegation: Delegation) -> None:
        copy = Delegation.from_dict(delegation.to_dict())
        assert delegation_hash(delegation) == delegation_hash(copy)

    def test_signature_excluded(self, delegation: Delegation) -> None:
        signed = delegation.with_signature(b"\x11" * 65)
        assert delegation_hash(signed) == delegation_hash(delegation)

    @pytest.mark.parametrize(
        "change",
        [
            {"delegate": CAROL},
            {"delegator": CAROL},
            {"salt": 1},
            {"authority": b"\x01" * 32},
        ],
    )
    def test_any_field_change_alters_hash(self, delegation: Delegation, change: dict) -> None:
        assert delegation_hash(replace(delegation, **change)) != delegation_hash(delegation)

    def test_caveat_reorder_alters_hash(self, delegation: Delegation) -> None:
        reordered = delegation.with_caveats(reversed(delegation.caveats))
        assert delegation_hash(reordered) != delegation_hash(delegation)

    def test_hex_form(self, delegation: Delegation) -> None:
        text = delegation_hash_hex(delegation)
        assert text.startswith("0x")
        assert len(text) == 66
        assert Web3.to_bytes(hexstr=text) == delegation_hash(delegation)


class TestSigningDigest:
    def test_digest_differs_from_struct_hash(
        self, delegation: Delegation, config: NetworkConfig
    ) -> None:
        assert signing_digest(delegation, config) != delegation_hash(delegation)

    def test_digest_is_domain_bound(self, delegation: Delegation, config: NetworkConfig) -> None:
        other_chain = config.model_copy(update={"chain_id": 8453})
        assert domain_separator(other_chain) != domain_separator(config)
        assert signing_digest(delegation, other_chain) != signing_digest(delegation, config)


# ---------------------------------------------------------------------------
# Agreement with eth_account's EIP-712 encoder
# ---------------------------------------------------------------------------

EIP712_TYPES = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "Caveat": [
        {"name": "enforcer", "type": "address"},
        {"name": "terms", "type": "bytes"},
    ],
    "Delegation": [
        {"name": "delegate", "type": "address"},
        {"name": "delegator", "type": "address"},
        {"name": "authority", "type": "bytes32"},
        {"name": "caveats", "type": "Caveat[]"},
        {"name": "salt", "type": "uint256"},
    ],
}


def typed_message(delegation: Delegation, config: NetworkConfig) -> dict:
    return {
        "types": EIP712_TYPES,
        "primaryType": "Delegation",
        "domain": {
            "name": "DelegationManager",
            "version": "1",
            "chainId": config.chain_id,
            "verifyingContract": config.delegation_manager,
        },
        "message": {
            "delegate": delegation.delegate,
            "delegator": delegation.delegator,
            "authority": delegation.authority,
            "caveats": [
                {"enforcer": c.enforcer, "terms": c.terms} for c in delegation.caveats
            ],
            "salt": delegation.salt,
        },
    }


class TestTypedDataAgreement:
    def test_struct_hash_matches_encoder(
        self, delegation: Delegation, config: NetworkConfig
    ) -> None:
        signable = encode_typed_data(full_message=typed_message(delegation, config))
        assert signable.header == domain_separator(config)
        assert signable.body == delegation_hash(delegation)

    def test_digest_matches_encoder(self, delegation: Delegation, config: NetworkConfig) -> None:
        signable = encode_typed_data(full_message=typed_message(delegation, config))
        expected = Web3.keccak(b"\x19" + signable.version + signable.header + signable.body)
        assert signing_digest(delegation, config) == bytes(expected)

    def test_sub_delegation_without_caveats(self, config: NetworkConfig) -> None:
        child = Delegation(delegate=CAROL, delegator=BOB, authority=b"\x07" * 32, salt=42)
        signable = encode_typed_data(full_message=typed_message(child, config))
        assert signable.body == delegation_hash(child)

    def test_signature_matches_typed_data_signature(
        self, delegation: Delegation, config: NetworkConfig
    ) -> None:
        signed = LocalAccountSigner.from_key(ALICE_KEY).sign_delegation(delegation, config)
        expected = Account.sign_typed_data(
            ALICE_KEY, full_message=typed_message(delegation, config)
        )
        assert signed.signature == bytes(expected.signature)
