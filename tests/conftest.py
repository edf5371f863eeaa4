"""Shared fixtures: well-known development keys, a fixed clock and the default network."""
from __future__ import annotations

from typing import Callable

import pytest
from web3 import Web3

from scoped_delegation.config import NetworkConfig
from scoped_delegation.delegation.builder import DelegationBuilder
from scoped_delegation.signing.signer import LocalAccountSigner

# Hardhat / Anvil default development accounts.
ALICE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
BOB_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
CAROL_KEY = "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a"

ALICE = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
BOB = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
CAROL = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
DAVE = Web3.to_checksum_address("0x90f79bf6eb2c4f870365e785982e1f101e93b906")

NOW = 1_700_000_000
DAY = 86_400


def fixed_clock(value: float = NOW) -> Callable[[], float]:
    return lambda: value


@pytest.fixture()
def config() -> NetworkConfig:
    return NetworkConfig()


@pytest.fixture()
def clock() -> Callable[[], float]:
    return fixed_clock()


@pytest.fixture()
def builder(config: NetworkConfig, clock: Callable[[], float]) -> DelegationBuilder:
    return DelegationBuilder(config, clock=clock)


@pytest.fixture()
def alice_signer() -> LocalAccountSigner:
    return LocalAccountSigner.from_key(ALICE_KEY)


@pytest.fixture()
def bob_signer() -> LocalAccountSigner:
    return LocalAccountSigner.from_key(BOB_KEY)


@pytest.fixture()
def carol_signer() -> LocalAccountSigner:
    return LocalAccountSigner.from_key(CAROL_KEY)
