#!/usr/bin/env python3
"""Example: Quickstart

Walks through the full delegation lifecycle against an offline ledger:
Alice grants Bob 1000 USDC for a day, Bob narrows it to 300 USDC for
Carol, Carol redeems a transfer, and Alice revokes the root grant.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install scoped-delegation
"""
from __future__ import annotations

import scoped_delegation
from scoped_delegation import (
    ChainAssembler,
    DelegationService,
    LocalAccountSigner,
    LocalLedger,
    NetworkConfig,
    delegation_hash_hex,
    summarize,
)
from scoped_delegation.errors import DelegationError

# Well-known development keys; never use them on a real network.
ALICE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
BOB_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
CAROL_KEY = "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a"
RECIPIENT = "0x90F79bf6EB2c4f870365E785982E1f101E93b906"


def main() -> None:
    print(f"scoped-delegation version: {scoped_delegation.__version__}")

    config = NetworkConfig()
    ledger = LocalLedger(config)
    alice = DelegationService(config, LocalAccountSigner.from_key(ALICE_KEY), ledger)
    bob = DelegationService(config, LocalAccountSigner.from_key(BOB_KEY), ledger)
    carol = DelegationService(config, LocalAccountSigner.from_key(CAROL_KEY), ledger)

    # Step 1: Alice grants Bob 1000 USDC for 24 hours
    root = alice.create_root(bob.address, amount="1000", expiry_seconds=86400)
    print(f"Root delegation: {delegation_hash_hex(root)}")
    for caveat in summarize(root, config).caveats:
        print(f"  {caveat.name}: {'; '.join(caveat.details)}")

    # Step 2: Bob narrows it for Carol
    child = bob.create_subdelegation(root, carol.address, amount="300", expiry_seconds=43200)
    print(f"Sub-delegation:  {delegation_hash_hex(child)}")

    # Step 3: An escalation attempt is rejected before signing
    result = bob.check_subdelegation(root, amount="1200", expiry_seconds=43200)
    print(f"Escalation to 1200 USDC valid: {result.valid} ({'; '.join(result.messages)})")

    # Step 4: Carol redeems 250 USDC through the chain
    chain = ChainAssembler().assemble(child, [root])
    outcome = carol.transfer(chain, RECIPIENT, "250")
    print(f"Transfer tx: {outcome.receipt.transaction_hash if outcome.receipt else None}")

    # Step 5: Alice revokes the root; Carol's chain stops working
    alice.revoke(root)
    try:
        carol.transfer(chain, RECIPIENT, "10")
    except DelegationError as exc:
        print(f"After revocation: {exc}")

    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()
