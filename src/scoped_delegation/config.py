"""NetworkConfig — which network, which contracts, which token.

Every component that needs to know an enforcer address, the token being
delegated or the EIP-712 signing domain receives a :class:`NetworkConfig`
at construction time. Defaults target the MetaMask Delegation Framework
v1.3.0 deployment on Base Sepolia with Circle's testnet USDC.
"""
from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from web3 import Web3

from scoped_delegation.caveats.kinds import CaveatKind

DEFAULT_CHAIN_ID: int = 84532
DEFAULT_RPC_URL: str = "https://sepolia.base.org"
DEFAULT_DELEGATION_MANAGER: str = "0xdb9B1e94B5b69Df7e401DDbedE43491141047dB3"
DEFAULT_USDC_ADDRESS: str = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"

DEFAULT_ENFORCERS: dict[CaveatKind, str] = {
    CaveatKind.VALUE_CEILING: "0x92Bf12322527cAA612fd31a0e810472BBB106A8F",
    CaveatKind.AMOUNT_LIMIT: "0xf100b0819427117EcF76Ed94B358B1A5b5C6D2Fc",
    CaveatKind.TIME_WINDOW: "0x1046bb45C8d673d4ea75321280DB34899413c069",
    CaveatKind.RECIPIENT: "0xc2b0d624c1c4319760C96503BA27C347F3260f55",
    CaveatKind.ALLOWED_METHODS: "0x2c21fD0Cb9DC8445CB3fb0DC5E7Bb0Aca01842B5",
    CaveatKind.CALL_LIMIT: "0x04658B29F6b82ed55274221a06Fc97D318E25416",
}

# Framework enforcers this client does not decode but can name in summaries.
DEFAULT_ENFORCER_LABELS: dict[str, str] = {
    "0x7F20f61b1f09b08D970938F6fa563634d65c4EeB": "AllowedTargetsEnforcer",
    "0xE144b0b2618071B4E56f746313528a669c7E65c5": "RedeemerEnforcer",
    "0xDE4f2FAC4B3D87A1d9953Ca5FC09FCa7F366254f": "NonceEnforcer",
}


def _checksum(value: str) -> str:
    # Letter case is normalised here, so mixed-case input is not checksum-verified.
    if not isinstance(value, str) or not Web3.is_address(value.lower()):
        raise ValueError(f"{value!r} is not a valid address")
    return Web3.to_checksum_address(value)


class EnforcerRegistry(BaseModel):
    """Immutable mapping between caveat kinds and enforcer contract addresses.

    Parameters
    ----------
    enforcers:
        Enforcer address for each known :class:`CaveatKind`.
    labels:
        Display names for additional enforcers that are recognised by
        name only. Caveats using them are treated as opaque.
    """

    model_config = ConfigDict(frozen=True)

    enforcers: dict[CaveatKind, str] = Field(default_factory=lambda: dict(DEFAULT_ENFORCERS))
    labels: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_ENFORCER_LABELS))

    @field_validator("enforcers")
    @classmethod
    def _checksum_enforcers(cls, value: dict[CaveatKind, str]) -> dict[CaveatKind, str]:
        missing = set(CaveatKind) - set(value)
        if missing:
            names = ", ".join(sorted(kind.value for kind in missing))
            raise ValueError(f"Enforcer registry is missing addresses for: {names}")
        checksummed = {kind: _checksum(address) for kind, address in value.items()}
        if len(set(checksummed.values())) != len(checksummed):
            raise ValueError("Each caveat kind must map to a distinct enforcer address")
        return checksummed

    @field_validator("labels")
    @classmethod
    def _checksum_labels(cls, value: dict[str, str]) -> dict[str, str]:
        return {_checksum(address): name for address, name in value.items()}

    def address_of(self, kind: CaveatKind) -> str:
        """Return the enforcer address for *kind*."""
        return self.enforcers[kind]

    def kind_of(self, enforcer: str) -> Optional[CaveatKind]:
        """Return the kind enforced at *enforcer*, or None for opaque enforcers."""
        target = enforcer.lower()
        for kind, address in self.enforcers.items():
            if address.lower() == target:
                return kind
        return None

    def label_of(self, enforcer: str) -> str:
        """Return a display name for *enforcer* (``"Unknown"`` when unrecognised)."""
        kind = self.kind_of(enforcer)
        if kind is not None:
            return kind.enforcer_name
        target = enforcer.lower()
        for address, name in self.labels.items():
            if address.lower() == target:
                return name
        return "Unknown"


class NetworkConfig(BaseModel):
    """Network, contract and token settings shared by every component.

    Parameters
    ----------
    chain_name:
        Human-readable network name, recorded in saved delegation files.
    chain_id:
        EIP-155 chain ID, part of the EIP-712 signing domain.
    rpc_url:
        JSON-RPC endpoint used by the web3 ledger client.
    delegation_manager:
        Address of the DelegationManager contract (EIP-712 verifying contract).
    domain_name, domain_version:
        EIP-712 domain name and version of the DelegationManager.
    token_address, token_decimals, token_symbol:
        The ERC-20 token whose balance is being delegated.
    registry:
        Enforcer addresses per caveat kind.
    """

    model_config = ConfigDict(frozen=True)

    chain_name: str = "Base Sepolia"
    chain_id: int = Field(default=DEFAULT_CHAIN_ID, gt=0)
    rpc_url: str = DEFAULT_RPC_URL
    delegation_manager: str = DEFAULT_DELEGATION_MANAGER
    domain_name: str = "DelegationManager"
    domain_version: str = "1"
    token_address: str = DEFAULT_USDC_ADDRESS
    token_decimals: int = Field(default=6, ge=0, le=77)
    token_symbol: str = "USDC"
    registry: EnforcerRegistry = Field(default_factory=EnforcerRegistry)

    @field_validator("delegation_manager", "token_address")
    @classmethod
    def _checksum_addresses(cls, value: str) -> str:
        return _checksum(value)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "NetworkConfig":
        """Build a config from defaults overridden by environment variables.

        Recognised variables: ``USDC_ADDRESS``, ``RPC_URL``, ``CHAIN_ID``,
        ``DELEGATION_MANAGER``.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        if env.get("USDC_ADDRESS"):
            overrides["token_address"] = env["USDC_ADDRESS"]
        if env.get("RPC_URL"):
            overrides["rpc_url"] = env["RPC_URL"]
        if env.get("CHAIN_ID"):
            overrides["chain_id"] = int(env["CHAIN_ID"])
        if env.get("DELEGATION_MANAGER"):
            overrides["delegation_manager"] = env["DELEGATION_MANAGER"]
        return cls(**overrides)
