"""scoped-delegation — scoped ERC-7710 token delegations with verifiable narrowing.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import scoped_delegation
>>> scoped_delegation.__version__
'0.1.0'

Quick start
-----------
::

    from scoped_delegation import (
        NetworkConfig, DelegationService, LocalAccountSigner, LocalLedger,
    )

    config = NetworkConfig()
    alice = DelegationService(config, LocalAccountSigner.from_key(alice_key))
    root = alice.create_root(bob_address, amount="1000", expiry_seconds=86400)

    bob = DelegationService(config, LocalAccountSigner.from_key(bob_key))
    child = bob.create_subdelegation(root, carol_address, amount="300", expiry_seconds=43200)
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Configuration and errors
# ------------------------------------------------------------------
from scoped_delegation.config import EnforcerRegistry, NetworkConfig
from scoped_delegation.errors import (
    CaveatViolationError,
    ChainIntegrityError,
    DecodeError,
    DelegationError,
    ExternalFailure,
    IdentityMismatch,
    ScopeViolationError,
)

# ------------------------------------------------------------------
# Caveats
# ------------------------------------------------------------------
from scoped_delegation.caveats import (
    AllowedMethodsTerms,
    AmountLimitTerms,
    CallLimitTerms,
    Caveat,
    CaveatKind,
    RecipientTerms,
    TimeWindowTerms,
    ValueCeilingTerms,
    decode_terms,
)

# ------------------------------------------------------------------
# Delegations
# ------------------------------------------------------------------
from scoped_delegation.delegation import (
    ROOT_AUTHORITY,
    ChainAssembler,
    Delegation,
    DelegationBuilder,
    DelegationChain,
    chain_from_document,
    delegation_hash,
    delegation_hash_hex,
    load_document,
    save_document,
    to_document,
)

# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------
from scoped_delegation.validation import (
    ProposedTransfer,
    ScopeRequest,
    ScopeValidator,
    TransferValidator,
    ValidationResult,
    Violation,
    ViolationKind,
)

# ------------------------------------------------------------------
# Signing, ledgers and workflows
# ------------------------------------------------------------------
from scoped_delegation.signing import LocalAccountSigner, Signer, verify_signature
from scoped_delegation.ledger import LedgerClient, LocalLedger, RedemptionCall, Web3LedgerClient
from scoped_delegation.service import DelegationService, TransferOutcome
from scoped_delegation.summary import summarize

__all__ = [
    # version
    "__version__",
    # configuration
    "EnforcerRegistry",
    "NetworkConfig",
    # errors
    "CaveatViolationError",
    "ChainIntegrityError",
    "DecodeError",
    "DelegationError",
    "ExternalFailure",
    "IdentityMismatch",
    "ScopeViolationError",
    # caveats
    "AllowedMethodsTerms",
    "AmountLimitTerms",
    "CallLimitTerms",
    "Caveat",
    "CaveatKind",
    "RecipientTerms",
    "TimeWindowTerms",
    "ValueCeilingTerms",
    "decode_terms",
    # delegations
    "ROOT_AUTHORITY",
    "ChainAssembler",
    "Delegation",
    "DelegationBuilder",
    "DelegationChain",
    "chain_from_document",
    "delegation_hash",
    "delegation_hash_hex",
    "load_document",
    "save_document",
    "to_document",
    # validation
    "ProposedTransfer",
    "ScopeRequest",
    "ScopeValidator",
    "TransferValidator",
    "ValidationResult",
    "Violation",
    "ViolationKind",
    # signing, ledgers, workflows
    "DelegationService",
    "LedgerClient",
    "LocalAccountSigner",
    "LocalLedger",
    "RedemptionCall",
    "Signer",
    "TransferOutcome",
    "Web3LedgerClient",
    "summarize",
    "verify_signature",
]
