"""Delegation signing and signature recovery."""
from __future__ import annotations

from scoped_delegation.signing.signer import (
    LocalAccountSigner,
    Signer,
    recover_signer,
    verify_signature,
)

__all__ = [
    "LocalAccountSigner",
    "Signer",
    "recover_signer",
    "verify_signature",
]
