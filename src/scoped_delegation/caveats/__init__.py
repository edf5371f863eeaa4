"""Caveats — constraint records and the binary codec for their terms.

Quick start
-----------
::

    from scoped_delegation.caveats import AmountLimitTerms, Caveat
    from scoped_delegation.config import NetworkConfig

    config = NetworkConfig()
    terms = AmountLimitTerms(token=config.token_address, max_amount=1_000_000_000)
    caveat = Caveat.from_terms(terms, config.registry)
    assert caveat.decode(config.registry) == terms
"""
from __future__ import annotations

from scoped_delegation.caveats.caveat import Caveat
from scoped_delegation.caveats.kinds import CaveatKind
from scoped_delegation.caveats.terms import (
    AllowedMethodsTerms,
    AmountLimitTerms,
    CallLimitTerms,
    RecipientTerms,
    Terms,
    TimeWindowTerms,
    ValueCeilingTerms,
    decode_terms,
    selector_of,
)

__all__ = [
    "AllowedMethodsTerms",
    "AmountLimitTerms",
    "CallLimitTerms",
    "Caveat",
    "CaveatKind",
    "RecipientTerms",
    "Terms",
    "TimeWindowTerms",
    "ValueCeilingTerms",
    "decode_terms",
    "selector_of",
]
