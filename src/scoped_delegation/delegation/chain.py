"""Delegation chains — ordered leaf-to-root sequences with verified linkage.

A chain starts at the delegation being redeemed (the leaf) and follows
``authority`` links up to a root delegation. Each link's ``authority`` must
equal the hash of the next record, and each link's delegator must be the
delegate of the next record. Any break is a :class:`ChainIntegrityError`;
the chain is never assembled partially.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

from web3 import Web3

from scoped_delegation.delegation.hashing import delegation_hash
from scoped_delegation.delegation.model import Delegation
from scoped_delegation.errors import ChainIntegrityError


@dataclass(frozen=True)
class DelegationChain:
    """A verified delegation chain, ordered from leaf to root.

    Only :class:`ChainAssembler` should construct instances.
    """

    links: tuple[Delegation, ...]

    @property
    def leaf(self) -> Delegation:
        return self.links[0]

    @property
    def root(self) -> Delegation:
        return self.links[-1]

    def hashes(self) -> list[bytes]:
        """Return the hash of every link, leaf first."""
        return [delegation_hash(link) for link in self.links]

    def __iter__(self) -> Iterator[Delegation]:
        return iter(self.links)

    def __len__(self) -> int:
        return len(self.links)


class ChainAssembler:
    """Orders and verifies delegations for presentation to the DelegationManager.

    Parameters
    ----------
    max_depth:
        Maximum number of links accepted in one chain. Defaults to 8.
    """

    def __init__(self, max_depth: int = 8) -> None:
        self._max_depth = max_depth

    def assemble(self, leaf: Delegation, ancestors: Sequence[Delegation] = ()) -> DelegationChain:
        """Verify linkage and return the leaf-to-root chain.

        Parameters
        ----------
        leaf:
            The delegation being redeemed.
        ancestors:
            The leaf's recorded ancestors, ordered from its immediate parent
            to the root. Empty for a root leaf.

        Raises
        ------
        ChainIntegrityError
            If any authority does not match the next record's hash, a
            delegator is not the delegate of its parent, the sequence does
            not end at a root, or records remain after the root.
        """
        links = (leaf, *ancestors)
        if len(links) > self._max_depth:
            raise ChainIntegrityError(
                f"Chain of {len(links)} links exceeds the maximum depth of {self._max_depth}."
            )

        for position, (child, parent) in enumerate(zip(links, links[1:])):
            if child.is_root:
                raise ChainIntegrityError(
                    f"Link {position} is a root delegation but is followed by "
                    f"{len(links) - position - 1} more record(s)."
                )
            parent_hash = delegation_hash(parent)
            if child.authority != parent_hash:
                raise ChainIntegrityError(
                    f"Link {position} authority {Web3.to_hex(child.authority)} does not match "
                    f"the hash of its parent {Web3.to_hex(parent_hash)}."
                )
            if child.delegator != parent.delegate:
                raise ChainIntegrityError(
                    f"Link {position} delegator {child.delegator} is not the delegate "
                    f"{parent.delegate} of its parent."
                )

        if not links[-1].is_root:
            raise ChainIntegrityError(
                f"Chain does not terminate at a root delegation; missing parent "
                f"{Web3.to_hex(links[-1].authority)}."
            )
        return DelegationChain(links=links)
