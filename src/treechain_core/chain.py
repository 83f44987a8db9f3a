from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple

from .crypto import HEX, HashFn, combine, sha256
from .errors import IncompatibleChainsError


@dataclass(frozen=True)
class ChainLink:
    digest: bytes
    is_left: bool

    def as_hex(self) -> dict:
        return {"digest": HEX(self.digest), "left": self.is_left}


@dataclass(frozen=True)
class Chain:
    """Inclusion proof: leaf, the siblings met on the way up, then the endpoint.

    Carries data only; holds no reference back into the tree it came from.
    """

    links: Tuple[ChainLink, ...]

    @classmethod
    def of(cls, links: Iterable[ChainLink]) -> "Chain":
        return cls(tuple(links))

    @property
    def leaf(self) -> bytes:
        return self.links[0].digest

    @property
    def anchor(self) -> bytes:
        return self.links[-1].digest

    def __len__(self) -> int:
        return len(self.links)

    def __iter__(self) -> Iterator[ChainLink]:
        return iter(self.links)

    def __getitem__(self, i):
        return self.links[i]


def verify_chain(
    chain: Chain, anchor: Optional[bytes] = None, hash_fn: HashFn = sha256
) -> bool:
    """Recompute the endpoint from the leaf and compare.

    Only checks internal consistency unless `anchor` is given; callers must
    still match the leaf against their data and the endpoint against a root
    they trust.
    """
    if len(chain) == 0:
        return False
    link = chain[0].digest
    for record in chain.links[1:-1]:
        if record.is_left:
            link = combine(record.digest, link, hash_fn)
        else:
            link = combine(link, record.digest, hash_fn)
    if link != chain.anchor:
        return False
    return anchor is None or chain.anchor == anchor


def join_chains(low: Chain, high: Chain) -> Chain:
    """Splice a chain into a sub-tree onto a chain from the tree above it.

    The endpoint of `low` must be the leaf of `high`. That boundary digest is
    recomputed during verification, so it is dropped from the middle.
    """
    if len(low) == 0 or len(high) == 0 or low.anchor != high.leaf:
        raise IncompatibleChainsError("chains are not compatible")
    if len(low) == 1:
        return Chain(low.links + high.links[1:])
    if len(high) == 1:
        return low
    return Chain(low.links[:-1] + high.links[1:])
