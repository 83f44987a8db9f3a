from __future__ import annotations
import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

from .chain import Chain, ChainLink
from .crypto import HEX, HashFn, combine, sha256
from .errors import (
    IndexOutOfRangeError,
    InvalidDigestError,
    InvariantViolation,
    ProofUnavailableError,
)
from .stack import SubtreeStack
from .tree import Node, join, trace

log = logging.getLogger(__name__)


def _is_power_of_two(n: int) -> bool:
    return n > 0 and n & (n - 1) == 0


@dataclass
class Subtree:
    """A complete subtree on the BigTree stack.

    Either detailed (records are real leaves linked up to `root`) or opaque:
    once reduced, a subtree is a single record holding only its digest, and
    any subtree built on top of an opaque one is opaque as well.
    """

    root: Node
    records: List[Node]
    leaf_count: int
    opaque: bool = False

    @classmethod
    def singleton(cls, digest: bytes) -> "Subtree":
        node = Node(digest)
        return cls(node, [node], 1)

    @property
    def digest(self) -> bytes:
        return self.root.digest

    @property
    def size(self) -> int:
        return len(self.records)

    def reduce(self) -> "Subtree":
        placeholder = Node(self.root.digest)
        return Subtree(placeholder, [placeholder], self.leaf_count, opaque=True)


class BigTree:
    """Merkle root over an unbounded leaf sequence in bounded memory.

    Only the roots of complete subtrees are kept, newest first; their leaf
    counts are the set bits of the total. A subtree whose detail reaches
    2**power records is reduced to its digest.
    """

    def __init__(self, power: int = 8, hash_fn: HashFn = sha256) -> None:
        if not isinstance(power, int) or isinstance(power, bool) or power < 1:
            raise ValueError(f"power must be an integer >= 1, got {power!r}")
        self.power = power
        self.max_size = 1 << power
        self.hash_fn = hash_fn
        self.digest_size = len(hash_fn(b""))
        self._stack: SubtreeStack[Subtree] = SubtreeStack()
        self._count = 0
        self._lock = threading.RLock()

    def _merge(self, left: Subtree, right: Subtree) -> Subtree:
        merged = Subtree(
            join(left.root, right.root, self.hash_fn),
            left.records + right.records,
            left.leaf_count + right.leaf_count,
            left.opaque or right.opaque,
        )
        if merged.size > self.max_size:
            raise InvariantViolation(
                f"subtree of {merged.size} records exceeds maximum {self.max_size}"
            )
        if merged.size == self.max_size:
            log.debug(
                "reducing subtree of %d leaves, digest %s",
                merged.leaf_count,
                HEX(merged.digest),
            )
            merged = merged.reduce()
        return merged

    def append(self, digest: bytes) -> bytes:
        if not isinstance(digest, (bytes, bytearray)) or len(digest) != self.digest_size:
            raise InvalidDigestError(f"digest must be {self.digest_size} bytes")
        with self._lock:
            new = Subtree.singleton(bytes(digest))
            while self._stack and _is_power_of_two(
                self._stack.peek().leaf_count + new.leaf_count  # type: ignore[union-attr]
            ):
                new = self._merge(self._stack.pop(), new)  # type: ignore[arg-type]
            self._stack.push(new)
            self._count += 1
            return self._root()

    def append_data(self, data: bytes) -> bytes:
        return self.append(self.hash_fn(data))

    def _root(self) -> Optional[bytes]:
        entries = iter(self._stack)
        top = next(entries, None)
        if top is None:
            return None
        acc = top.digest
        for entry in entries:
            # earlier subtrees sit to the left of everything appended after them
            acc = combine(entry.digest, acc, self.hash_fn)
        return acc

    @property
    def root(self) -> Optional[bytes]:
        with self._lock:
            return self._root()

    @property
    def hex_root(self) -> Optional[str]:
        root = self.root
        return HEX(root) if root is not None else None

    def __len__(self) -> int:
        return self._count

    def leaf_counts(self) -> List[int]:
        with self._lock:
            return [entry.leaf_count for entry in self._stack]

    def retained_records(self) -> int:
        with self._lock:
            return sum(entry.size for entry in self._stack)

    def get_chain(self, index: int) -> Chain:
        """Chain for a leaf that still has its detail.

        Produces the same chain a MerkleTree over the same leaves would.
        """
        with self._lock:
            if index < 0 or index >= self._count:
                raise IndexOutOfRangeError(f"leaf index {index} does not exist")
            entries = list(self._stack)
            offset = 0
            for pos in range(len(entries) - 1, -1, -1):
                entry = entries[pos]
                if index < offset + entry.leaf_count:
                    break
                offset += entry.leaf_count
            if entry.opaque:
                raise ProofUnavailableError(
                    f"leaf {index} is inside a reduced subtree of {entry.leaf_count} leaves"
                )
            links = trace(entry.records[index - offset])
            if pos > 0:
                acc = entries[0].digest
                for newer in entries[1:pos]:
                    acc = combine(newer.digest, acc, self.hash_fn)
                links.append(ChainLink(acc, False))
            for older in entries[pos + 1 :]:
                links.append(ChainLink(older.digest, True))
            if len(links) > 1:
                links.append(ChainLink(self._root(), False))  # type: ignore[arg-type]
            return Chain.of(links)
