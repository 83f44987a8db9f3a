from __future__ import annotations
import json
import logging
import threading
import weakref
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .chain import Chain, ChainLink
from .crypto import HEX, HashFn, combine, sha256
from .errors import EmptyInputError, IndexOutOfRangeError, InvalidDigestError

log = logging.getLogger(__name__)


class Node:
    """Tree node. Owns its children; the parent link is a weak back-reference."""

    __slots__ = ("digest", "is_left", "left", "right", "_parent", "__weakref__")

    def __init__(self, digest: bytes) -> None:
        self.digest = digest
        self.is_left = False
        self.left: Optional[Node] = None
        self.right: Optional[Node] = None
        self._parent: Optional[weakref.ref] = None

    @property
    def parent(self) -> Optional["Node"]:
        return self._parent() if self._parent is not None else None

    def sibling(self) -> "Node":
        parent = self.parent
        if parent is None:
            raise LookupError("node has no parent, so no sibling")
        return parent.right if self.is_left else parent.left  # type: ignore[return-value]

    def adopt(self, left: "Node", right: "Node") -> None:
        self.left, self.right = left, right
        left.is_left, right.is_left = True, False
        left._parent = right._parent = weakref.ref(self)

    def link(self) -> ChainLink:
        return ChainLink(self.digest, self.is_left)

    def __str__(self) -> str:
        return json.dumps(self.link().as_hex())


def join(left: Node, right: Node, hash_fn: HashFn = sha256) -> Node:
    """New parent over two nodes; the children's digests are left untouched."""
    parent = Node(combine(left.digest, right.digest, hash_fn))
    parent.adopt(left, right)
    return parent


def trace(node: Node) -> List[ChainLink]:
    """The node's own record followed by each sibling up to, not including, the top."""
    links = [node.link()]
    while node.parent is not None:
        links.append(node.sibling().link())
        node = node.parent
    return links


def _highest_power_of_two(n: int) -> int:
    return 1 << (n.bit_length() - 1)


@dataclass(frozen=True)
class Leaves:
    """Persisted form of a tree: the leaf digests in append order."""

    count: int
    digests: Tuple[bytes, ...]


class MerkleTree:
    def __init__(self, hash_fn: HashFn = sha256) -> None:
        self.hash_fn = hash_fn
        self.digest_size = len(hash_fn(b""))
        self.root_node: Optional[Node] = None
        self.leaves: List[Node] = []
        self._lock = threading.RLock()

    @classmethod
    def from_leaves(
        cls, digests: Iterable[bytes], hash_fn: HashFn = sha256
    ) -> "MerkleTree":
        tree = cls(hash_fn)
        tree.leaves = [Node(tree._check(d)) for d in digests]
        tree.build()
        return tree

    @classmethod
    def from_data(
        cls, items: Iterable[bytes], hash_fn: HashFn = sha256
    ) -> "MerkleTree":
        return cls.from_leaves((hash_fn(item) for item in items), hash_fn)

    @classmethod
    def from_export(cls, leaves: Leaves, hash_fn: HashFn = sha256) -> "MerkleTree":
        if leaves.count != len(leaves.digests):
            raise ValueError(
                f"leaf count {leaves.count} does not match {len(leaves.digests)} digests"
            )
        return cls.from_leaves(leaves.digests, hash_fn)

    def _check(self, digest: bytes) -> bytes:
        if not isinstance(digest, (bytes, bytearray)):
            raise InvalidDigestError(f"digest must be bytes, got {type(digest).__name__}")
        if len(digest) != self.digest_size:
            raise InvalidDigestError(
                f"digest must be {self.digest_size} bytes, got {len(digest)}"
            )
        return bytes(digest)

    def build(self) -> bytes:
        """Pair nodes level by level; an odd last node is carried up unhashed."""
        with self._lock:
            if not self.leaves:
                raise EmptyInputError("no leaves to build")
            layer = list(self.leaves)
            while len(layer) > 1:
                nxt = [
                    join(layer[i], layer[i + 1], self.hash_fn)
                    for i in range(0, len(layer) - 1, 2)
                ]
                if len(layer) % 2 == 1:
                    nxt.append(layer[-1])
                layer = nxt
            self.root_node = layer[0]
            log.debug("built tree of %d leaves, root %s", len(self.leaves), self.hex_root)
            return self.root_node.digest

    def _whole_subtrees(self) -> List[Node]:
        """Roots of the complete subtrees spanning all leaves, largest first.

        Their sizes are the binary digits of the leaf count.
        """
        subtrees: List[Node] = []
        node = self.root_node
        if node is None:
            return subtrees
        loose = len(self.leaves) - _highest_power_of_two(len(self.leaves))
        while loose:
            subtrees.append(node.left)  # type: ignore[arg-type]
            node = node.right  # type: ignore[assignment]
            loose -= _highest_power_of_two(loose)
        subtrees.append(node)  # type: ignore[arg-type]
        return subtrees

    def append(self, digest: bytes) -> bytes:
        """Add one leaf, touching one node per set bit of the leaf count."""
        with self._lock:
            node = Node(self._check(digest))
            subtrees = self._whole_subtrees()
            self.leaves.append(node)
            for subtree in reversed(subtrees):
                node = join(subtree, node, self.hash_fn)
            self.root_node = node
            return node.digest

    def append_data(self, data: bytes) -> bytes:
        return self.append(self.hash_fn(data))

    @property
    def root(self) -> Optional[bytes]:
        with self._lock:
            return self.root_node.digest if self.root_node is not None else None

    @property
    def hex_root(self) -> Optional[str]:
        root = self.root
        return HEX(root) if root is not None else None

    def __len__(self) -> int:
        return len(self.leaves)

    def get_chain(self, index: int) -> Chain:
        with self._lock:
            if index < 0 or index >= len(self.leaves):
                raise IndexOutOfRangeError(f"leaf index {index} does not exist")
            leaf = self.leaves[index]
            links = trace(leaf)
            if leaf.parent is not None:
                links.append(self.root_node.link())  # type: ignore[union-attr]
            return Chain.of(links)

    def get_all_chains(self) -> List[Chain]:
        with self._lock:
            return [self.get_chain(i) for i in range(len(self.leaves))]

    def export_leaves(self) -> Leaves:
        with self._lock:
            return Leaves(len(self.leaves), tuple(n.digest for n in self.leaves))

