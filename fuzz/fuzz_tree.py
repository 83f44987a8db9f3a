"""Fuzz harness: bulk build, one-at-a-time append and BigTree must agree."""
from __future__ import annotations
import atheris
import sys
import hashlib

with atheris.instrument_imports():
    from treechain_core.bigtree import BigTree
    from treechain_core.chain import verify_chain
    from treechain_core.tree import MerkleTree


def TestOneInput(data: bytes):  # noqa: N802
    if len(data) < 2:
        return
    # First byte picks the BigTree power, second the chunk size; the rest
    # is split into bounded pseudo-leaves to avoid quadratic blowups.
    power = 1 + data[0] % 6
    size = max(1, min(32, data[1]))
    body = data[2:]
    chunks = [body[i : i + size] for i in range(0, min(len(body), size * 64), size)]
    leaves = [hashlib.sha256(c).digest() for c in chunks if c]
    if not leaves:
        return
    built = MerkleTree.from_leaves(leaves)
    appended = MerkleTree()
    bt = BigTree(power)
    for leaf in leaves:
        a = appended.append(leaf)
        b = bt.append(leaf)
        if a != b:
            raise RuntimeError("BigTree root diverged from full tree")
    if built.root != appended.root:
        raise RuntimeError("append root diverged from build root")
    idx = data[-1] % len(leaves)
    if not verify_chain(built.get_chain(idx), built.root):
        raise RuntimeError("valid chain failed")


def main():
    atheris.Setup(sys.argv, TestOneInput, enable_python_coverage=True)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
