"""Chain verification fuzzing with mutated and joined chains."""
from __future__ import annotations
import atheris
import sys
import hashlib
import random

with atheris.instrument_imports():
    from treechain_core.chain import Chain, ChainLink, join_chains, verify_chain
    from treechain_core.tree import MerkleTree


def TestOneInput(data: bytes):  # noqa: N802
    if len(data) < 8:
        return
    seed = int.from_bytes(data[:4], 'little')
    random.seed(seed)
    chunk_len = 1 + (data[4] % 32)
    body = data[5:]
    leaves_raw = [body[i:i+chunk_len] for i in range(0, min(len(body), chunk_len * 16), chunk_len)]
    # distinct leaves, so a flipped side flag always changes the result
    leaves = list(dict.fromkeys(hashlib.sha256(x).digest() for x in leaves_raw if x))
    if len(leaves) < 3:
        return
    tree = MerkleTree.from_leaves(leaves)
    idx = seed % len(leaves)
    chain = tree.get_chain(idx)
    links = list(chain.links)
    roll = random.random()
    if roll < 0.2:
        pos = random.randrange(len(links))
        d, side = links[pos].digest, links[pos].is_left
        links[pos] = ChainLink(bytes([d[0] ^ 0x01]) + d[1:], side)
        if verify_chain(Chain.of(links), tree.root):
            raise RuntimeError("tampered chain unexpectedly verified")
    elif roll < 0.4 and len(links) > 2:
        pos = random.randrange(1, len(links) - 1)
        links[pos] = ChainLink(links[pos].digest, not links[pos].is_left)
        if verify_chain(Chain.of(links), tree.root):
            raise RuntimeError("flipped side flag unexpectedly verified")
    elif roll < 0.6:
        high = MerkleTree.from_leaves(leaves[: idx % 5] + [tree.root])
        joined = join_chains(chain, high.get_chain(len(high) - 1))
        if not verify_chain(joined, high.root):
            raise RuntimeError("joined chain failed")
    else:
        if not verify_chain(chain, tree.root):
            raise RuntimeError("valid chain failed")


def main():
    atheris.Setup(sys.argv, TestOneInput, enable_python_coverage=True)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
