import hashlib
import json
import threading

import pytest

from treechain_core.crypto import HEX, combine, resolve_hash
from treechain_core.errors import (
    EmptyInputError,
    IndexOutOfRangeError,
    InvalidDigestError,
)
from treechain_core.chain import verify_chain
from treechain_core.tree import Leaves, MerkleTree

ABCD_ROOT = "14ede5e8e97ad9372327728f5099b95604a39593cac3bd38a343ad76205213e7"


def _h(b: bytes) -> bytes:
    return hashlib.sha256(b).digest()


def test_build_from_data_regression_root():
    tree = MerkleTree.from_data([b"a", b"b", b"c", b"d"])
    assert tree.hex_root == ABCD_ROOT


def test_build_from_digests_regression_root(abcd):
    tree = MerkleTree.from_leaves(abcd)
    assert HEX(tree.root) == ABCD_ROOT
    assert len(tree) == 4


def test_relationships(abcd):
    tree = MerkleTree.from_leaves(abcd)
    assert tree.leaves[0].is_left
    assert tree.leaves[2].is_left
    assert not tree.leaves[1].is_left
    assert not tree.leaves[3].is_left
    assert tree.leaves[0].parent.is_left
    assert tree.leaves[0].parent.parent is tree.root_node
    assert tree.leaves[0].sibling() is tree.leaves[1]


def test_odd_leaf_carried_up_without_duplication():
    a, b, c, d, e = (_h(x) for x in (b"a", b"b", b"c", b"d", b"e"))
    ab, cd = _h(a + b), _h(c + d)
    assert MerkleTree.from_leaves([a, b, c]).root == _h(ab + c)
    assert MerkleTree.from_leaves([a, b, c, d, e]).root == _h(_h(ab + cd) + e)


def test_single_leaf_root_is_leaf(abcd):
    tree = MerkleTree.from_leaves(abcd[:1])
    assert tree.root == abcd[0]


def test_empty_build_raises():
    with pytest.raises(EmptyInputError):
        MerkleTree.from_leaves([])
    with pytest.raises(ValueError):
        MerkleTree.from_data([])


def test_new_tree_has_no_root():
    tree = MerkleTree()
    assert tree.root is None
    assert tree.hex_root is None
    assert len(tree) == 0


def test_append_onto_empty_tree(abcd):
    tree = MerkleTree()
    assert tree.append(abcd[0]) == abcd[0]
    assert tree.append(abcd[1]) == combine(abcd[0], abcd[1])


def test_append_after_single_leaf_build():
    control = MerkleTree.from_data([b"a", b"b", b"c", b"d"])
    tree = MerkleTree.from_data([b"a"])
    tree.append(_h(b"b"))
    tree.append(_h(b"c"))
    tree.append_data(b"d")
    assert tree.hex_root == control.hex_root


@pytest.mark.parametrize("n", [2, 3, 5, 7, 8, 9, 16, 17, 31, 33, 64, 100])
def test_append_matches_build(make_digests, n):
    digests = make_digests(n)
    tree = MerkleTree()
    for i, d in enumerate(digests):
        root = tree.append(d)
        assert root == MerkleTree.from_leaves(digests[: i + 1]).root


@pytest.mark.parametrize("n", [1, 2, 6, 11, 13, 32, 45])
def test_append_and_build_have_same_structure(make_digests, n):
    digests = make_digests(n)
    built = MerkleTree.from_leaves(digests)
    appended = MerkleTree()
    for d in digests:
        appended.append(d)
    # every non-root node shows up in some chain, with its side flag
    assert built.get_all_chains() == appended.get_all_chains()


@pytest.mark.parametrize("n", [1, 2, 3, 4, 10, 27])
def test_every_chain_verifies(make_digests, n):
    tree = MerkleTree.from_leaves(make_digests(n))
    for i in range(n):
        c = tree.get_chain(i)
        assert c.leaf == tree.leaves[i].digest
        assert verify_chain(c, tree.root)


def test_chain_shape(abcd):
    tree = MerkleTree.from_leaves(abcd)
    c = tree.get_chain(0)
    assert len(c) == 4
    assert c[0].digest == abcd[0] and c[0].is_left
    assert c[1].digest == abcd[1] and not c[1].is_left
    assert c[2].digest == combine(abcd[2], abcd[3]) and not c[2].is_left
    assert c.anchor == tree.root
    c3 = tree.get_chain(3)
    assert c3[1].digest == abcd[2] and c3[1].is_left
    assert c3[2].digest == combine(abcd[0], abcd[1]) and c3[2].is_left


def test_single_leaf_chain(abcd):
    tree = MerkleTree.from_leaves(abcd[:1])
    c = tree.get_chain(0)
    assert len(c) == 1
    assert verify_chain(c, abcd[0])


@pytest.mark.parametrize("index", [-1, 4, 100])
def test_chain_index_out_of_range(abcd, index):
    tree = MerkleTree.from_leaves(abcd)
    with pytest.raises(IndexOutOfRangeError):
        tree.get_chain(index)


def test_chain_on_empty_tree_out_of_range():
    with pytest.raises(IndexError):
        MerkleTree().get_chain(0)


def test_export_and_reconstruct(make_digests):
    tree = MerkleTree()
    for d in make_digests(21):
        tree.append(d)
    exported = tree.export_leaves()
    assert exported.count == 21
    assert list(exported.digests) == [n.digest for n in tree.leaves]
    rebuilt = MerkleTree.from_export(exported)
    assert rebuilt.root == tree.root
    assert rebuilt.get_all_chains() == tree.get_all_chains()


def test_reconstruct_rejects_bad_count(abcd):
    with pytest.raises(ValueError):
        MerkleTree.from_export(Leaves(5, tuple(abcd)))
    with pytest.raises(EmptyInputError):
        MerkleTree.from_export(Leaves(0, ()))


@pytest.mark.parametrize("bad", [b"short", b"x" * 33, "a" * 32, None])
def test_invalid_digest_rejected(abcd, bad):
    with pytest.raises(InvalidDigestError):
        MerkleTree.from_leaves(abcd + [bad])
    tree = MerkleTree.from_leaves(abcd)
    with pytest.raises(InvalidDigestError):
        tree.append(bad)
    assert len(tree) == 4


def test_alternate_hash_function():
    sha512 = resolve_hash("sha512")
    leaves = [sha512(bytes([i])) for i in range(9)]
    built = MerkleTree.from_leaves(leaves, sha512)
    appended = MerkleTree(sha512)
    for d in leaves:
        appended.append(d)
    assert built.root == appended.root
    assert len(built.root) == 64
    assert verify_chain(built.get_chain(4), built.root, sha512)


def test_concurrent_appends_serialize():
    leaf = _h(b"same")
    tree = MerkleTree()

    def worker():
        for _ in range(50):
            tree.append(leaf)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(tree) == 200
    assert tree.root == MerkleTree.from_leaves([leaf] * 200).root


def test_node_str_is_hex_json(abcd):
    tree = MerkleTree.from_leaves(abcd)
    assert json.loads(str(tree.leaves[1])) == {"digest": HEX(abcd[1]), "left": False}


def test_root_node_has_no_sibling(abcd):
    tree = MerkleTree.from_leaves(abcd)
    with pytest.raises(LookupError):
        tree.root_node.sibling()
