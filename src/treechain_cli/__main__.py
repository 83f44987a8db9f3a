from __future__ import annotations
import json
import logging
import pathlib
from typing import List, NoReturn, Optional, Tuple

import typer
from pydantic import ValidationError
from rich import print
from rich.markup import escape

from treechain_core.bigtree import BigTree
from treechain_core.chain import join_chains, verify_chain
from treechain_core.codec import (
    dump_chain,
    dump_leaves,
    load_chain_model,
    chain_from_model,
    load_leaves_model,
)
from treechain_core.crypto import HEXD, resolve_hash
from treechain_core.errors import MerkleError
from treechain_core.logutil import setup_logging
from treechain_core.settings import Settings, load_settings
from treechain_core.tree import Leaves, MerkleTree

app = typer.Typer(add_completion=False, no_args_is_help=True)
log = logging.getLogger(__name__)


def _settings() -> Settings:
    cfg = load_settings()
    setup_logging(cfg.log_level)
    return cfg


def _read_lines(path: str) -> List[bytes]:
    p = pathlib.Path(path)
    if not p.exists():
        _fail(f"No such file: {p}")
    # blank lines are empty items; line N is leaf N
    return p.read_bytes().splitlines()


def _emit(blob: bytes, out: Optional[str]) -> None:
    if out is None:
        print(json.loads(blob))
        return
    pathlib.Path(out).write_bytes(blob)
    print(f"[green]Wrote {out}[/green]")


def _fail(msg: str) -> NoReturn:
    print(f"[red]{escape(msg)}[/red]")
    raise typer.Exit(code=1)


@app.command()
def build(
    input: str = typer.Option(
        ..., help="File with one leaf per line; blank lines are empty items"
    ),
    digests: bool = typer.Option(False, help="Lines are hex digests, not raw data"),
    leaves_out: Optional[str] = typer.Option(None, help="Write the leaf export here"),
):
    """Build a tree over the lines of a file and print its root."""
    cfg = _settings()
    hash_fn = resolve_hash(cfg.hash_alg)
    lines = _read_lines(input)
    try:
        if digests:
            tree = MerkleTree.from_leaves([HEXD(l.decode("ascii")) for l in lines], hash_fn)
        else:
            tree = MerkleTree.from_data(lines, hash_fn)
    except (MerkleError, ValueError) as e:
        _fail(f"Cannot build tree: {e}")
    log.info("built tree over %d leaves", len(tree))
    if leaves_out is not None:
        pathlib.Path(leaves_out).write_bytes(dump_leaves(tree.export_leaves(), cfg.hash_alg))
    print(f"root {tree.hex_root}")


def _load_tree(leaves_path: str) -> Tuple[MerkleTree, str]:
    try:
        model = load_leaves_model(pathlib.Path(leaves_path).read_bytes())
        leaves = Leaves(model.count, tuple(HEXD(d) for d in model.digests))
        return MerkleTree.from_export(leaves, resolve_hash(model.hash_alg)), model.hash_alg
    except (OSError, ValidationError, MerkleError, ValueError) as e:
        _fail(f"Cannot load leaves from {leaves_path}: {e}")


@app.command()
def chain(
    leaves: str = typer.Option(..., help="Leaf export written by 'build'"),
    index: int = typer.Option(..., help="Leaf index"),
    out: Optional[str] = typer.Option(None, help="Write the chain JSON here"),
):
    """Emit the inclusion chain for one leaf."""
    _settings()
    tree, hash_alg = _load_tree(leaves)
    try:
        c = tree.get_chain(index)
    except MerkleError as e:
        _fail(str(e))
    _emit(dump_chain(c, hash_alg), out)


def _load_chain_file(path: str):
    try:
        model = load_chain_model(pathlib.Path(path).read_bytes())
        return model, chain_from_model(model)
    except (OSError, ValidationError, ValueError) as e:
        _fail(f"Cannot load chain from {path}: {e}")


@app.command()
def verify(
    path: str,
    anchor: Optional[str] = typer.Option(None, help="Trusted root, hex"),
):
    """Check a chain file, optionally against a trusted root."""
    _settings()
    model, c = _load_chain_file(path)
    try:
        expected = HEXD(anchor) if anchor is not None else None
        ok = verify_chain(c, expected, resolve_hash(model.hash_alg))
    except ValueError as e:
        _fail(str(e))
    print({"chain_valid": ok})
    if not ok:
        raise typer.Exit(code=1)


@app.command()
def join(
    low: str,
    high: str,
    out: Optional[str] = typer.Option(None, help="Write the joined chain here"),
):
    """Join a sub-tree chain with the chain of its root in a higher tree."""
    _settings()
    low_model, low_chain = _load_chain_file(low)
    high_model, high_chain = _load_chain_file(high)
    if low_model.hash_alg != high_model.hash_alg:
        _fail("Chains use different hash algorithms")
    try:
        joined = join_chains(low_chain, high_chain)
    except MerkleError as e:
        _fail(str(e))
    _emit(dump_chain(joined, low_model.hash_alg), out)


@app.command()
def stream(
    input: str = typer.Option(
        ..., help="File with one data item per line; blank lines are empty items"
    ),
    power: Optional[int] = typer.Option(None, help="Reduce subtrees at 2**power leaves"),
):
    """Feed lines through a bounded-memory tree and print the final root."""
    cfg = _settings()
    try:
        bt = BigTree(
            power if power is not None else cfg.bigtree_power, resolve_hash(cfg.hash_alg)
        )
    except ValueError as e:
        _fail(str(e))
    for line in _read_lines(input):
        bt.append_data(line)
    if bt.root is None:
        print("[yellow]No leaves found[/yellow]")
        raise typer.Exit(code=0)
    log.info("streamed %d leaves, %d records retained", len(bt), bt.retained_records())
    print(f"root {bt.hex_root}")


if __name__ == "__main__":
    app()
