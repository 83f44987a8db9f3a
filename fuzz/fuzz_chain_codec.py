"""Fuzz harness for the chain wire format (parser + SDK verifier).

Arbitrary bytes are fed to the chain loader and the SDK verifier. Parsing
and validation failures are expected; any other exception, or an SDK call
that raises instead of returning False, is a crash.
"""
from __future__ import annotations
import atheris
import sys
import json

from pydantic import ValidationError

with atheris.instrument_imports():
    from treechain_core.codec import dump_chain, load_chain
    from treechain_sdk.verify import verify_chain_json


def TestOneInput(data: bytes):  # noqa: N802
    try:
        doc = json.loads(data)
    except (ValueError, RecursionError):
        return
    if isinstance(doc, dict):
        verify_chain_json(doc)
    try:
        chain = load_chain(data)
    except (ValidationError, ValueError):
        return
    # anything that loads must dump to the canonical form and load back equal
    if load_chain(dump_chain(chain)) != chain:
        raise RuntimeError("chain changed across dump/load")


def main():
    atheris.Setup(sys.argv, TestOneInput, enable_python_coverage=True)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
