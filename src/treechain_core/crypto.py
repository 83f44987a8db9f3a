from __future__ import annotations
import binascii
import hashlib
from typing import Callable

import rfc8785


HashFn = Callable[[bytes], bytes]


def HEX(b: bytes) -> str:
    return binascii.hexlify(b).decode("ascii")


def HEXD(s: str) -> bytes:
    """Decode a hex string to bytes; raises ValueError on malformed input."""
    try:
        return binascii.unhexlify(s.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError("invalid hex") from e


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def combine(left: bytes, right: bytes, hash_fn: HashFn = sha256) -> bytes:
    """Parent digest of two children: hash(left || right)."""
    return hash_fn(left + right)


def resolve_hash(name: str) -> HashFn:
    """Return a digest function for a hashlib algorithm name.

    Only fixed-output-length algorithms are accepted; SHAKE variants need an
    explicit length and cannot be used as a tree hash.
    """
    requested = name.lower()
    for name in (requested, requested.replace("-", "_"), requested.replace("-", "")):
        if name in hashlib.algorithms_available:
            break
    else:
        raise ValueError(f"unknown hash algorithm: {requested}")
    if name == "sha256":
        return sha256
    if name.startswith("shake"):
        raise ValueError(f"variable-length hash not supported: {name}")

    def _digest(data: bytes) -> bytes:
        return hashlib.new(name, data).digest()

    _digest.__name__ = name
    return _digest


def jcs_dumps(obj) -> bytes:
    """Deterministic canonical JSON bytes per RFC8785."""
    return rfc8785.dumps(obj)
