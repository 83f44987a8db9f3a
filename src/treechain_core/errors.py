from __future__ import annotations


class MerkleError(Exception):
    """Base class for all tree and chain errors."""


class EmptyInputError(MerkleError, ValueError):
    pass


class IndexOutOfRangeError(MerkleError, IndexError):
    pass


class IncompatibleChainsError(MerkleError, ValueError):
    pass


class InvalidDigestError(MerkleError, ValueError):
    pass


class ProofUnavailableError(MerkleError, LookupError):
    """The leaf lives inside a reduced subtree; its detail was discarded."""


class InvariantViolation(MerkleError, RuntimeError):
    """A bounded subtree outgrew its maximum size.

    Signals a defect in the merge/reduce policy. Never caught inside the
    library: continuing would silently produce wrong roots.
    """
