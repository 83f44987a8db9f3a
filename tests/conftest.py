import hashlib
import sys
from pathlib import Path

import pytest

# Ensure the 'src' directory is on sys.path for imports in tests
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def h(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


@pytest.fixture
def abcd():
    return [h(x) for x in (b"a", b"b", b"c", b"d")]


@pytest.fixture
def make_digests():
    def _make(n: int, prefix: str = "leaf"):
        return [h(f"{prefix}-{i}".encode()) for i in range(n)]

    return _make
