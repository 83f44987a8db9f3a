from __future__ import annotations
import re
from typing import List

from pydantic import BaseModel, Field, field_validator, model_validator

_HEX_RE = re.compile(r"(?:[0-9a-f]{2})+")


def _check_hex(v: str) -> str:
    if not _HEX_RE.fullmatch(v):
        raise ValueError("digest must be non-empty lower-case hex")
    return v


class ChainLinkModel(BaseModel):
    digest: str = Field(strict=True)
    left: bool = Field(strict=True)

    @field_validator("digest")
    @classmethod
    def _digest_hex(cls, v: str) -> str:
        return _check_hex(v)


class ChainModel(BaseModel):
    """Wire form of an inclusion chain.

    Links run from the leaf, through each sibling, to the endpoint. The
    hash algorithm travels with the chain so a verifier needs nothing else.
    """

    hash_alg: str = Field(default="sha256", strict=True)
    links: List[ChainLinkModel] = Field(min_length=1)


class LeavesModel(BaseModel):
    hash_alg: str = Field(default="sha256", strict=True)
    count: int = Field(ge=0, strict=True)
    digests: List[str] = Field(default_factory=list)

    @field_validator("digests")
    @classmethod
    def _digests_hex(cls, v: List[str]) -> List[str]:
        for d in v:
            _check_hex(d)
        return v

    @model_validator(mode="after")
    def _count_matches(self) -> "LeavesModel":
        if self.count != len(self.digests):
            raise ValueError("count does not match number of digests")
        return self
