from __future__ import annotations
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .crypto import resolve_hash


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # hashlib name; must have a fixed output length
    hash_alg: str = Field(default="sha256", alias="TREECHAIN_HASH_ALG")

    # BigTree keeps at most 2**power detail records per subtree
    bigtree_power: int = Field(default=8, ge=1, alias="TREECHAIN_BIGTREE_POWER")

    log_level: str = Field(default="INFO", alias="TREECHAIN_LOG_LEVEL")

    @field_validator("hash_alg")
    @classmethod
    def _known_hash(cls, v: str) -> str:
        resolve_hash(v)
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper()


def load_settings() -> Settings:
    """Read configuration afresh from the environment."""
    return Settings()

