"""Conversion between core values and their canonical JSON wire form.

Canonical bytes come from RFC 8785, so a chain or leaf set has exactly one
serialization and can itself be hashed or signed by callers.
"""
from __future__ import annotations
import json
from typing import Union

from .chain import Chain, ChainLink
from .crypto import HEX, HEXD, jcs_dumps
from .models import ChainLinkModel, ChainModel, LeavesModel
from .tree import Leaves


def chain_to_model(chain: Chain, hash_alg: str = "sha256") -> ChainModel:
    return ChainModel(
        hash_alg=hash_alg,
        links=[ChainLinkModel(digest=HEX(l.digest), left=l.is_left) for l in chain],
    )


def chain_from_model(model: ChainModel) -> Chain:
    return Chain.of(ChainLink(HEXD(l.digest), l.left) for l in model.links)


def dump_chain(chain: Chain, hash_alg: str = "sha256") -> bytes:
    return jcs_dumps(chain_to_model(chain, hash_alg).model_dump())


def load_chain_model(data: Union[bytes, str]) -> ChainModel:
    return ChainModel.model_validate(json.loads(data))


def load_chain(data: Union[bytes, str]) -> Chain:
    return chain_from_model(load_chain_model(data))


def leaves_to_model(leaves: Leaves, hash_alg: str = "sha256") -> LeavesModel:
    return LeavesModel(
        hash_alg=hash_alg,
        count=leaves.count,
        digests=[HEX(d) for d in leaves.digests],
    )


def dump_leaves(leaves: Leaves, hash_alg: str = "sha256") -> bytes:
    return jcs_dumps(leaves_to_model(leaves, hash_alg).model_dump())


def load_leaves_model(data: Union[bytes, str]) -> LeavesModel:
    return LeavesModel.model_validate(json.loads(data))


def load_leaves(data: Union[bytes, str]) -> Leaves:
    model = load_leaves_model(data)
    return Leaves(model.count, tuple(HEXD(d) for d in model.digests))
