from typing import Any, Dict, Optional

from pydantic import ValidationError

from treechain_core.chain import verify_chain
from treechain_core.codec import chain_from_model
from treechain_core.crypto import HEXD, resolve_hash
from treechain_core.models import ChainModel


def verify_chain_json(chain_json: Dict[str, Any], anchor_hex: Optional[str] = None) -> bool:
    """Return True if the chain document recomputes its own endpoint.

    When `anchor_hex` is given the endpoint must also equal that trusted root.
    Malformed documents, unknown hash algorithms and bad hex all yield False.
    """
    try:
        model = ChainModel.model_validate(chain_json)
        hash_fn = resolve_hash(model.hash_alg)
        chain = chain_from_model(model)
        anchor = HEXD(anchor_hex) if anchor_hex is not None else None
    except (ValidationError, ValueError, TypeError):
        return False
    return verify_chain(chain, anchor, hash_fn)


def verify_inclusion(
    data: bytes, chain_json: Dict[str, Any], anchor_hex: Optional[str] = None
) -> bool:
    """Verify that `data` is the leaf committed by the chain, and the chain itself."""
    try:
        model = ChainModel.model_validate(chain_json)
        hash_fn = resolve_hash(model.hash_alg)
        leaf = HEXD(model.links[0].digest)
    except (ValidationError, ValueError, TypeError):
        return False
    if hash_fn(data) != leaf:
        return False
    return verify_chain_json(chain_json, anchor_hex)
