# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import json
from typing import Any, Callable, Dict, List, Mapping, Sequence, Union

import numpy as np

from .markers import TYPE_TAG, UID
from .protocol import InvalidArgument, InvalidPayload, ProtocolError
from .schema import check_predicate

# One vector per input text, in input order.
EmbedFn = Callable[[List[str]], List[List[float]]]


def validate_vector(vec: Union[Sequence[float], np.ndarray]) -> List[float]:
    """
    Checks an embedding is a non-empty, one-dimensional run of finite numbers
    and returns it as a list of Python floats.
    """
    try:
        arr = np.asarray(vec, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidArgument(f"Embedding is not numeric: {e}") from e

    if arr.ndim != 1:
        raise InvalidArgument(f"Embedding must be 1D, got {arr.ndim}")
    if arr.size == 0:
        raise InvalidArgument("Embedding is empty")
    if not np.isfinite(arr).all():
        raise InvalidArgument("Embedding contains non-finite values (NaN/Inf)")
    return arr.tolist()


def encode_vector(vec: Sequence[float]) -> str:
    """float32vector predicates take the vector as a JSON array string."""
    return json.dumps(validate_vector(vec))


def attach_embedding(payload: Mapping[str, Any], predicate: str, vector: Sequence[float]) -> Dict[str, Any]:
    """
    Returns a copy of `payload` with `vector` stored under `predicate` on its
    root node. The input payload is left untouched.
    """
    if not isinstance(payload, Mapping):
        raise InvalidPayload(f"expected a single-root mutation object, got {type(payload).__name__}")
    missing = [k for k in (UID, TYPE_TAG) if not payload.get(k)]
    if missing:
        raise InvalidPayload(f"mutation root is missing {missing}")
    check_predicate(predicate)
    if predicate in (UID, TYPE_TAG):
        raise InvalidArgument(f"cannot store an embedding under reserved predicate {predicate!r}")

    out = dict(payload)
    out[predicate] = encode_vector(vector)
    return out


def embed_one(embed: EmbedFn, text: str) -> List[float]:
    vectors = embed([text])
    if len(vectors) != 1:
        raise ProtocolError(f"embedder returned {len(vectors)} vectors for 1 text")
    return validate_vector(vectors[0])
