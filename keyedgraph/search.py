# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from .embedding import encode_vector
from .model import from_tree, selection
from .protocol import DgraphConnection, InvalidArgument, ProtocolError
from .schema import check_predicate

logger = logging.getLogger(__name__)

# Score is 1 - |v - q|^2 / 2, i.e. cosine similarity for unit vectors.
SIMILARITY_QUERY = """
query search($vector: float32vector) {{
  var(func: similar_to({predicate}, {top_k}, $vector)) {{
    vemb as {predicate}
    dist as math((vemb - $vector) dot (vemb - $vector))
    score as math(1 - (dist / 2.0))
  }}
  list(func: uid(score), orderdesc: val(score)){score_filter} {{
{body}
  }}
}}
"""

ENTITY_QUERY = """
query entity($key: string) {{
  list(func: eq({id_field}, $key)) {{
{body}
  }}
}}
"""


def _body_for(result_type: Optional[type], body: Optional[str]) -> str:
    if body is not None:
        return body
    if result_type is None:
        raise InvalidArgument("a selection body is needed when no result type is given")
    return selection(result_type, indent=2)


def _hydrate(result_type: Optional[type], items: List[Dict[str, Any]]) -> List[Any]:
    if result_type is None:
        return list(items)
    return [from_tree(result_type, item) for item in items]


def _list_of(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    items = data.get("list") or []
    if not isinstance(items, list):
        raise ProtocolError(f"invalid response shape: 'list' is {type(items).__name__}")
    return items


def similarity_search(
    connection: DgraphConnection,
    query_vector: Sequence[float],
    embedding_predicate: str,
    result_type: Optional[type],
    top_k: int,
    body: Optional[str] = None,
    min_score: Optional[float] = None,
) -> List[Any]:
    """
    Nearest stored nodes to `query_vector` over `embedding_predicate`, best
    first, at most `top_k` of them.

    Ranking is left to the store's vector index. Equal scores come back in
    whatever order the store yields them.
    """
    if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k <= 0:
        raise InvalidArgument(f"top_k must be a positive integer, got {top_k!r}")
    check_predicate(embedding_predicate)
    vector = encode_vector(query_vector)

    score_filter = ""
    if min_score is not None:
        score_filter = f" @filter(gt(val(score), {float(min_score)}))"

    dql = SIMILARITY_QUERY.format(
        predicate=embedding_predicate,
        top_k=top_k,
        score_filter=score_filter,
        body=_body_for(result_type, body),
    )
    data = connection.query(dql, {"$vector": vector})
    items = _list_of(data)[:top_k]
    logger.debug(f"similarity search on {embedding_predicate}: {len(items)} hit(s)")
    return _hydrate(result_type, items)


def get_entity(
    connection: DgraphConnection,
    id_field: str,
    key: Any,
    result_type: Optional[type] = None,
    body: Optional[str] = None,
) -> Optional[Any]:
    """First node whose `id_field` equals `key`, or None."""
    check_predicate(id_field)
    dql = ENTITY_QUERY.format(id_field=id_field, body=_body_for(result_type, body))
    items = _list_of(connection.query(dql, {"$key": str(key)}))
    if not items:
        return None
    return _hydrate(result_type, items[:1])[0]
