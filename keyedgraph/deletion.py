# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
"""
Owner-scoped deletion: strip a fixed list of predicates from the nodes a
filter matches.

Edge predicates in the list lose their reference only. The node at the other
end of the edge is never touched, so a Member shared by many contracts stays
queryable after one contract is deleted.
"""
import json
import logging
from typing import Any, Dict, Iterable

from .markers import UID, UID_VAR
from .protocol import DgraphConnection, InvalidArgument, ProtocolError
from .schema import check_predicate

logger = logging.getLogger(__name__)

MATCH_VAR = "node"

DELETE_QUERY = """{{
  {var} as var(func: {filter})
  matched(func: uid({var})) {{
    count(uid)
  }}
}}"""


def eq_filter(predicate: str, value: Any) -> str:
    """`eq(<predicate>, "<value>")` with the value quoted for DQL."""
    check_predicate(predicate)
    return f"eq({predicate}, {json.dumps(str(value))})"


def delete_predicates(connection: DgraphConnection, filter_expression: str, predicates: Iterable[str]) -> int:
    """
    Remove every value of each listed predicate from the nodes matching
    `filter_expression`. Returns how many nodes matched.

    No match is not an error; running the same delete twice is harmless. Every
    matching node is affected, so callers wanting a single root should use a
    filter on a unique key.
    """
    preds = list(predicates)
    if not preds:
        raise InvalidArgument("no predicates to delete")
    for pred in preds:
        check_predicate(pred)
        if pred == UID:
            raise InvalidArgument("the uid of a node cannot be deleted")
    if not isinstance(filter_expression, str) or not filter_expression.strip():
        raise InvalidArgument("filter expression is empty")

    query = DELETE_QUERY.format(var=MATCH_VAR, filter=filter_expression)
    # A null value deletes all values of that predicate.
    delete: Dict[str, Any] = {UID: UID_VAR.format(MATCH_VAR)}
    for pred in preds:
        delete[pred] = None

    data = connection.mutate(delete_json=delete, query=query)
    matched = _matched_count(data)
    if matched == 0:
        logger.debug(f"delete on {filter_expression}: nothing matched")
    elif matched > 1:
        logger.warning(f"delete on {filter_expression} matched {matched} nodes")
    else:
        logger.info(f"deleted {len(preds)} predicate(s) from node matching {filter_expression}")
    return matched


def _matched_count(data: Dict[str, Any]) -> int:
    rows = (data.get("queries") or {}).get("matched") or []
    if not rows:
        return 0
    try:
        return int(rows[0].get("count", 0))
    except (AttributeError, TypeError, ValueError):
        raise ProtocolError(f"invalid match count in delete response: {rows!r}") from None
