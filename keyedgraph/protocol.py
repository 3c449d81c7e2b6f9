# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import requests

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)


class KeyedGraphError(Exception):
    """Base class for all keyedgraph exceptions."""
    pass

class UnknownType(KeyedGraphError):
    """Raised when a node type is not present in the schema registry."""
    pass

class MissingIdentity(KeyedGraphError):
    """Raised when an entity tree lacks a value for its type's id field."""
    pass

class AmbiguousKey(KeyedGraphError):
    """Raised when more than one stored node carries the same business key."""
    pass

class InvalidArgument(KeyedGraphError, ValueError):
    """Raised when an argument is rejected before any store call."""
    pass

class InvalidPayload(KeyedGraphError, ValueError):
    """Raised when a mutation payload or entity tree is malformed."""
    pass

class ProtocolError(KeyedGraphError):
    """Raised for protocol-level problems (invalid server response, etc.)."""
    pass

class StoreError(ProtocolError):
    """Raised when the store answers with query or mutation errors."""
    pass

class StoreUnavailable(KeyedGraphError):
    """Raised when the store cannot be reached or is temporarily down."""
    pass

class EmbeddingUnavailable(KeyedGraphError):
    """Raised when the embedding endpoint cannot be reached."""
    pass


_UNAVAILABLE_STATUSES = (502, 503, 504)


def _error_messages(errors: List[Any]) -> str:
    messages = []
    for err in errors:
        if isinstance(err, dict):
            messages.append(str(err.get("message") or err))
        else:
            messages.append(str(err))
    return "; ".join(messages)


class DgraphConnection:
    """
    Thin client for the Dgraph HTTP API.

    Only two endpoints are used: ``/query`` for reads and
    ``/mutate?commitNow=true`` for writes and upsert blocks. Every call is a
    single blocking round trip; nothing is retried here.
    """

    def __init__(self, base_url: str = "http://localhost:8080", timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    @classmethod
    def from_settings(cls, settings: "Settings") -> "DgraphConnection":
        return cls(base_url=settings.url, timeout=settings.timeout)

    def _post(self, path: str, json_data: Dict[str, Any], params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            resp = self.session.post(url, json=json_data, params=params, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise StoreUnavailable(f"Dgraph at {self.base_url} unreachable: {e}") from e

        if not resp.ok:
            if resp.status_code in _UNAVAILABLE_STATUSES:
                raise StoreUnavailable(f"{resp.status_code} Dgraph unavailable: {resp.reason}")

            # Try to parse JSON error message, fallback to text
            try:
                err = resp.json()
                if isinstance(err, dict) and err.get("errors"):
                    msg = _error_messages(err["errors"])
                else:
                    msg = err.get("message") or err.get("error") or err
            except (ValueError, AttributeError):
                msg = resp.text
            raise ProtocolError(f"{resp.status_code} Server Error: {msg}")

        try:
            body = resp.json()
        except (ValueError, json.JSONDecodeError):
            raise ProtocolError("Dgraph returned non-JSON response")

        if not isinstance(body, dict):
            raise ProtocolError("invalid response shape: expected a JSON object")
        if body.get("errors"):
            raise StoreError(_error_messages(body["errors"]))
        data = body.get("data")
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ProtocolError("invalid response shape: 'data' is not an object")
        return data

    def query(self, dql: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run a read-only DQL query. Returns the response's ``data`` member."""
        payload: Dict[str, Any] = {"query": dql}
        if variables:
            payload["variables"] = variables
        logger.debug(f"query {dql.strip()[:200]!r} variables={list((variables or {}).keys())}")
        return self._post("/query", payload)

    def mutate(
        self,
        set_json: Optional[Any] = None,
        delete_json: Optional[Any] = None,
        query: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Commit one mutation. With ``query`` this is an upsert block and the
        ``uid(var)`` references in ``set_json``/``delete_json`` bind to it.
        Returns the ``data`` member (``uids``, ``queries``).
        """
        if set_json is None and delete_json is None:
            raise InvalidArgument("mutation needs a set or delete part")
        payload: Dict[str, Any] = {}
        if query is not None:
            payload["query"] = query
        if set_json is not None:
            payload["set"] = set_json
        if delete_json is not None:
            payload["delete"] = delete_json
        return self._post("/mutate", payload, params={"commitNow": "true"})

    def close(self) -> None:
        self.session.close()
