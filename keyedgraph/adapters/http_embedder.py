# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import json
import logging
from typing import Any, Dict, List, Optional

import requests

from ..config import Settings
from ..protocol import EmbeddingUnavailable, InvalidArgument, ProtocolError

logger = logging.getLogger(__name__)


class HttpEmbedder:
    """
    Embedding provider for an OpenAI-compatible ``/embeddings`` endpoint.

    Sends all texts in one request and returns the vectors in input order.
    """

    def __init__(self, base_url: str, model: str, api_key: Optional[str] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.session = requests.Session()
        if api_key:
            self.session.headers.update({"Authorization": f"Bearer {api_key}"})

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpEmbedder":
        if not settings.embedding_url:
            raise InvalidArgument("Settings.embedding_url is not set")
        return cls(
            settings.embedding_url,
            settings.embedding_model,
            api_key=settings.embedding_api_key,
            timeout=settings.timeout,
        )

    def _post(self, path: str, json_data: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            resp = self.session.post(url, json=json_data, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise EmbeddingUnavailable(f"embedding endpoint {self.base_url} unreachable: {e}") from e

        if not resp.ok:
            if resp.status_code in (502, 503, 504):
                raise EmbeddingUnavailable(f"{resp.status_code} embedding endpoint unavailable: {resp.reason}")

            try:
                err = resp.json()
                msg = err.get("error") or err.get("message") or err
                if isinstance(msg, dict):
                    msg = msg.get("message", msg)
            except (ValueError, AttributeError):
                msg = resp.text
            raise ProtocolError(f"{resp.status_code} Embedding Error: {msg}")

        try:
            return resp.json()
        except (ValueError, json.JSONDecodeError):
            raise ProtocolError("Embedding endpoint returned non-JSON response")

    def __call__(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        res = self._post("/embeddings", {"input": list(texts), "model": self.model})

        items = res.get("data") if isinstance(res, dict) else None
        if not isinstance(items, list):
            raise ProtocolError("invalid embeddings response shape")
        if len(items) != len(texts):
            raise ProtocolError(f"expected {len(texts)} embeddings, got {len(items)}")

        ordered = sorted(items, key=lambda d: d.get("index", 0))
        if any("embedding" not in d for d in ordered):
            raise ProtocolError("embeddings response item without an embedding")
        logger.debug(f"embedded {len(texts)} text(s) with {self.model}")
        return [d["embedding"] for d in ordered]
