# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .protocol import InvalidArgument

ENV_PREFIX = "KEYEDGRAPH_"


@dataclass(frozen=True)
class Settings:
    """Connection settings for the store and the embedding endpoint."""

    url: str = "http://localhost:8080"
    timeout: float = 10.0
    embedding_url: Optional[str] = None
    embedding_model: str = "all-MiniLM-L6-v2"
    embedding_api_key: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from KEYEDGRAPH_* variables:
        URL, TIMEOUT, EMBEDDING_URL, EMBEDDING_MODEL, EMBEDDING_API_KEY.
        Unset variables keep the defaults.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        raw_timeout = env.get(ENV_PREFIX + "TIMEOUT")
        timeout = defaults.timeout
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                raise InvalidArgument(f"{ENV_PREFIX}TIMEOUT must be a number, got {raw_timeout!r}")
            if timeout <= 0:
                raise InvalidArgument(f"{ENV_PREFIX}TIMEOUT must be positive, got {timeout}")

        return cls(
            url=env.get(ENV_PREFIX + "URL", defaults.url),
            timeout=timeout,
            embedding_url=env.get(ENV_PREFIX + "EMBEDDING_URL") or None,
            embedding_model=env.get(ENV_PREFIX + "EMBEDDING_MODEL", defaults.embedding_model),
            embedding_api_key=env.get(ENV_PREFIX + "EMBEDDING_API_KEY") or None,
        )
