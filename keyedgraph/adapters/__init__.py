# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
from .http_embedder import HttpEmbedder
from .sentence_transformers_adapter import SentenceTransformerEmbedder

__all__ = [
    "HttpEmbedder",
    "SentenceTransformerEmbedder",
]
