# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
from .config import Settings
from .deletion import delete_predicates, eq_filter
from .embedding import attach_embedding
from .graph import GraphClient, UpsertResult
from .model import from_tree, predicate, predicates_of, selection, to_tree
from .mutation import build
from .protocol import (
    AmbiguousKey,
    DgraphConnection,
    EmbeddingUnavailable,
    InvalidArgument,
    InvalidPayload,
    KeyedGraphError,
    MissingIdentity,
    ProtocolError,
    StoreError,
    StoreUnavailable,
    UnknownType,
)
from .resolver import Identity, IdentityResolver
from .schema import NodeType, Relationship, SchemaRegistry
from .search import get_entity, similarity_search
from . import adapters

__all__ = [
    "Settings",
    "DgraphConnection",
    "GraphClient",
    "UpsertResult",
    "SchemaRegistry",
    "NodeType",
    "Relationship",
    "Identity",
    "IdentityResolver",
    "build",
    "attach_embedding",
    "similarity_search",
    "get_entity",
    "delete_predicates",
    "eq_filter",
    "predicate",
    "predicates_of",
    "to_tree",
    "from_tree",
    "selection",
    "KeyedGraphError",
    "UnknownType",
    "MissingIdentity",
    "AmbiguousKey",
    "InvalidArgument",
    "InvalidPayload",
    "ProtocolError",
    "StoreError",
    "StoreUnavailable",
    "EmbeddingUnavailable",
    "adapters",
]
