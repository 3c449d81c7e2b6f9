# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import dataclasses
import logging
from contextlib import nullcontext
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, TypedDict

from .deletion import delete_predicates
from .embedding import EmbedFn, attach_embedding, embed_one, validate_vector
from .markers import UID
from .model import to_tree
from .mutation import assemble, iter_nodes, plan, resolve_plan
from .protocol import DgraphConnection, InvalidArgument, ProtocolError
from .resolver import IdentityResolver, KeyLockTable
from .schema import SchemaRegistry
from .search import get_entity, similarity_search

logger = logging.getLogger(__name__)


class UpsertResult(TypedDict):
    uid: str
    created: Dict[str, str]


class GraphClient:
    def __init__(
        self,
        connection: DgraphConnection,
        schema: SchemaRegistry,
        embed: Optional[EmbedFn] = None,
        serialize_keys: bool = False,
    ):
        """
        Wraps a store connection and a schema.

        Args:
            embed: embedding provider, needed for text-based calls only.
            serialize_keys: hold an in-process lock per business key from
                identity resolution until the mutation commits. Off by
                default; without it two concurrent upserts of the same new
                key can each create a node.
        """
        self.connection = connection
        self.schema = schema
        self.resolver = IdentityResolver(schema)
        self._embed = embed
        self._locks = KeyLockTable() if serialize_keys else None

    def _require_embed(self) -> EmbedFn:
        if self._embed is None:
            raise InvalidArgument("No embedding function configured")
        return self._embed

    def upsert(
        self,
        node_type: str,
        entity: Any,
        *,
        embedding_predicate: Optional[str] = None,
        embedding_text: Optional[str] = None,
        embedding: Optional[Sequence[float]] = None,
    ) -> UpsertResult:
        """
        Create or update `entity` and everything it references, matching
        nodes by business key. The whole tree goes out as one mutation.

        With `embedding_predicate`, the root also gets a vector: `embedding`
        if given, otherwise the embedding of `embedding_text`.
        """
        if dataclasses.is_dataclass(entity) and not isinstance(entity, type):
            tree = to_tree(entity)
        elif isinstance(entity, Mapping):
            tree = entity
        else:
            raise InvalidArgument(f"cannot upsert {type(entity).__name__}; expected a model or a mapping")

        root = plan(self.schema, node_type, tree)

        vector = None
        if embedding_predicate is not None:
            if embedding is not None:
                vector = validate_vector(embedding)
            elif embedding_text is not None:
                vector = embed_one(self._require_embed(), embedding_text)
            else:
                raise InvalidArgument("embedding_predicate given without embedding or embedding_text")

        keys = [(n.node_type, n.key) for n in iter_nodes(root)]
        guard = self._locks.hold(keys) if self._locks is not None else nullcontext()
        with guard:
            resolve_plan(self.connection, root, self.resolver)
            payload = assemble(root)
            if vector is not None:
                payload = attach_embedding(payload, embedding_predicate, vector)
            data = self.connection.mutate(set_json=payload)

        created = data.get("uids") or {}
        if root.identity.is_new:
            uid = created.get(root.identity.blank_name)
            if uid is None:
                raise ProtocolError(f"store did not report a uid for new {node_type} {root.key!r}")
        else:
            uid = payload[UID]

        logger.info(f"upserted {node_type} {root.key!r} as {uid} ({len(created)} new node(s))")
        return {"uid": uid, "created": dict(created)}

    def get(
        self,
        id_field: str,
        key: Any,
        result_type: Optional[type] = None,
        body: Optional[str] = None,
    ) -> Optional[Any]:
        return get_entity(self.connection, id_field, key, result_type=result_type, body=body)

    def search(
        self,
        query_vector: Sequence[float],
        embedding_predicate: str,
        result_type: Optional[type],
        top_k: int = 5,
        body: Optional[str] = None,
        min_score: Optional[float] = None,
    ) -> List[Any]:
        return similarity_search(
            self.connection,
            query_vector,
            embedding_predicate,
            result_type,
            top_k,
            body=body,
            min_score=min_score,
        )

    def search_text(
        self,
        text: str,
        embedding_predicate: str,
        result_type: Optional[type],
        top_k: int = 5,
        body: Optional[str] = None,
        min_score: Optional[float] = None,
    ) -> List[Any]:
        # top_k is checked before the embedder runs
        if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k <= 0:
            raise InvalidArgument(f"top_k must be a positive integer, got {top_k!r}")
        vector = embed_one(self._require_embed(), text)
        return self.search(vector, embedding_predicate, result_type, top_k, body=body, min_score=min_score)

    def delete(self, filter_expression: str, predicates: Iterable[str]) -> int:
        return delete_predicates(self.connection, filter_expression, predicates)
