# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
"""
Static description of the graph: node types, the business-key field of each
type, and the outbound relationship predicates that lead to other types.

Relationship targets are type *names*; the builder follows them by lookup, so
a type may point back at itself or at any type registered later.
"""
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Tuple, Union

from .protocol import InvalidArgument, UnknownType

TYPE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
PREDICATE_RE = re.compile(r"^[A-Za-z_][\w.]*$")


def check_predicate(name: str) -> str:
    if not isinstance(name, str) or not PREDICATE_RE.match(name):
        raise InvalidArgument(f"invalid predicate name: {name!r}")
    return name


@dataclass(frozen=True)
class Relationship:
    predicate: str
    target_type: str


@dataclass(frozen=True)
class NodeType:
    name: str
    id_field: str
    relationships: Tuple[Relationship, ...] = ()

    def relationship(self, predicate: str) -> Optional[Relationship]:
        for rel in self.relationships:
            if rel.predicate == predicate:
                return rel
        return None


RelationshipDecl = Union[Relationship, Tuple[str, str]]


class SchemaRegistry:
    """
    Registry of node types, populated once at start-up.

    Usage:
        schema = SchemaRegistry()
        schema.register("Contract", "Contract.id", [("Contract.party", "Party")])
        schema.register("Party", "Party.id")
    """

    def __init__(self):
        self._types: Dict[str, NodeType] = {}

    def register(
        self,
        node_type: str,
        id_field: str,
        relationships: Iterable[RelationshipDecl] = (),
    ) -> NodeType:
        if not isinstance(node_type, str) or not TYPE_NAME_RE.match(node_type):
            raise InvalidArgument(f"invalid node type name: {node_type!r}")
        if node_type in self._types:
            raise InvalidArgument(f"node type {node_type!r} is already registered")
        check_predicate(id_field)

        rels = []
        seen = set()
        for item in relationships:
            rel = item if isinstance(item, Relationship) else Relationship(*item)
            check_predicate(rel.predicate)
            if not TYPE_NAME_RE.match(rel.target_type):
                raise InvalidArgument(f"invalid target type for {rel.predicate}: {rel.target_type!r}")
            if rel.predicate in seen:
                raise InvalidArgument(f"relationship {rel.predicate!r} declared twice on {node_type}")
            if rel.predicate == id_field:
                raise InvalidArgument(f"id field {id_field!r} cannot also be a relationship")
            seen.add(rel.predicate)
            rels.append(rel)

        entry = NodeType(name=node_type, id_field=id_field, relationships=tuple(rels))
        self._types[node_type] = entry
        return entry

    def lookup(self, node_type: str) -> NodeType:
        try:
            return self._types[node_type]
        except KeyError:
            raise UnknownType(f"node type {node_type!r} is not registered") from None

    def __contains__(self, node_type: object) -> bool:
        return node_type in self._types

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)
