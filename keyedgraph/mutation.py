# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
"""
Turns a serialized entity tree into a mutation payload in which every node
carries a resolved identity.

The work is split into three stages so each can be exercised on its own:

    plan()          validate the tree against the schema, no store access
    resolve_plan()  one identity lookup per planned node, pre-order
    assemble()      render the payload from the resolved plan, no store access

build() runs all three. Nothing is sent to the store here; a failure in any
stage leaves the store untouched.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .markers import TYPE_TAG, UID
from .protocol import DgraphConnection, InvalidPayload, MissingIdentity
from .resolver import Identity, IdentityResolver
from .schema import SchemaRegistry

logger = logging.getLogger(__name__)


@dataclass
class PlannedNode:
    node_type: str
    key: Any
    # Input order is kept; relationship slots hold PlannedNode or a list of them.
    predicates: List[Tuple[str, Any]] = field(default_factory=list)
    identity: Optional[Identity] = None

    def children(self) -> Iterator["PlannedNode"]:
        for _, value in self.predicates:
            if isinstance(value, PlannedNode):
                yield value
            elif isinstance(value, _Edges):
                yield from value


class _Edges(list):
    """A multi-valued relationship slot; plain lists stay scalar values."""


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        return not value
    return False


def plan(schema: SchemaRegistry, root_type: str, tree: Mapping[str, Any]) -> PlannedNode:
    """Validate `tree` as a `root_type` entity and return its plan."""
    return _plan_node(schema, root_type, tree, path=root_type)


def _plan_node(schema: SchemaRegistry, node_type: str, tree: Any, path: str) -> PlannedNode:
    entry = schema.lookup(node_type)
    if not isinstance(tree, Mapping):
        raise InvalidPayload(f"{path}: expected a {node_type} entity, got {type(tree).__name__}")

    key = tree.get(entry.id_field)
    if _is_missing(key):
        raise MissingIdentity(f"{path}: {node_type} entity has no value for {entry.id_field}")

    node = PlannedNode(node_type=node_type, key=key)
    for pred, value in tree.items():
        if pred in (UID, TYPE_TAG):
            # Identity and typing are decided by the resolver, not the caller.
            continue
        rel = entry.relationship(pred)
        if rel is None or value is None:
            node.predicates.append((pred, value))
            continue

        child_path = f"{path}.{pred}"
        if isinstance(value, Mapping):
            node.predicates.append((pred, _plan_node(schema, rel.target_type, value, child_path)))
        elif isinstance(value, (list, tuple)):
            edges = _Edges(
                _plan_node(schema, rel.target_type, item, f"{child_path}[{i}]")
                for i, item in enumerate(value)
            )
            node.predicates.append((pred, edges))
        else:
            raise InvalidPayload(
                f"{child_path}: relationship to {rel.target_type} must hold an entity, "
                f"got {type(value).__name__}"
            )
    return node


def iter_nodes(root: PlannedNode) -> Iterator[PlannedNode]:
    """Depth-first, pre-order walk over every planned node."""
    yield root
    for child in root.children():
        yield from iter_nodes(child)


def resolve_plan(connection: DgraphConnection, root: PlannedNode, resolver: IdentityResolver) -> PlannedNode:
    # No caching: a key that occurs twice is looked up twice.
    for node in iter_nodes(root):
        node.identity = resolver.resolve(connection, node.node_type, node.key)
    return root


def assemble(root: PlannedNode) -> Dict[str, Any]:
    if root.identity is None:
        raise InvalidPayload(f"{root.node_type} {root.key!r} has no resolved identity")

    out: Dict[str, Any] = {UID: root.identity.uid, TYPE_TAG: root.node_type}
    for pred, value in root.predicates:
        if isinstance(value, PlannedNode):
            out[pred] = assemble(value)
        elif isinstance(value, _Edges):
            out[pred] = [assemble(child) for child in value]
        else:
            out[pred] = value
    return out


def build(
    connection: DgraphConnection,
    schema: SchemaRegistry,
    root_type: str,
    tree: Mapping[str, Any],
    resolver: Optional[IdentityResolver] = None,
) -> Dict[str, Any]:
    """
    Build the mutation payload for `tree`.

    Repeated builds of trees with the same business keys against an
    unchanged store resolve to the same identities; scalar values are taken
    from the latest tree.
    """
    resolver = resolver or IdentityResolver(schema)
    root = plan(schema, root_type, tree)
    resolve_plan(connection, root, resolver)
    payload = assemble(root)
    new = sum(1 for n in iter_nodes(root) if n.identity.is_new)
    logger.debug(f"built {root_type} {root.key!r} mutation ({new} new node(s))")
    return payload
