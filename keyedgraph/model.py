# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
"""
Dataclass models whose fields are stored under `Type.field` predicates.

    @dataclass
    class Party:
        id: str = predicate("Party.id", default="")
        name: str = predicate("Party.name", default="")

    @dataclass
    class Contract:
        id: str = predicate("Contract.id", default="")
        party: Optional[Party] = predicate("Contract.party", default=None, omit_null=True)

to_tree(obj) gives the serialized entity tree, from_tree(cls, data) reads one
back, and selection(cls) renders the matching DQL selection body.
"""
import dataclasses
import typing
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

ALIAS = "keyedgraph.alias"
OMIT_NULL = "keyedgraph.omit_null"

T = TypeVar("T")


def predicate(alias: str, *, default: Any = dataclasses.MISSING,
              default_factory: Any = dataclasses.MISSING, omit_null: bool = False) -> Any:
    """Declare a dataclass field stored under the predicate `alias`."""
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata={ALIAS: alias, OMIT_NULL: omit_null},
    )


def alias_of(f: dataclasses.Field) -> str:
    return f.metadata.get(ALIAS, f.name)


def predicates_of(cls: type) -> List[str]:
    """Predicate names declared by a model, in field order."""
    return [alias_of(f) for f in dataclasses.fields(cls)]


def to_tree(obj: Any) -> Dict[str, Any]:
    if not dataclasses.is_dataclass(obj) or isinstance(obj, type):
        raise TypeError(f"to_tree expects a dataclass instance, got {type(obj).__name__}")
    tree: Dict[str, Any] = {}
    for f in dataclasses.fields(obj):
        value = getattr(obj, f.name)
        if value is None and f.metadata.get(OMIT_NULL):
            continue
        tree[alias_of(f)] = _serialize(value)
    return tree


def _serialize(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_tree(value)
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    return value


def _unwrap(hint: Any) -> Any:
    """Strip Optional[...] down to the wrapped type."""
    if typing.get_origin(hint) is typing.Union:
        args = [a for a in typing.get_args(hint) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return hint


def _model_of(hint: Any) -> Optional[type]:
    hint = _unwrap(hint)
    if isinstance(hint, type) and dataclasses.is_dataclass(hint):
        return hint
    return None


def _list_item(hint: Any) -> Optional[Any]:
    hint = _unwrap(hint)
    if typing.get_origin(hint) in (list, List):
        args = typing.get_args(hint)
        return args[0] if args else Any
    return None


def from_tree(cls: Type[T], data: Mapping[str, Any]) -> T:
    """
    Hydrate `cls` from a query result. Keys the model doesn't declare are
    ignored; missing keys fall back to the field defaults.
    """
    hints = typing.get_type_hints(cls)
    kwargs = {}
    for f in dataclasses.fields(cls):
        alias = alias_of(f)
        if alias not in data:
            continue
        kwargs[f.name] = _deserialize(hints.get(f.name, Any), data[alias])
    return cls(**kwargs)


def _deserialize(hint: Any, value: Any) -> Any:
    if value is None:
        return None

    item_hint = _list_item(hint)
    if item_hint is not None:
        values = value if isinstance(value, list) else [value]
        return [_deserialize(item_hint, v) for v in values]

    model = _model_of(hint)
    if model is not None:
        # Edges declared [uid] in the store come back as lists.
        if isinstance(value, list):
            if not value:
                return None
            value = value[0]
        return from_tree(model, value)
    return value


def selection(cls: type, indent: int = 2) -> str:
    """DQL selection body for `cls`, nested models expanded."""
    return "\n".join(_selection_lines(cls, indent, 0, (cls,)))


def _selection_lines(cls: type, indent: int, depth: int, path: tuple) -> List[str]:
    hints = typing.get_type_hints(cls)
    pad = " " * (indent * depth)
    lines = []
    for f in dataclasses.fields(cls):
        alias = alias_of(f)
        hint = hints.get(f.name, Any)
        model = _model_of(_list_item(hint) or hint)
        if model is None:
            lines.append(f"{pad}{alias}")
        elif model in path:
            # Back-reference to a type already being expanded.
            continue
        else:
            lines.append(f"{pad}{alias} {{")
            lines.extend(_selection_lines(model, indent, depth + 1, path + (model,)))
            lines.append(f"{pad}}}")
    return lines
