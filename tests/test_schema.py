# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import pytest

from keyedgraph.protocol import InvalidArgument, UnknownType
from keyedgraph.schema import NodeType, Relationship, SchemaRegistry


def test_register_and_lookup(schema):
    entry = schema.lookup("Contract")
    assert isinstance(entry, NodeType)
    assert entry.id_field == "Contract.id"
    assert entry.relationships == (Relationship("Contract.party", "Party"),)
    assert entry.relationship("Contract.party").target_type == "Party"
    assert entry.relationship("Contract.other") is None

    assert schema.lookup("Party").relationships == ()
    assert "Party" in schema
    assert set(schema) == {"Contract", "Party"}
    assert len(schema) == 2

def test_lookup_unknown_type(schema):
    with pytest.raises(UnknownType, match="Invoice"):
        schema.lookup("Invoice")

def test_relationship_order_is_kept():
    registry = SchemaRegistry()
    entry = registry.register("Deal", "Deal.id", [
        Relationship("Deal.seller", "Member"),
        ("Deal.buyer", "Member"),
        ("Deal.goods", "Goods"),
    ])
    assert [r.predicate for r in entry.relationships] == ["Deal.seller", "Deal.buyer", "Deal.goods"]

def test_cyclic_schema_registers_by_name():
    registry = SchemaRegistry()
    # Target types are names, so they may be registered later or be self-references
    registry.register("Person", "Person.id", [("Person.manager", "Person"), ("Person.team", "Team")])
    registry.register("Team", "Team.id", [("Team.lead", "Person")])
    assert registry.lookup("Person").relationship("Person.manager").target_type == "Person"

def test_duplicate_registration_rejected(schema):
    with pytest.raises(InvalidArgument, match="already registered"):
        schema.register("Party", "Party.code")

@pytest.mark.parametrize("node_type,id_field,rels", [
    ("Bad Type", "X.id", []),
    ("", "X.id", []),
    ("X", "X id", []),
    ("X", "X.id", [("X.rel } evil", "Y")]),
    ("X", "X.id", [("X.rel", "Y.Z")]),
    ("X", "X.id", [("X.rel", "Y"), ("X.rel", "Z")]),
    ("X", "X.id", [("X.id", "Y")]),
])
def test_invalid_registration(node_type, id_field, rels):
    with pytest.raises(InvalidArgument):
        SchemaRegistry().register(node_type, id_field, rels)

def test_invalid_argument_is_value_error():
    with pytest.raises(ValueError):
        SchemaRegistry().register("X", "not valid")
