# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import threading
import time
from unittest.mock import MagicMock

import pytest

from keyedgraph.protocol import AmbiguousKey, ProtocolError, UnknownType
from keyedgraph.resolver import Identity, IdentityResolver, KeyLockTable


def test_resolve_new_key_returns_blank_identity(store, schema):
    identity = IdentityResolver(schema).resolve(store, "Party", "P1")

    assert identity.is_new
    assert identity.uid.startswith("_:Party_")
    assert identity.blank_name == identity.uid[2:]
    # read-only
    assert store.mutate_calls() == []
    assert len(store.query_calls()) == 1

def test_resolve_existing_key(store, schema):
    store.nodes["0x9"] = {"Party.id": "P1", "dgraph.type": "Party"}

    identity = IdentityResolver(schema).resolve(store, "Party", "P1")

    assert identity == Identity("0x9")
    assert not identity.is_new
    assert identity.blank_name is None

def test_lookup_filters_on_the_id_field(store, schema):
    IdentityResolver(schema).resolve(store, "Contract", "C1")
    _, dql, variables = store.calls[0]
    assert "eq(Contract.id, $key)" in dql
    assert variables == {"$key": "C1"}

def test_resolve_ambiguous_key(store, schema):
    store.nodes["0x1"] = {"Party.id": "P1"}
    store.nodes["0x2"] = {"Party.id": "P1"}

    with pytest.raises(AmbiguousKey, match="0x1"):
        IdentityResolver(schema).resolve(store, "Party", "P1")

def test_resolve_unknown_type(store, schema):
    with pytest.raises(UnknownType):
        IdentityResolver(schema).resolve(store, "Invoice", "I1")
    assert store.calls == []

def test_match_without_uid_is_protocol_error(schema):
    conn = MagicMock()
    conn.query.return_value = {"list": [{}]}
    with pytest.raises(ProtocolError):
        IdentityResolver(schema).resolve(conn, "Party", "P1")

def test_blank_identity_is_deterministic():
    assert Identity.blank("Party", "P1") == Identity.blank("Party", "P1")
    assert Identity.blank("Party", "P1") != Identity.blank("Party", "P2")
    assert Identity.blank("Party", "P1") != Identity.blank("Member", "P1")
    # keys with characters not allowed in blank node names are hashed
    assert " " not in Identity.blank("Party", "Acme Corp / EU").uid


def test_key_lock_table_serialises_same_key():
    table = KeyLockTable()
    order = []

    def writer(name):
        with table.hold([("Party", "P1")]):
            order.append(f"{name}-in")
            time.sleep(0.05)
            order.append(f"{name}-out")

    threads = [threading.Thread(target=writer, args=(n,)) for n in ("a", "b")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    # no interleaving inside the critical section
    assert order[0][0] == order[1][0]
    assert order[2][0] == order[3][0]

def test_key_lock_table_repeated_keys_and_release():
    table = KeyLockTable()
    keys = [("Party", "P1"), ("Party", "P1"), ("Contract", "C1")]
    with table.hold(keys):
        pass
    # released: can be taken again without blocking
    with table.hold(keys):
        pass

def test_key_lock_table_forgets_released_keys():
    table = KeyLockTable()
    with table.hold([("Party", "P1"), ("Contract", "C1")]):
        assert len(table) == 2
        assert table.is_held("Party", "P1")
    assert len(table) == 0
    assert not table.is_held("Party", "P1")

    for i in range(100):
        with table.hold([("Party", f"P{i}")]):
            pass
    assert len(table) == 0

def test_key_lock_table_keeps_entry_while_waited_on():
    table = KeyLockTable()
    entered = threading.Event()
    release = threading.Event()

    def holder():
        with table.hold([("Party", "P1")]):
            entered.set()
            release.wait(1)

    t = threading.Thread(target=holder)
    t.start()
    entered.wait(1)
    done = []

    def second():
        with table.hold([("Party", "P1")]):
            done.append(len(table))

    w = threading.Thread(target=second)
    w.start()
    time.sleep(0.05)
    # the waiting writer still finds the entry it queued on
    assert table.is_held("Party", "P1")
    release.set()
    t.join()
    w.join()

    assert done == [1]
    assert len(table) == 0
