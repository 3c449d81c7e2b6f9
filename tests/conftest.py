# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import hashlib
import json
import re
from unittest.mock import MagicMock

import numpy as np
import pytest

from keyedgraph.schema import SchemaRegistry

# --- MOCK INFRASTRUCTURE ---

LOOKUP_RE = re.compile(r"eq\(([\w.]+), \$key\)")
SIMILAR_RE = re.compile(r"similar_to\(([\w.]+), (\d+), \$vector\)")
MIN_SCORE_RE = re.compile(r"gt\(val\(score\), ([-+\d.eE]+)\)")
DELETE_FILTER_RE = re.compile(r'var\(func: eq\(([\w.]+), (".*?")\)\)')


class Ref:
    """Stored edge to another node."""
    def __init__(self, uid):
        self.uid = uid


class FakeStore:
    """
    In-memory stand-in for the Dgraph HTTP API, speaking the handful of
    query shapes keyedgraph sends. Every call is recorded in `calls`.
    """

    def __init__(self):
        self.nodes = {}
        self.calls = []
        self.uid_counter = 0

    # -- helpers for assertions --

    def find(self, predicate, value):
        return [uid for uid, node in self.nodes.items()
                if node.get(predicate) is not None and str(node[predicate]) == str(value)]

    def hydrate(self, uid, _path=()):
        out = {"uid": uid}
        for pred, value in self.nodes[uid].items():
            if isinstance(value, Ref):
                if value.uid not in _path:
                    out[pred] = self.hydrate(value.uid, _path + (uid,))
            elif isinstance(value, list) and value and isinstance(value[0], Ref):
                out[pred] = [self.hydrate(r.uid, _path + (uid,)) for r in value]
            else:
                out[pred] = value
        return out

    def query_calls(self):
        return [c for c in self.calls if c[0] == "query"]

    def mutate_calls(self):
        return [c for c in self.calls if c[0] == "mutate"]

    # -- DgraphConnection surface --

    def query(self, dql, variables=None):
        self.calls.append(("query", dql, variables))
        variables = variables or {}

        m = SIMILAR_RE.search(dql)
        if m:
            return {"list": self._similar(m.group(1), int(m.group(2)), variables["$vector"], dql)}

        m = LOOKUP_RE.search(dql)
        if m:
            return {"list": [self.hydrate(uid) for uid in self.find(m.group(1), variables["$key"])]}

        raise AssertionError(f"unexpected query: {dql}")

    def mutate(self, set_json=None, delete_json=None, query=None):
        self.calls.append(("mutate", set_json, delete_json, query))
        if set_json is not None:
            uids = {}
            self._apply(set_json, uids)
            return {"code": "Success", "uids": uids}

        m = DELETE_FILTER_RE.search(query)
        assert m, f"unexpected delete query: {query}"
        matched = self.find(m.group(1), json.loads(m.group(2)))
        for uid in matched:
            for pred in delete_json:
                if pred != "uid":
                    self.nodes[uid].pop(pred, None)
        return {"code": "Success", "uids": {}, "queries": {"matched": [{"count": len(matched)}]}}

    def _apply(self, obj, uids):
        ref = obj["uid"]
        if ref.startswith("_:"):
            name = ref[2:]
            if name not in uids:
                self.uid_counter += 1
                uids[name] = hex(self.uid_counter)
            uid = uids[name]
        else:
            uid = ref
            assert uid in self.nodes, f"mutation references unknown uid {uid}"

        node = self.nodes.setdefault(uid, {})
        for pred, value in obj.items():
            if pred == "uid":
                continue
            if isinstance(value, dict):
                node[pred] = Ref(self._apply(value, uids))
            elif isinstance(value, list) and value and isinstance(value[0], dict):
                node[pred] = [Ref(self._apply(v, uids)) for v in value]
            else:
                node[pred] = value
        return uid

    def _similar(self, predicate, top_k, raw_vector, dql):
        q = np.array(json.loads(raw_vector))
        scored = []
        for uid, node in self.nodes.items():
            if node.get(predicate) is None:
                continue
            v = np.array(json.loads(node[predicate]))
            diff = v - q
            scored.append((1 - float(np.dot(diff, diff)) / 2.0, uid))
        scored.sort(key=lambda s: -s[0])
        scored = scored[:top_k]

        m = MIN_SCORE_RE.search(dql)
        if m:
            floor = float(m.group(1))
            scored = [s for s in scored if s[0] > floor]
        return [self.hydrate(uid) for _, uid in scored]


# --- HELPERS ---

def dummy_embed(texts):
    """
    Deterministic unit-length 16-dim embeddings derived from a hash of each text.
    """
    out = []
    for text in texts:
        hash_val = hashlib.sha256(text.encode()).hexdigest()
        vec = np.array([int(hash_val[i*2:(i+1)*2], 16) / 255.0 * 2 - 1 for i in range(16)])
        out.append((vec / np.linalg.norm(vec)).tolist())
    return out


def unit(*values):
    vec = np.array(values, dtype=float)
    return (vec / np.linalg.norm(vec)).tolist()


def mock_response(status=200, json_data=None, text="", reason="OK"):
    mock = MagicMock()
    mock.status_code = status
    mock.reason = reason
    mock.ok = 200 <= status < 300
    mock.text = text
    if json_data is not None:
        mock.json.return_value = json_data
    else:
        # If json() is called when no json_data provided, raise ValueError
        mock.json.side_effect = ValueError("No JSON")
    return mock


# --- FIXTURES ---

@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def schema():
    registry = SchemaRegistry()
    registry.register("Contract", "Contract.id", [("Contract.party", "Party")])
    registry.register("Party", "Party.id")
    return registry
