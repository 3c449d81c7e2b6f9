# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
from __future__ import annotations

import hashlib
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Hashable, Iterable, Iterator, Optional, Tuple

from .markers import BLANK_PREFIX, UID
from .protocol import AmbiguousKey, DgraphConnection, ProtocolError
from .schema import SchemaRegistry

logger = logging.getLogger(__name__)

LOOKUP_QUERY = """
query lookup($key: string) {{
  list(func: eq({id_field}, $key)) {{
    uid
  }}
}}
"""


@dataclass(frozen=True)
class Identity:
    """Either the uid of a stored node or a blank-node reference for a new one."""

    uid: str

    @property
    def is_new(self) -> bool:
        return self.uid.startswith(BLANK_PREFIX)

    @property
    def blank_name(self) -> Optional[str]:
        """Name under which the store reports the uid it assigned."""
        return self.uid[len(BLANK_PREFIX):] if self.is_new else None

    @classmethod
    def blank(cls, node_type: str, key: Any) -> "Identity":
        # Same (type, key) always yields the same blank node, so repeated
        # occurrences of a new entity in one tree collapse to one node.
        digest = hashlib.sha1(str(key).encode("utf-8")).hexdigest()[:16]
        return cls(f"{BLANK_PREFIX}{node_type}_{digest}")


class IdentityResolver:
    """
    Maps (node type, business key) to an Identity with one point lookup.

    Lookups never write and are not cached.
    """

    def __init__(self, schema: SchemaRegistry):
        self.schema = schema

    def resolve(self, connection: DgraphConnection, node_type: str, key: Any) -> Identity:
        entry = self.schema.lookup(node_type)
        data = connection.query(
            LOOKUP_QUERY.format(id_field=entry.id_field),
            {"$key": str(key)},
        )
        matches = data.get("list") or []
        if not isinstance(matches, list):
            raise ProtocolError(f"invalid lookup response for {node_type}: {matches!r}")

        if len(matches) > 1:
            uids = [m.get(UID) for m in matches]
            raise AmbiguousKey(
                f"{len(matches)} {node_type} nodes share {entry.id_field}={key!r}: {uids}"
            )
        if matches:
            uid = matches[0].get(UID)
            if not uid:
                raise ProtocolError(f"lookup for {node_type} returned a match without uid")
            logger.debug(f"resolved {node_type} {key!r} -> {uid}")
            return Identity(uid)

        identity = Identity.blank(node_type, key)
        logger.debug(f"resolved {node_type} {key!r} -> new {identity.uid}")
        return identity


class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        # holders plus waiters
        self.users = 0


class KeyLockTable:
    """
    In-process locks keyed by (node type, business key).

    Holding the locks for every key of a tree across resolve, assemble and
    mutate serialises writers in this process only. Writers in other
    processes can still race on the same new key.

    An entry lives only while some writer holds or waits for it, so the
    table stays empty between writes.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, _KeyLock] = {}

    def _checkout(self, key: Hashable) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _KeyLock()
            entry.users += 1
            return entry.lock

    def _checkin(self, key: Hashable) -> None:
        with self._guard:
            entry = self._locks[key]
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    def is_held(self, node_type: str, key: Any) -> bool:
        with self._guard:
            entry = self._locks.get((node_type, str(key)))
            return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, keys: Iterable[Tuple[str, Any]]) -> Iterator[None]:
        # Sorted acquisition order keeps two writers from deadlocking.
        ordered = sorted({(t, str(k)) for t, k in keys})
        checked_out = []
        acquired = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                checked_out.append(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in checked_out:
                self._checkin(key)
