"""
Hierarchical Document Store

Stores the dashboard's realtime-database tree in MySQL. Every top-level node
(a home code, `users`, `reviews`, ...) is one row of `store_nodes` whose value
is the node's JSON document. Callers address data with slash paths:

    /                         whole tree (dict of node key -> document)
    /oneill                   one top-level node
    /oneill/overviewMetrics   a child inside that node's document

Consistency:
    Every call opens its own connection and commits on its own. A nested
    set() locks the node row (SELECT ... FOR UPDATE) and rewrites it in the
    same transaction, so writes to sibling paths such as two different
    /users/<id> never lose each other. There is no transaction spanning a
    get() followed by a set(), so a caller's own read-modify-write sequence
    is still last-writer-wins.
"""

import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import pymysql

from utils.errors import StoreError


NODES_TABLE = "store_nodes"

_DRIVER_ERRORS = (pymysql.MySQLError, RuntimeError, OSError, ValueError)


def split_path(path: str) -> List[str]:
    """Split a slash path into its segments; '/' and '' yield []."""
    return [part for part in (path or "").strip().split("/") if part]


class DocumentStore:
    """JSON document tree persisted through a pymysql connection factory.

    Args:
        connect: Zero-argument callable returning a DB-API connection whose
            cursors yield dict rows (pymysql DictCursor)
    """

    def __init__(self, connect: Callable[[], Any]):
        self._connect = connect

    # -- public API ---------------------------------------------------------

    def get(self, path: str = "/") -> Any:
        """Return the value at `path`, or None when nothing is stored there."""
        segments = split_path(path)
        if not segments:
            root = self._load_root()
            return root or None
        document = self._load_node(segments[0])
        return _descend(document, segments[1:])

    def set(self, path: str, value: Any) -> None:
        """Replace the value at `path`. A None value deletes it.

        Missing intermediate objects are created. Writing the root is not
        supported; write individual nodes instead.
        """
        segments = split_path(path)
        if not segments:
            raise ValueError("Cannot overwrite the store root")
        key = segments[0]
        if len(segments) == 1:
            if value is None:
                self._delete_node(key)
            else:
                self._save_node(key, value)
            return

        self._run(lambda cur: self._update_node(cur, key, segments[1:], value), commit=True)

    def delete(self, path: str) -> None:
        self.set(path, None)

    def ping(self) -> None:
        """Round-trip to the database; raises StoreError when unreachable."""
        self._run(lambda cur: cur.execute("SELECT 1 AS ok"))

    # -- SQL ----------------------------------------------------------------

    def _update_node(self, cur, key: str, child_segments: List[str], value: Any) -> None:
        """Rewrite one child of a node inside the caller's transaction.

        The row is created if missing and locked before it is read, so a
        concurrent write to a sibling path waits for this commit.
        """
        cur.execute(
            f"INSERT INTO `{NODES_TABLE}` (node_key, node_value, updated_at) VALUES (%s, %s, %s) "
            "ON DUPLICATE KEY UPDATE node_key = node_key",
            (key, "{}", _utcnow()),
        )
        document = self._lock_node(cur, key)
        if not isinstance(document, dict):
            document = {}
        parent = document
        for segment in child_segments[:-1]:
            child = parent.get(segment)
            if not isinstance(child, dict):
                child = {}
                parent[segment] = child
            parent = child
        if value is None:
            parent.pop(child_segments[-1], None)
        else:
            parent[child_segments[-1]] = value

        if document:
            _upsert(cur, key, document)
        else:
            cur.execute(f"DELETE FROM `{NODES_TABLE}` WHERE node_key = %s", (key,))

    def _lock_node(self, cur, key: str) -> Any:
        cur.execute(f"SELECT node_value FROM `{NODES_TABLE}` WHERE node_key = %s FOR UPDATE", (key,))
        row = cur.fetchone()
        return _decode(row["node_value"]) if row else None

    def _load_root(self) -> Dict[str, Any]:
        def query(cur):
            cur.execute(f"SELECT node_key, node_value FROM `{NODES_TABLE}`")
            return cur.fetchall() or []

        rows = self._run(query)
        return {row["node_key"]: _decode(row["node_value"]) for row in rows}

    def _load_node(self, key: str) -> Any:
        def query(cur):
            cur.execute(f"SELECT node_value FROM `{NODES_TABLE}` WHERE node_key = %s", (key,))
            return cur.fetchone()

        row = self._run(query)
        if not row:
            return None
        return _decode(row["node_value"])

    def _save_node(self, key: str, value: Any) -> None:
        self._run(lambda cur: _upsert(cur, key, value), commit=True)

    def _delete_node(self, key: str) -> None:
        self._run(
            lambda cur: cur.execute(f"DELETE FROM `{NODES_TABLE}` WHERE node_key = %s", (key,)),
            commit=True,
        )

    def _run(self, work: Callable[[Any], Any], commit: bool = False) -> Any:
        conn = None
        cursor = None
        try:
            conn = self._connect()
            cursor = conn.cursor()
            result = work(cursor)
            if commit:
                conn.commit()
            return result
        except _DRIVER_ERRORS as e:
            if conn and commit:
                try:
                    conn.rollback()
                except pymysql.MySQLError:
                    pass
            raise StoreError(f"Document store error: {e}") from e
        finally:
            if cursor:
                try:
                    cursor.close()
                except pymysql.MySQLError:
                    pass
            if conn:
                try:
                    conn.close()
                except pymysql.MySQLError:
                    pass


def _decode(raw: Any) -> Any:
    if raw is None:
        return None
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    return json.loads(raw)


def _descend(document: Any, segments: List[str]) -> Optional[Any]:
    current = document
    for segment in segments:
        if not isinstance(current, dict) or segment not in current:
            return None
        current = current[segment]
    return current


def _upsert(cur, key: str, value: Any) -> None:
    cur.execute(
        f"INSERT INTO `{NODES_TABLE}` (node_key, node_value, updated_at) VALUES (%s, %s, %s) "
        "ON DUPLICATE KEY UPDATE node_value = VALUES(node_value), updated_at = VALUES(updated_at)",
        (key, json.dumps(value), _utcnow()),
    )


def _utcnow() -> datetime:
    # naive UTC for the DATETIME column
    return datetime.now(timezone.utc).replace(tzinfo=None)
