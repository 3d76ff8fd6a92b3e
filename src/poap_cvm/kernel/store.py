from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Optional, Tuple

from .schema import CodeData, CodeEntity, ComponentData, ComponentEntity, EventRecord


class ChainStore:
    """
    SQLite persistence for the host: code, components, component storage,
    the block clock and the event log.

    Writes are not committed one by one. The host wraps every top-level call
    in ``transaction()`` and every sub-message in a nested savepoint, so a
    failure anywhere reverts everything the call wrote.
    """

    def __init__(self, path: str) -> None:
        # Autocommit mode: transactions are driven explicitly with SAVEPOINT
        self._conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._depth = 0
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()

        # Uploaded component classes
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS codes (
                code_id INTEGER PRIMARY KEY AUTOINCREMENT,
                label TEXT NOT NULL,
                python_ref TEXT NOT NULL,
                description TEXT
            )
            """
        )

        # Deployed components
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS components (
                address TEXT PRIMARY KEY,
                code_id INTEGER NOT NULL,
                data_json TEXT NOT NULL
            )
            """
        )

        # Component key-value storage, one namespace per component address
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS kv (
                namespace TEXT NOT NULL,
                key TEXT NOT NULL,
                value_json TEXT NOT NULL,
                PRIMARY KEY (namespace, key)
            )
            """
        )

        # Host counters and clock
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS meta (
                key TEXT PRIMARY KEY,
                value_json TEXT NOT NULL
            )
            """
        )

        # Audit log of top-level calls
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS events (
                id TEXT PRIMARY KEY,
                clock_actor TEXT NOT NULL,
                clock_seq INTEGER NOT NULL,
                type TEXT NOT NULL,
                op TEXT NOT NULL,
                height INTEGER NOT NULL,
                payload_json TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_components_code
            ON components(code_id)
            """
        )

    # =========================================================================
    # Transactions
    # =========================================================================

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the block atomically; nested calls become nested savepoints."""
        self._depth += 1
        name = f"sp_{self._depth}"
        self._conn.execute(f"SAVEPOINT {name}")
        try:
            yield
        except BaseException:
            self._conn.execute(f"ROLLBACK TO {name}")
            self._conn.execute(f"RELEASE {name}")
            raise
        else:
            self._conn.execute(f"RELEASE {name}")
        finally:
            self._depth -= 1

    # =========================================================================
    # Code and components
    # =========================================================================

    def save_code(self, data: CodeData) -> CodeEntity:
        cur = self._conn.execute(
            "INSERT INTO codes (label, python_ref, description) VALUES (?, ?, ?)",
            (data.label, data.python_ref, data.description),
        )
        return CodeEntity(id=int(cur.lastrowid), data=data)

    def load_code(self, code_id: int) -> Optional[CodeEntity]:
        row = self._conn.execute(
            "SELECT * FROM codes WHERE code_id = ?", (code_id,)
        ).fetchone()
        if not row:
            return None
        return CodeEntity(
            id=row["code_id"],
            data=CodeData(
                label=row["label"],
                python_ref=row["python_ref"],
                description=row["description"],
            ),
        )

    def find_code(self, python_ref: str) -> Optional[CodeEntity]:
        row = self._conn.execute(
            "SELECT code_id FROM codes WHERE python_ref = ? ORDER BY code_id LIMIT 1",
            (python_ref,),
        ).fetchone()
        return self.load_code(row["code_id"]) if row else None

    def iter_codes(self) -> Iterable[CodeEntity]:
        rows = self._conn.execute("SELECT code_id FROM codes ORDER BY code_id").fetchall()
        for row in rows:
            code = self.load_code(row["code_id"])
            if code is not None:
                yield code

    def save_component(self, component: ComponentEntity) -> None:
        self._conn.execute(
            """
            INSERT INTO components (address, code_id, data_json)
            VALUES (?, ?, json(?))
            ON CONFLICT(address) DO UPDATE SET
                code_id=excluded.code_id,
                data_json=excluded.data_json
            """,
            (
                component.id,
                component.data.code_id,
                json.dumps(component.data.model_dump()),
            ),
        )

    def load_component(self, address: str) -> Optional[ComponentEntity]:
        row = self._conn.execute(
            "SELECT * FROM components WHERE address = ?", (address,)
        ).fetchone()
        if not row:
            return None
        return ComponentEntity(id=row["address"], data=json.loads(row["data_json"]))

    def iter_components(self, code_id: Optional[int] = None) -> Iterable[ComponentEntity]:
        if code_id is None:
            rows = self._conn.execute("SELECT * FROM components ORDER BY rowid").fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM components WHERE code_id = ? ORDER BY rowid", (code_id,)
            ).fetchall()
        for row in rows:
            yield ComponentEntity(id=row["address"], data=json.loads(row["data_json"]))

    # =========================================================================
    # Component storage
    # =========================================================================

    def kv_get(self, namespace: str, key: str) -> Optional[Any]:
        row = self._conn.execute(
            "SELECT value_json FROM kv WHERE namespace = ? AND key = ?",
            (namespace, key),
        ).fetchone()
        return json.loads(row["value_json"]) if row else None

    def kv_set(self, namespace: str, key: str, value: Any) -> None:
        self._conn.execute(
            """
            INSERT INTO kv (namespace, key, value_json) VALUES (?, ?, ?)
            ON CONFLICT(namespace, key) DO UPDATE SET value_json=excluded.value_json
            """,
            (namespace, key, json.dumps(value, sort_keys=True)),
        )

    def kv_remove(self, namespace: str, key: str) -> None:
        self._conn.execute(
            "DELETE FROM kv WHERE namespace = ? AND key = ?", (namespace, key)
        )

    def kv_range(
        self,
        namespace: str,
        prefix: str = "",
        start_after: Optional[str] = None,
        limit: Optional[int] = None,
        reverse: bool = False,
    ) -> List[Tuple[str, Any]]:
        """Keys under ``prefix`` in byte order, optionally after/before a bound."""
        sql = "SELECT key, value_json FROM kv WHERE namespace = ? AND substr(key, 1, ?) = ?"
        params: list = [namespace, len(prefix), prefix]
        if start_after is not None:
            sql += " AND key < ?" if reverse else " AND key > ?"
            params.append(start_after)
        sql += " ORDER BY key DESC" if reverse else " ORDER BY key"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        rows = self._conn.execute(sql, params).fetchall()
        return [(row["key"], json.loads(row["value_json"])) for row in rows]

    def kv_dump(self, namespace: str) -> List[Tuple[str, str]]:
        """Raw serialized rows of a namespace, used to compare state byte for byte."""
        rows = self._conn.execute(
            "SELECT key, value_json FROM kv WHERE namespace = ? ORDER BY key",
            (namespace,),
        ).fetchall()
        return [(row["key"], row["value_json"]) for row in rows]

    # =========================================================================
    # Meta (clock, counters)
    # =========================================================================

    def get_meta(self, key: str, default: Any = None) -> Any:
        row = self._conn.execute(
            "SELECT value_json FROM meta WHERE key = ?", (key,)
        ).fetchone()
        return json.loads(row["value_json"]) if row else default

    def set_meta(self, key: str, value: Any) -> None:
        self._conn.execute(
            """
            INSERT INTO meta (key, value_json) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value_json=excluded.value_json
            """,
            (key, json.dumps(value)),
        )

    def next_sequence(self, name: str) -> int:
        """Return the current value of counter ``name`` and advance it."""
        value = int(self.get_meta(f"seq:{name}", 0))
        self.set_meta(f"seq:{name}", value + 1)
        return value

    # =========================================================================
    # Event log
    # =========================================================================

    def append(self, event: EventRecord) -> None:
        self._conn.execute(
            """
            INSERT INTO events (
                id,
                clock_actor,
                clock_seq,
                type,
                op,
                height,
                payload_json
            ) VALUES (?, ?, ?, ?, ?, ?, json(?))
            """,
            (
                event.id,
                event.clock.actor,
                event.clock.seq,
                event.type.value,
                event.op.value,
                event.height,
                json.dumps(event.payload),
            ),
        )

    def iter_events(self, limit: Optional[int] = None) -> Iterable[EventRecord]:
        sql = "SELECT * FROM events ORDER BY clock_seq"
        params: tuple = ()
        if limit is not None:
            sql = "SELECT * FROM (SELECT * FROM events ORDER BY clock_seq DESC LIMIT ?) ORDER BY clock_seq"
            params = (limit,)
        for row in self._conn.execute(sql, params).fetchall():
            yield EventRecord(
                id=row["id"],
                clock={"actor": row["clock_actor"], "seq": row["clock_seq"]},
                type=row["type"],
                op=row["op"],
                height=row["height"],
                payload=json.loads(row["payload_json"]),
            )

    def close(self) -> None:
        self._conn.close()
