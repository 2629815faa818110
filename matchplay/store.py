"""JSON document storage for matches, rounds, tournaments, courses and derived records.

Two backends share one table layout: SQLite for local runs and tests, and
Postgres (JSONB) for deployments. Every committed write is reported to the
registered listeners as a :class:`Change` carrying before/after snapshots.
"""

from __future__ import annotations

import copy
import json
import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

import psycopg
from psycopg.types.json import Jsonb

logger = logging.getLogger(__name__)

SQLITE_PREFIX = "sqlite:///"
DEFAULT_TRANSACTION_ATTEMPTS = 5


class StoreError(Exception):
    pass


class TransactionConflict(StoreError):
    pass


@dataclass(frozen=True)
class Change:
    collection: str
    doc_id: str
    before: Optional[dict]
    after: Optional[dict]
    derived: bool = False

    @property
    def created(self) -> bool:
        return self.before is None and self.after is not None

    @property
    def deleted(self) -> bool:
        return self.after is None


@dataclass(frozen=True)
class WriteOp:
    collection: str
    doc_id: str
    data: Optional[dict]
    merge: bool = False
    expected_version: Optional[int] = None
    derived: bool = False


def _normalized(data: Optional[dict]) -> Optional[dict]:
    if data is None:
        return None
    return json.loads(json.dumps(data))


def _next_state(op: WriteOp, before: Optional[dict], version: int) -> Optional[dict]:
    if op.expected_version is not None and version != op.expected_version:
        raise TransactionConflict(
            f"{op.collection}/{op.doc_id} changed (expected v{op.expected_version}, found v{version})"
        )
    if op.data is None:
        return None
    if op.merge and before is not None:
        merged = copy.deepcopy(before)
        merged.update(copy.deepcopy(op.data))
        return _normalized(merged)
    return _normalized(op.data)


class WriteBatch:
    """Collects writes and commits them atomically."""

    def __init__(self, store: "DocumentStore", derived: bool = False) -> None:
        self._store = store
        self._derived = derived
        self._ops: list[WriteOp] = []

    def __len__(self) -> int:
        return len(self._ops)

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        self._ops.append(WriteOp(collection, doc_id, data, merge=merge, derived=self._derived))

    def delete(self, collection: str, doc_id: str) -> None:
        self._ops.append(WriteOp(collection, doc_id, None, derived=self._derived))

    def commit(self) -> list[Change]:
        if not self._ops:
            return []
        return self._store.commit(self._ops)


class Transaction:
    """Optimistic read-modify-write: writes only land if every read is still current."""

    def __init__(self, store: "DocumentStore") -> None:
        self._store = store
        self._versions: dict[tuple[str, str], int] = {}
        self.ops: list[WriteOp] = []

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        data, version = self._store._read(collection, doc_id)
        self._versions[(collection, doc_id)] = version
        return data

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        expected = self._versions.get((collection, doc_id))
        self.ops.append(WriteOp(collection, doc_id, data, merge=merge, expected_version=expected))

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        self.set(collection, doc_id, fields, merge=True)

    def delete(self, collection: str, doc_id: str) -> None:
        expected = self._versions.get((collection, doc_id))
        self.ops.append(WriteOp(collection, doc_id, None, expected_version=expected))


class DocumentStore:
    def __init__(self) -> None:
        self._listeners: list[Callable[[Change], None]] = []

    def add_listener(self, listener: Callable[[Change], None]) -> None:
        self._listeners.append(listener)

    def ensure_schema(self) -> None:
        raise NotImplementedError

    def _read(self, collection: str, doc_id: str) -> tuple[Optional[dict], int]:
        raise NotImplementedError

    def _apply(self, ops: list[WriteOp]) -> list[Change]:
        raise NotImplementedError

    def where(self, collection: str, field: str, value: Any) -> list[tuple[str, dict]]:
        raise NotImplementedError

    def list_documents(self, collection: str) -> list[tuple[str, dict]]:
        raise NotImplementedError

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        return self._read(collection, doc_id)[0]

    def set(
        self,
        collection: str,
        doc_id: str,
        data: dict,
        merge: bool = False,
        derived: bool = False,
    ) -> Optional[Change]:
        changes = self.commit([WriteOp(collection, doc_id, data, merge=merge, derived=derived)])
        return changes[0] if changes else None

    def delete(self, collection: str, doc_id: str, derived: bool = False) -> Optional[Change]:
        changes = self.commit([WriteOp(collection, doc_id, None, derived=derived)])
        return changes[0] if changes else None

    def batch(self, derived: bool = False) -> WriteBatch:
        return WriteBatch(self, derived=derived)

    def run_transaction(
        self,
        fn: Callable[[Transaction], Any],
        max_attempts: int = DEFAULT_TRANSACTION_ATTEMPTS,
    ) -> Any:
        for attempt in range(1, max_attempts + 1):
            tx = Transaction(self)
            outcome = fn(tx)
            try:
                if tx.ops:
                    self.commit(tx.ops)
            except TransactionConflict as exc:
                if attempt == max_attempts:
                    raise
                logger.info("Retrying transaction (attempt %s/%s): %s", attempt, max_attempts, exc)
                continue
            return outcome
        return None

    def commit(self, ops: list[WriteOp]) -> list[Change]:
        changes = self._apply(ops)
        for change in changes:
            for listener in self._listeners:
                listener(change)
        return changes

    def _change(self, op: WriteOp, before: Optional[dict], after: Optional[dict]) -> Change:
        return Change(op.collection, op.doc_id, before, after, derived=op.derived)


class SqliteDocumentStore(DocumentStore):
    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path)

    def _connect(self) -> sqlite3.Connection:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.path, timeout=30, isolation_level=None)

    def ensure_schema(self) -> None:
        conn = self._connect()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    doc_id TEXT NOT NULL,
                    data TEXT NOT NULL,
                    version INTEGER NOT NULL DEFAULT 1,
                    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (collection, doc_id)
                );
                """
            )
        except sqlite3.Error as exc:
            raise StoreError(f"Could not create schema: {exc}") from exc
        finally:
            conn.close()

    def _read(self, collection: str, doc_id: str) -> tuple[Optional[dict], int]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT data, version FROM documents WHERE collection = ? AND doc_id = ?;",
                (collection, doc_id),
            ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Read of {collection}/{doc_id} failed: {exc}") from exc
        finally:
            conn.close()
        if not row:
            return None, 0
        return json.loads(row[0]), row[1]

    def _select(self, query: str, params: tuple) -> list[tuple[str, dict]]:
        conn = self._connect()
        try:
            rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Query failed: {exc}") from exc
        finally:
            conn.close()
        return [(row[0], json.loads(row[1])) for row in rows]

    def where(self, collection: str, field: str, value: Any) -> list[tuple[str, dict]]:
        return self._select(
            """
            SELECT doc_id, data FROM documents
            WHERE collection = ? AND json_extract(data, ?) = ?
            ORDER BY doc_id;
            """,
            (collection, f"$.{field}", value),
        )

    def list_documents(self, collection: str) -> list[tuple[str, dict]]:
        return self._select(
            "SELECT doc_id, data FROM documents WHERE collection = ? ORDER BY doc_id;",
            (collection,),
        )

    def _apply_op(self, conn: sqlite3.Connection, op: WriteOp) -> Optional[Change]:
        row = conn.execute(
            "SELECT data, version FROM documents WHERE collection = ? AND doc_id = ?;",
            (op.collection, op.doc_id),
        ).fetchone()
        before = json.loads(row[0]) if row else None
        after = _next_state(op, before, row[1] if row else 0)
        if after == before:
            return None
        if after is None:
            conn.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_id = ?;",
                (op.collection, op.doc_id),
            )
        elif before is None:
            conn.execute(
                "INSERT INTO documents (collection, doc_id, data, version) VALUES (?, ?, ?, 1);",
                (op.collection, op.doc_id, json.dumps(after)),
            )
        else:
            conn.execute(
                """
                UPDATE documents
                SET data = ?, version = version + 1, updated_at = CURRENT_TIMESTAMP
                WHERE collection = ? AND doc_id = ?;
                """,
                (json.dumps(after), op.collection, op.doc_id),
            )
        return self._change(op, before, after)

    def _apply(self, ops: list[WriteOp]) -> list[Change]:
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE;")
            changes: list[Change] = []
            try:
                for op in ops:
                    change = self._apply_op(conn, op)
                    if change:
                        changes.append(change)
            except BaseException:
                conn.execute("ROLLBACK;")
                raise
            conn.execute("COMMIT;")
            return changes
        except sqlite3.Error as exc:
            raise StoreError(f"Write failed: {exc}") from exc
        finally:
            conn.close()


class PostgresDocumentStore(DocumentStore):
    def __init__(self, database_url: str) -> None:
        super().__init__()
        self.database_url = database_url

    def ensure_schema(self) -> None:
        try:
            with psycopg.connect(self.database_url) as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        create table if not exists documents (
                            collection text not null,
                            doc_id text not null,
                            data jsonb not null,
                            version integer not null default 1,
                            updated_at timestamptz not null default now(),
                            primary key (collection, doc_id)
                        );
                        """
                    )
        except psycopg.Error as exc:
            raise StoreError(f"Could not create schema: {exc}") from exc

    def _read(self, collection: str, doc_id: str) -> tuple[Optional[dict], int]:
        try:
            with psycopg.connect(self.database_url) as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        select data, version
                        from documents
                        where collection = %s and doc_id = %s;
                        """,
                        (collection, doc_id),
                    )
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise StoreError(f"Read of {collection}/{doc_id} failed: {exc}") from exc
        if not row:
            return None, 0
        return row[0], row[1]

    def _select(self, query: str, params: tuple) -> list[tuple[str, dict]]:
        try:
            with psycopg.connect(self.database_url) as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    rows = cur.fetchall()
        except psycopg.Error as exc:
            raise StoreError(f"Query failed: {exc}") from exc
        return [(row[0], row[1]) for row in rows]

    def where(self, collection: str, field: str, value: Any) -> list[tuple[str, dict]]:
        return self._select(
            """
            select doc_id, data
            from documents
            where collection = %s and data -> %s = %s
            order by doc_id;
            """,
            (collection, field, Jsonb(value)),
        )

    def list_documents(self, collection: str) -> list[tuple[str, dict]]:
        return self._select(
            """
            select doc_id, data
            from documents
            where collection = %s
            order by doc_id;
            """,
            (collection,),
        )

    def _apply_op(self, cur: psycopg.Cursor, op: WriteOp) -> Optional[Change]:
        cur.execute(
            """
            select data, version
            from documents
            where collection = %s and doc_id = %s
            for update;
            """,
            (op.collection, op.doc_id),
        )
        row = cur.fetchone()
        before = row[0] if row else None
        after = _next_state(op, before, row[1] if row else 0)
        if after == before:
            return None
        if after is None:
            cur.execute(
                "delete from documents where collection = %s and doc_id = %s;",
                (op.collection, op.doc_id),
            )
        elif before is None:
            cur.execute(
                """
                insert into documents (collection, doc_id, data, version)
                values (%s, %s, %s, 1);
                """,
                (op.collection, op.doc_id, Jsonb(after)),
            )
        else:
            cur.execute(
                """
                update documents
                set data = %s,
                    version = version + 1,
                    updated_at = now()
                where collection = %s and doc_id = %s;
                """,
                (Jsonb(after), op.collection, op.doc_id),
            )
        return self._change(op, before, after)

    def _apply(self, ops: list[WriteOp]) -> list[Change]:
        try:
            with psycopg.connect(self.database_url) as conn:
                with conn.cursor() as cur:
                    changes: list[Change] = []
                    for op in ops:
                        change = self._apply_op(cur, op)
                        if change:
                            changes.append(change)
            return changes
        except psycopg.errors.UniqueViolation as exc:
            raise TransactionConflict(f"Concurrent insert detected: {exc}") from exc
        except psycopg.Error as exc:
            raise StoreError(f"Write failed: {exc}") from exc


def open_store(database_url: str) -> DocumentStore:
    if database_url.startswith(SQLITE_PREFIX):
        return SqliteDocumentStore(database_url[len(SQLITE_PREFIX):])
    return PostgresDocumentStore(database_url)
