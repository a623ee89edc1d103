"""
SQLite-backed canonical entry store.
Embeddings are stored as raw float64 bytes next to their length.
"""

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Tuple

import numpy as np

from journal.util.logging import logger
from journal.vector.index import IEntryStore, KeyedLock
from .db import get_db, init_db
from .errors import EntryNotFound, StoreUnavailable
from .schema import Entry, Task, new_id, utcnow

ENTRY_COLUMNS = "id, title, body, embedding, embedding_dim, created_at, updated_at"
TASK_COLUMNS = "id, entry_id, content, completed, archived, due_date, created_at"


@contextmanager
def store_errors(operation: str):
    """Translate sqlite errors into StoreUnavailable."""
    try:
        yield
    except sqlite3.Error as e:
        logger.error(f"Store operation '{operation}' failed: {e}")
        raise StoreUnavailable(f"{operation} failed: {e}") from e


def encode_embedding(vector: Optional[np.ndarray]) -> Tuple[Optional[bytes], Optional[int]]:
    if vector is None:
        return None, None
    return np.ascontiguousarray(vector, dtype=np.float64).tobytes(), len(vector)


def decode_embedding(blob: Optional[bytes], dim: Optional[int]) -> Optional[np.ndarray]:
    if blob is None:
        return None
    vector = np.frombuffer(blob, dtype=np.float64)
    if dim is not None and len(vector) != dim:
        raise StoreUnavailable(f"Corrupt embedding: stored length {dim}, decoded {len(vector)}")
    return vector


def _parse_ts(value) -> datetime:
    return value if isinstance(value, datetime) else datetime.fromisoformat(value)


def _row_to_entry(row) -> Entry:
    entry_id, title, body, blob, dim, created_at, updated_at = row
    return Entry(
        id=entry_id,
        title=title,
        body=body,
        embedding=decode_embedding(blob, dim),
        created_at=_parse_ts(created_at),
        updated_at=_parse_ts(updated_at),
    )


def _row_to_task(row) -> Task:
    task_id, entry_id, content, completed, archived, due_date, created_at = row
    return Task(
        id=task_id,
        entry_id=entry_id,
        content=content,
        completed=bool(completed),
        archived=bool(archived),
        due_date=due_date,
        created_at=_parse_ts(created_at),
    )


class SQLiteEntryStore(IEntryStore):
    """Durable entry store over a single SQLite database file."""

    def __init__(self, db_path: str, dimension: int, page_size: int = 256):
        self.db_path = db_path
        self.dimension = dimension
        self.page_size = page_size
        self._write_locks = KeyedLock()

        with store_errors("init"):
            init_db(db_path)

    def put(self, entry: Entry) -> Entry:
        vector = self.check_dimension(entry.embedding)
        blob, dim = encode_embedding(vector)

        with self._write_locks.hold(entry.id), store_errors("put"):
            with get_db(self.db_path) as conn:
                # Upsert, not INSERT OR REPLACE: a replace deletes the row and would cascade its tasks
                conn.execute(
                    f"""
                    INSERT INTO entries ({ENTRY_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        title = excluded.title,
                        body = excluded.body,
                        embedding = excluded.embedding,
                        embedding_dim = excluded.embedding_dim,
                        updated_at = excluded.updated_at
                    """,
                    (entry.id, entry.title, entry.body, blob, dim,
                     entry.created_at.isoformat(), entry.updated_at.isoformat())
                )
                conn.commit()
                row = conn.execute(
                    f"SELECT {ENTRY_COLUMNS} FROM entries WHERE id = ?", (entry.id,)
                ).fetchone()

        logger.log_entry_operation("put", entry.id, {"embedded": vector is not None})
        return _row_to_entry(row)

    def update(self, entry: Entry) -> Entry:
        vector = self.check_dimension(entry.embedding)
        blob, dim = encode_embedding(vector)

        with self._write_locks.hold(entry.id), store_errors("update"):
            with get_db(self.db_path) as conn:
                cursor = conn.execute(
                    """
                    UPDATE entries
                    SET title = ?, body = ?, embedding = ?, embedding_dim = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (entry.title, entry.body, blob, dim, entry.updated_at.isoformat(), entry.id)
                )
                conn.commit()
                updated = cursor.rowcount
                row = conn.execute(
                    f"SELECT {ENTRY_COLUMNS} FROM entries WHERE id = ?", (entry.id,)
                ).fetchone()

        if updated == 0 or row is None:
            raise EntryNotFound(entry.id)
        logger.log_entry_operation("put", entry.id, {"embedded": vector is not None, "mode": "update"})
        return _row_to_entry(row)

    def update_embedding(self, entry_id: str, embedding, expected_updated_at=None) -> bool:
        vector = self.check_dimension(embedding)
        blob, dim = encode_embedding(vector)

        sql = "UPDATE entries SET embedding = ?, embedding_dim = ? WHERE id = ?"
        params: tuple = (blob, dim, entry_id)
        if expected_updated_at is not None:
            sql += " AND updated_at = ?"
            params += (expected_updated_at.isoformat(),)

        with self._write_locks.hold(entry_id), store_errors("update_embedding"):
            with get_db(self.db_path) as conn:
                cursor = conn.execute(sql, params)
                conn.commit()
                updated = cursor.rowcount

        return updated > 0

    def get(self, entry_id: str) -> Entry:
        with store_errors("get"):
            with get_db(self.db_path) as conn:
                row = conn.execute(
                    f"SELECT {ENTRY_COLUMNS} FROM entries WHERE id = ?", (entry_id,)
                ).fetchone()

        if row is None:
            raise EntryNotFound(entry_id)
        return _row_to_entry(row)

    def delete(self, entry_id: str) -> None:
        with self._write_locks.hold(entry_id), store_errors("delete"):
            with get_db(self.db_path) as conn:
                cursor = conn.execute("DELETE FROM entries WHERE id = ?", (entry_id,))
                conn.commit()
                deleted = cursor.rowcount

        if deleted == 0:
            raise EntryNotFound(entry_id)
        logger.log_entry_operation("delete", entry_id)

    def scan_with_embeddings(self, exclude_ids: Iterable[str] = ()) -> Iterator[Tuple[str, np.ndarray]]:
        excluded = list(dict.fromkeys(exclude_ids))
        sql = "SELECT id, embedding, embedding_dim FROM entries WHERE embedding IS NOT NULL"
        if excluded:
            sql += f" AND id NOT IN ({', '.join('?' for _ in excluded)})"
        sql += " ORDER BY id"

        with store_errors("scan"):
            with get_db(self.db_path) as conn:
                cursor = conn.execute(sql, excluded)
                while True:
                    rows = cursor.fetchmany(self.page_size)
                    if not rows:
                        break
                    for entry_id, blob, dim in rows:
                        yield entry_id, decode_embedding(blob, dim)

    def list_entries(self, limit: Optional[int] = None) -> List[Entry]:
        sql = f"SELECT {ENTRY_COLUMNS} FROM entries ORDER BY created_at DESC, id"
        params: tuple = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)

        with store_errors("list_entries"):
            with get_db(self.db_path) as conn:
                rows = conn.execute(sql, params).fetchall()
        return [_row_to_entry(row) for row in rows]

    def count(self) -> int:
        with store_errors("count"):
            with get_db(self.db_path) as conn:
                return conn.execute("SELECT COUNT(*) FROM entries").fetchone()[0]

    def count_embedded(self) -> int:
        with store_errors("count_embedded"):
            with get_db(self.db_path) as conn:
                return conn.execute(
                    "SELECT COUNT(*) FROM entries WHERE embedding IS NOT NULL"
                ).fetchone()[0]

    def add_task(self, entry_id: Optional[str], content: str, due_date: Optional[str] = None) -> Task:
        task = Task(id=new_id(), entry_id=entry_id, content=content, due_date=due_date, created_at=utcnow())
        try:
            with get_db(self.db_path) as conn:
                conn.execute(
                    f"INSERT INTO tasks ({TASK_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (task.id, task.entry_id, task.content, task.completed, task.archived,
                     task.due_date, task.created_at.isoformat())
                )
                conn.commit()
        except sqlite3.IntegrityError as e:
            raise EntryNotFound(entry_id) from e
        except sqlite3.Error as e:
            logger.error(f"Store operation 'add_task' failed: {e}")
            raise StoreUnavailable(f"add_task failed: {e}") from e
        return task

    def list_tasks(self, entry_id: str) -> List[Task]:
        with store_errors("list_tasks"):
            with get_db(self.db_path) as conn:
                rows = conn.execute(
                    f"SELECT {TASK_COLUMNS} FROM tasks WHERE entry_id = ? ORDER BY created_at, id",
                    (entry_id,)
                ).fetchall()
        return [_row_to_task(row) for row in rows]
