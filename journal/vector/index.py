"""
Entry store interface and an in-memory implementation.
The similarity search depends only on `dimension` and `scan_with_embeddings`.
"""

import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import numpy as np

from journal.core.errors import DimensionMismatch, EntryNotFound
from journal.core.schema import Entry, Task, new_id, utcnow
from .similarity import as_vector


class KeyedLock:
    """Serializes writers per key while leaving other keys and readers free."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = defaultdict(threading.Lock)

    @contextmanager
    def hold(self, key: str):
        with self._guard:
            lock = self._locks[key]
        with lock:
            yield


class IEntryStore(ABC):
    """Abstract interface for entry storage operations."""

    dimension: int

    @abstractmethod
    def put(self, entry: Entry) -> Entry:
        """Insert or replace an entry record atomically."""
        pass

    @abstractmethod
    def update(self, entry: Entry) -> Entry:
        """Replace an existing entry record, or raise EntryNotFound."""
        pass

    @abstractmethod
    def update_embedding(self, entry_id: str, embedding, expected_updated_at=None) -> bool:
        """Swap only the embedding of an entry.

        Returns False without writing when the entry is gone, or when
        expected_updated_at is given and no longer matches the record.
        """
        pass

    @abstractmethod
    def get(self, entry_id: str) -> Entry:
        """Return the entry, or raise EntryNotFound."""
        pass

    @abstractmethod
    def delete(self, entry_id: str) -> None:
        """Delete an entry and every task that refers to it."""
        pass

    @abstractmethod
    def scan_with_embeddings(self, exclude_ids: Iterable[str] = ()) -> Iterator[Tuple[str, np.ndarray]]:
        """Lazily yield (id, embedding) for every embedded entry not excluded."""
        pass

    @abstractmethod
    def list_entries(self, limit: Optional[int] = None) -> List[Entry]:
        """List entries, newest first."""
        pass

    @abstractmethod
    def count(self) -> int:
        pass

    @abstractmethod
    def count_embedded(self) -> int:
        pass

    @abstractmethod
    def add_task(self, entry_id: Optional[str], content: str, due_date: Optional[str] = None) -> Task:
        pass

    @abstractmethod
    def list_tasks(self, entry_id: str) -> List[Task]:
        pass

    def check_dimension(self, embedding) -> Optional[np.ndarray]:
        """Normalize an embedding to float64 and enforce the store dimension."""
        if embedding is None:
            return None
        vector = as_vector(embedding)
        if len(vector) != self.dimension:
            raise DimensionMismatch(self.dimension, len(vector))
        return vector


class InMemoryEntryStore(IEntryStore):
    """Dict-backed store. Each put swaps in a whole new record."""

    def __init__(self, dimension: int):
        self.dimension = dimension
        self._entries: Dict[str, Entry] = {}
        self._tasks: Dict[str, Task] = {}
        self._write_locks = KeyedLock()

    def _frozen_vector(self, embedding) -> Optional[np.ndarray]:
        vector = self.check_dimension(embedding)
        if vector is not None:
            vector = vector.copy()
            vector.setflags(write=False)
        return vector

    def put(self, entry: Entry) -> Entry:
        vector = self._frozen_vector(entry.embedding)

        with self._write_locks.hold(entry.id):
            existing = self._entries.get(entry.id)
            record = replace(
                entry,
                embedding=vector,
                created_at=existing.created_at if existing else entry.created_at,
            )
            self._entries[entry.id] = record
        return record

    def update(self, entry: Entry) -> Entry:
        vector = self._frozen_vector(entry.embedding)

        with self._write_locks.hold(entry.id):
            existing = self._entries.get(entry.id)
            if existing is None:
                raise EntryNotFound(entry.id)
            record = replace(entry, embedding=vector, created_at=existing.created_at)
            self._entries[entry.id] = record
        return record

    def update_embedding(self, entry_id: str, embedding, expected_updated_at=None) -> bool:
        vector = self._frozen_vector(embedding)

        with self._write_locks.hold(entry_id):
            existing = self._entries.get(entry_id)
            if existing is None:
                return False
            if expected_updated_at is not None and existing.updated_at != expected_updated_at:
                return False
            self._entries[entry_id] = replace(existing, embedding=vector)
        return True

    def get(self, entry_id: str) -> Entry:
        entry = self._entries.get(entry_id)
        if entry is None:
            raise EntryNotFound(entry_id)
        return entry

    def delete(self, entry_id: str) -> None:
        with self._write_locks.hold(entry_id):
            if entry_id not in self._entries:
                raise EntryNotFound(entry_id)
            del self._entries[entry_id]
            for task in list(self._tasks.values()):
                if task.entry_id == entry_id:
                    self._tasks.pop(task.id, None)

    def scan_with_embeddings(self, exclude_ids: Iterable[str] = ()) -> Iterator[Tuple[str, np.ndarray]]:
        excluded = frozenset(exclude_ids)
        # Snapshot of the current records; later puts replace, never mutate
        for entry in list(self._entries.values()):
            if entry.embedding is None or entry.id in excluded:
                continue
            yield entry.id, entry.embedding

    def list_entries(self, limit: Optional[int] = None) -> List[Entry]:
        entries = sorted(self._entries.values(), key=lambda e: e.created_at, reverse=True)
        return entries[:limit] if limit is not None else entries

    def count(self) -> int:
        return len(self._entries)

    def count_embedded(self) -> int:
        return sum(1 for e in list(self._entries.values()) if e.embedding is not None)

    def add_task(self, entry_id: Optional[str], content: str, due_date: Optional[str] = None) -> Task:
        task = Task(id=new_id(), entry_id=entry_id, content=content, due_date=due_date, created_at=utcnow())
        if entry_id is None:
            self._tasks[task.id] = task
            return task

        # Same lock as delete, so a task never outlives its entry
        with self._write_locks.hold(entry_id):
            if entry_id not in self._entries:
                raise EntryNotFound(entry_id)
            self._tasks[task.id] = task
        return task

    def list_tasks(self, entry_id: str) -> List[Task]:
        tasks = [t for t in list(self._tasks.values()) if t.entry_id == entry_id]
        return sorted(tasks, key=lambda t: t.created_at)

    def clear(self) -> None:
        """Clear all records from the store."""
        self._entries.clear()
        self._tasks.clear()
