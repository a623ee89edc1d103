"""
Test cases for the SQLite entry store.
"""

import sqlite3
import types
from datetime import timedelta

import numpy as np
import pytest

from journal.core import dao
from journal.core.dao import SQLiteEntryStore
from journal.core.db import get_db, health_check
from journal.core.errors import DimensionMismatch, EntryNotFound, StoreUnavailable
from journal.core.schema import Entry

DIM = 1024


@pytest.fixture
def store(tmp_path):
    return SQLiteEntryStore(db_path=str(tmp_path / "journal.db"), dimension=DIM, page_size=2)


def test_init_creates_tables(store):
    assert health_check(store.db_path)


def test_embedding_round_trip_is_exact(store):
    """Stored 1024-dim embeddings come back bit-for-bit, in order."""
    embedding = np.arange(DIM, dtype=np.float64) / DIM + 1e-9
    store.put(Entry(id="e1", title="Entry with Embedding", body="Content", embedding=embedding))

    stored = store.get("e1").embedding
    assert len(stored) == DIM
    assert np.array_equal(stored, embedding)
    assert stored[0] == pytest.approx(1e-9)
    assert stored[1023] == pytest.approx(1023 / 1024, abs=1e-6)


def test_entry_without_embedding(store):
    store.put(Entry(id="e1", title="No embedding", body="Content"))

    entry = store.get("e1")
    assert entry.embedding is None
    assert not entry.has_embedding


def test_put_rejects_wrong_dimension(store):
    with pytest.raises(DimensionMismatch) as exc:
        store.put(Entry(id="e1", title="t", body="b", embedding=[0.5] * 10))
    assert exc.value.expected == DIM
    assert exc.value.actual == 10
    assert store.count() == 0


def test_replace_embedding(store):
    store.put(Entry(id="e1", title="t", body="b", embedding=np.full(DIM, 0.3)))
    store.put(Entry(id="e1", title="t", body="b", embedding=np.full(DIM, 0.7)))

    assert np.all(store.get("e1").embedding == 0.7)
    assert store.count() == 1


def test_replace_preserves_created_at_and_tasks(store):
    """Replacing an entry is an upsert; dependents survive."""
    first = store.put(Entry(id="e1", title="t", body="b"))
    store.add_task("e1", "buy milk")

    second = store.put(Entry(id="e1", title="edited", body="b2"))

    assert second.created_at == first.created_at
    assert second.title == "edited"
    assert [t.content for t in store.list_tasks("e1")] == ["buy milk"]


def test_get_missing_raises(store):
    with pytest.raises(EntryNotFound):
        store.get("missing")


def test_delete_cascades_tasks(store):
    store.put(Entry(id="e1", title="t", body="b"))
    store.put(Entry(id="e2", title="t", body="b"))
    store.add_task("e1", "task one")
    store.add_task("e1", "task two")
    store.add_task("e2", "keep me")

    store.delete("e1")

    with pytest.raises(EntryNotFound):
        store.get("e1")
    with get_db(store.db_path) as conn:
        orphaned = conn.execute("SELECT COUNT(*) FROM tasks WHERE entry_id = 'e1'").fetchone()[0]
    assert orphaned == 0
    assert [t.content for t in store.list_tasks("e2")] == ["keep me"]


def test_delete_missing_raises(store):
    with pytest.raises(EntryNotFound):
        store.delete("missing")


def test_add_task_for_missing_entry_raises(store):
    with pytest.raises(EntryNotFound):
        store.add_task("missing", "task")


def test_update_missing_raises_and_creates_no_row(store):
    with pytest.raises(EntryNotFound):
        store.update(Entry(id="gone", title="t", body="b", embedding=np.full(DIM, 0.3)))
    assert store.count() == 0


def test_update_preserves_created_at_and_tasks(store):
    first = store.put(Entry(id="e1", title="t", body="b", embedding=np.full(DIM, 0.3)))
    store.add_task("e1", "buy milk")

    second = store.update(Entry(id="e1", title="edited", body="b2", updated_at=first.updated_at + timedelta(seconds=1)))

    assert second.created_at == first.created_at
    assert second.title == "edited"
    assert second.embedding is None
    assert [t.content for t in store.list_tasks("e1")] == ["buy milk"]


def test_update_embedding_checks_updated_at(store):
    first = store.put(Entry(id="e1", title="t", body="b"))

    assert store.update_embedding("e1", np.full(DIM, 0.5), expected_updated_at=first.updated_at)
    entry = store.get("e1")
    assert np.all(entry.embedding == 0.5)
    assert entry.updated_at == first.updated_at

    store.update(Entry(id="e1", title="edited", body="b", updated_at=first.updated_at + timedelta(seconds=1)))
    assert not store.update_embedding("e1", np.full(DIM, 0.7), expected_updated_at=first.updated_at)
    assert store.get("e1").embedding is None


def test_update_embedding_for_missing_entry(store):
    assert not store.update_embedding("missing", np.full(DIM, 0.5))
    assert store.count() == 0


def test_scan_is_lazy_and_skips_null_and_excluded(store):
    for i in range(5):
        store.put(Entry(id=f"e{i}", title="t", body="b", embedding=np.full(DIM, i + 1.0)))
    store.put(Entry(id="null", title="t", body="b"))

    scan = store.scan_with_embeddings(exclude_ids=["e0", "e3"])
    assert isinstance(scan, types.GeneratorType)

    pairs = list(scan)
    assert [entry_id for entry_id, _ in pairs] == ["e1", "e2", "e4"]
    assert all(len(vector) == DIM for _, vector in pairs)


def test_scan_with_no_exclusions(store):
    store.put(Entry(id="a", title="t", body="b", embedding=np.full(DIM, 1.0)))
    assert [entry_id for entry_id, _ in store.scan_with_embeddings()] == ["a"]


def test_counts(store):
    store.put(Entry(id="a", title="t", body="b", embedding=np.full(DIM, 1.0)))
    store.put(Entry(id="b", title="t", body="b"))

    assert store.count() == 2
    assert store.count_embedded() == 1


def test_list_entries_newest_first(store):
    from datetime import datetime, timezone
    store.put(Entry(id="old", title="t", body="b", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc)))
    store.put(Entry(id="new", title="t", body="b", created_at=datetime(2025, 1, 1, tzinfo=timezone.utc)))

    assert [e.id for e in store.list_entries()] == ["new", "old"]


def test_unopenable_database_is_store_unavailable(tmp_path):
    """A directory is not a database file."""
    with pytest.raises(StoreUnavailable):
        SQLiteEntryStore(db_path=str(tmp_path), dimension=DIM)


def test_sqlite_errors_become_store_unavailable(store, monkeypatch):
    def broken_db(path):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(dao, "get_db", broken_db)

    with pytest.raises(StoreUnavailable):
        store.get("e1")
    with pytest.raises(StoreUnavailable):
        list(store.scan_with_embeddings())
    with pytest.raises(StoreUnavailable):
        store.put(Entry(id="e1", title="t", body="b"))
