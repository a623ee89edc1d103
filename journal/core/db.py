"""
SQLite connection handling and schema for the canonical entry store.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator

from .config import ensure_db_directory


@contextmanager
def get_db(db_path: str) -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection with foreign keys enforced."""
    conn = sqlite3.connect(db_path)
    try:
        # Off by default per connection; cascades depend on it
        conn.execute("PRAGMA foreign_keys = ON")
        yield conn
    finally:
        conn.close()


def init_db(db_path: str):
    """Initialize the database with required tables."""
    ensure_db_directory(db_path)

    with get_db(db_path) as conn:
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS entries (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                body TEXT NOT NULL,
                embedding BLOB,          -- raw float64 bytes, NULL when generation failed
                embedding_dim INTEGER,
                created_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP NOT NULL
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS tasks (
                id TEXT PRIMARY KEY,
                entry_id TEXT REFERENCES entries(id) ON DELETE CASCADE,
                content TEXT NOT NULL,
                completed BOOLEAN DEFAULT FALSE,
                archived BOOLEAN DEFAULT FALSE,
                due_date TEXT,
                created_at TIMESTAMP NOT NULL
            )
        ''')

        cursor.execute('CREATE INDEX IF NOT EXISTS idx_entries_created_at ON entries(created_at DESC)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_tasks_entry_id ON tasks(entry_id)')

        conn.commit()


def health_check(db_path: str):
    """Check database health."""
    try:
        with get_db(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            table_names = [table[0] for table in cursor.fetchall()]
            return all(table in table_names for table in ['entries', 'tasks'])
    except sqlite3.Error:
        return False
