"""
Record types for journal entries and their dependent tasks.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import numpy as np


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Entry:
    """A journal entry. Records are immutable; edits build a replacement."""

    id: str
    title: str
    body: str
    embedding: Optional[np.ndarray] = field(default=None, compare=False, repr=False)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None


@dataclass(frozen=True)
class Task:
    id: str
    entry_id: Optional[str]
    content: str
    completed: bool = False
    archived: bool = False
    due_date: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class RelatedEntry:
    """Summary of an entry found by similarity, with its score."""

    id: str
    title: str
    body: str
    created_at: datetime
    similarity: float
