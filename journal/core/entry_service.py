"""
Entry lifecycle: create, update and delete entries, embedding on every write.

Embedding is a best-effort enrichment. When generation fails the entry is
still written, with a null embedding, and the failure is logged.
"""

from dataclasses import replace
from typing import Optional, Tuple

import numpy as np

from journal.util.logging import logger
from journal.vector.embeddings import IEmbeddingProvider, generate_entry_embedding
from .config import get_embed_timeout
from .errors import GenerationFailure, ValidationError
from .schema import Entry, new_id, utcnow


def _validate_content(title: str, body: str) -> Tuple[str, str]:
    if not title or not title.strip():
        raise ValidationError("title cannot be empty")
    if not body or not body.strip():
        raise ValidationError("body cannot be empty")
    return title.strip(), body


def try_embed(provider: Optional[IEmbeddingProvider], title: str, body: str, dimension: int,
              timeout: Optional[float] = None, entry_id: str = None) -> Optional[np.ndarray]:
    """Return the entry embedding, or None if it could not be generated."""
    if provider is None:
        return None

    try:
        vector = generate_entry_embedding(
            provider, title, body, dimension,
            timeout=get_embed_timeout() if timeout is None else timeout,
        )
    except GenerationFailure as e:
        logger.log_embedding_operation("generate", {
            "entry_id": entry_id,
            "provider": provider.__class__.__name__,
            "error": str(e)[:200],
        }, status="failed")
        return None

    logger.log_embedding_operation("generate", {
        "entry_id": entry_id,
        "provider": provider.__class__.__name__,
        "dimension": len(vector),
    })
    return vector


def create_entry(store, provider: Optional[IEmbeddingProvider], title: str, body: str,
                 timeout: Optional[float] = None) -> Entry:
    """Create and persist a new entry."""
    title, body = _validate_content(title, body)
    entry_id = new_id()
    embedding = try_embed(provider, title, body, store.dimension, timeout, entry_id=entry_id)

    now = utcnow()
    entry = store.put(Entry(
        id=entry_id,
        title=title,
        body=body,
        embedding=embedding,
        created_at=now,
        updated_at=now,
    ))
    logger.log_entry_operation("create", entry.id, {"embedded": entry.has_embedding})
    return entry


def update_entry(store, provider: Optional[IEmbeddingProvider], entry_id: str, title: str, body: str,
                 timeout: Optional[float] = None) -> Entry:
    """Replace an entry's content and regenerate its embedding.

    The previous embedding never survives an edit; a failed generation
    leaves the entry without one until a later edit or re-embed pass.
    Raises EntryNotFound if the entry is deleted while the embedding is
    being generated.
    """
    title, body = _validate_content(title, body)
    existing = store.get(entry_id)
    embedding = try_embed(provider, title, body, store.dimension, timeout, entry_id=entry_id)

    entry = store.update(replace(
        existing,
        title=title,
        body=body,
        embedding=embedding,
        updated_at=utcnow(),
    ))
    logger.log_entry_operation("update", entry.id, {"embedded": entry.has_embedding})
    return entry


def delete_entry(store, entry_id: str) -> None:
    """Delete an entry together with its tasks."""
    store.delete(entry_id)


def reembed_entries(store, provider: IEmbeddingProvider, timeout: Optional[float] = None,
                    progress=None) -> Tuple[int, int]:
    """Re-embed every entry, oldest first.

    Entries whose generation fails keep their current embedding. Only the
    embedding is written back, and only if the entry still exists unedited;
    an entry edited mid-pass already got a fresh embedding from its update.

    Returns:
        (embedded, failed) counts; skipped entries count toward neither
    """
    entries = sorted(store.list_entries(), key=lambda e: e.created_at)
    embedded = 0
    failed = 0
    skipped = 0

    for entry in entries:
        vector = try_embed(provider, entry.title, entry.body, store.dimension, timeout, entry_id=entry.id)
        if vector is None:
            failed += 1
        elif store.update_embedding(entry.id, vector, expected_updated_at=entry.updated_at):
            embedded += 1
        else:
            skipped += 1
            logger.log_entry_operation("reembed", entry.id, {"reason": "deleted or edited"}, status="skipped")
        if progress is not None:
            progress(entry, vector is not None)

    logger.log_operation("entry.reembed", "success", {"embedded": embedded, "failed": failed, "skipped": skipped})
    return embedded, failed
