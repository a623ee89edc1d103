"""
Similarity search over stored entry embeddings.

`find_similar` is a pure function over any vector source exposing
`dimension` and `scan_with_embeddings`; it never mutates the store.
Brute-force scanning is O(n * D), adequate for a personal journal.
"""

import threading
import time
from typing import List, Optional

import numpy as np

from journal.util.logging import logger
from journal.vector.similarity import as_vector, cosine_similarity
from journal.vector.types import SimilarityQuery, SimilarityResult
from .config import get_related_threshold
from .errors import DimensionMismatch, EntryNotFound, SearchCancelled
from .schema import RelatedEntry


def find_similar(query: SimilarityQuery, source, cancel: Optional[threading.Event] = None) -> List[SimilarityResult]:
    """
    Rank stored entries by cosine similarity to a query vector.

    Args:
        query: Vector, excluded ids, inclusive threshold and result limit
        source: Vector source providing `dimension` and `scan_with_embeddings`
        cancel: Optional event; when set, the search aborts between candidates

    Returns:
        Results sorted by similarity descending, ties by ascending id.
        Empty when nothing reaches the threshold.

    Raises:
        DimensionMismatch: query vector length differs from the source dimension
        SearchCancelled: `cancel` was set before the scan finished
        StoreUnavailable: propagated from the source
    """
    query_vector = as_vector(query.query_vector)
    if len(query_vector) != source.dimension:
        raise DimensionMismatch(source.dimension, len(query_vector))

    if query.limit <= 0:
        return []

    started = time.perf_counter()
    excluded = frozenset(query.exclude_ids)
    query_norm = float(np.linalg.norm(query_vector))

    scanned = 0
    matches = []
    for entry_id, candidate in source.scan_with_embeddings(excluded):
        if cancel is not None and cancel.is_set():
            raise SearchCancelled("Similarity search cancelled")
        # Sources are not trusted to honour exclusions
        if entry_id in excluded:
            continue
        scanned += 1

        similarity = cosine_similarity(query_vector, candidate, query_norm=query_norm)
        if similarity is None:
            continue
        if similarity >= query.threshold:
            matches.append(SimilarityResult(entry_id=entry_id, similarity=similarity))

    if cancel is not None and cancel.is_set():
        raise SearchCancelled("Similarity search cancelled")

    matches.sort(key=lambda r: (-r.similarity, r.entry_id))
    results = matches[:query.limit]

    logger.log_search(
        scanned=scanned,
        matched=len(matches),
        returned=len(results),
        threshold=query.threshold,
        limit=query.limit,
        duration_ms=(time.perf_counter() - started) * 1000,
    )
    return results


def find_related(entry_id: str, store, limit: int = 3, threshold: Optional[float] = None,
                 cancel: Optional[threading.Event] = None) -> List[RelatedEntry]:
    """
    Find entries related to a stored entry.

    Returns an empty list when the entry has no embedding. Over-fetches one
    result so entries deleted between the scan and the lookup can be dropped
    without shrinking the list below `limit`.

    Raises:
        EntryNotFound: `entry_id` does not exist
        StoreUnavailable: propagated from the store
    """
    entry = store.get(entry_id)
    if entry.embedding is None or limit <= 0:
        return []

    query = SimilarityQuery(
        query_vector=entry.embedding,
        exclude_ids=frozenset([entry_id]),
        threshold=get_related_threshold() if threshold is None else threshold,
        limit=limit + 1,
    )

    related = []
    for result in find_similar(query, store, cancel=cancel):
        try:
            match = store.get(result.entry_id)
        except EntryNotFound:
            continue
        related.append(RelatedEntry(
            id=match.id,
            title=match.title,
            body=match.body,
            created_at=match.created_at,
            similarity=result.similarity,
        ))

    return related[:limit]
