"""
Cosine similarity with explicit zero-norm guards.
"""

from typing import Optional, Sequence

import numpy as np


def as_vector(values: Sequence[float]) -> np.ndarray:
    """Convert a sequence of numbers to a 1-D float64 array."""
    vector = np.asarray(values, dtype=np.float64)
    if vector.ndim != 1:
        raise ValueError(f"Expected a 1-D vector, got shape {vector.shape}")
    return vector


def clamp(similarity: float) -> float:
    """Clamp a similarity into [-1, 1] to absorb floating-point drift."""
    return max(-1.0, min(1.0, similarity))


def cosine_similarity(query: np.ndarray, candidate: np.ndarray,
                      query_norm: Optional[float] = None) -> Optional[float]:
    """Cosine similarity of two vectors of equal length.

    Returns None when the candidate has zero norm (it can never match) and
    0.0 when the query has zero norm. Never returns NaN or infinity.
    """
    candidate_norm = float(np.linalg.norm(candidate))
    if candidate_norm == 0.0 or not np.isfinite(candidate_norm):
        return None

    if query_norm is None:
        query_norm = float(np.linalg.norm(query))
    if query_norm == 0.0:
        return 0.0

    similarity = float(np.dot(query, candidate)) / (query_norm * candidate_norm)
    if not np.isfinite(similarity):
        return None
    return clamp(similarity)
