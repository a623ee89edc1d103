"""
Query and result types for similarity search.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Sequence


@dataclass(frozen=True)
class SimilarityQuery:
    """A single similarity search request. Never persisted."""

    query_vector: Sequence[float]
    """Vector to compare against; must have the store's dimension"""

    exclude_ids: FrozenSet[str] = field(default_factory=frozenset)
    """Entry ids omitted from results, typically the entry being queried"""

    threshold: float = 0.5
    """Minimum similarity to qualify (inclusive)"""

    limit: int = 10
    """Maximum number of results"""


@dataclass(frozen=True)
class SimilarityResult:
    """Represents a ranked match from a similarity search."""

    entry_id: str
    """Identifier of the matching entry"""

    similarity: float
    """Cosine similarity clamped to [-1, 1]"""
