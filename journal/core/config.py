"""
Environment-driven configuration for the journal service.
Values are read at call time so tests can override them with environment variables.
"""

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

VERSION = "1.0.0"

DEFAULT_DB_PATH = "./data/journal.db"
DEFAULT_EMBEDDING_DIMENSION = 1024  # voyage-3
DEFAULT_VOYAGE_API_URL = "https://api.voyageai.com/v1/embeddings"
DEFAULT_VOYAGE_MODEL = "voyage-3"
DEFAULT_EMBED_MODEL_NAME = "all-mpnet-base-v2"


def get_db_path() -> str:
    """Path of the SQLite database file."""
    return os.getenv("DB_PATH", DEFAULT_DB_PATH)


def get_embedding_dimension() -> int:
    """Fixed dimension D of every stored embedding."""
    return int(os.getenv("EMBEDDING_DIMENSION", str(DEFAULT_EMBEDDING_DIMENSION)))


def get_embed_provider_name() -> str:
    """Embedding provider: voyage|sentence|hash."""
    return os.getenv("EMBED_PROVIDER", "hash").lower()


def get_embed_timeout() -> float:
    """Upper bound in seconds for a single embedding call."""
    return float(os.getenv("EMBED_TIMEOUT_SEC", "10"))


def get_related_threshold() -> float:
    return float(os.getenv("RELATED_THRESHOLD", "0.5"))


def get_related_limit() -> int:
    return int(os.getenv("RELATED_LIMIT", "3"))


def get_scan_page_size() -> int:
    return int(os.getenv("SCAN_PAGE_SIZE", "256"))


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def ensure_db_directory(db_path: str = None):
    """Ensure the database directory exists."""
    Path(db_path or get_db_path()).parent.mkdir(parents=True, exist_ok=True)


def get_embedding_provider():
    """Build the configured embedding provider."""
    name = get_embed_provider_name()
    dimension = get_embedding_dimension()

    if name == "voyage":
        from journal.vector.embeddings import VoyageEmbedding
        return VoyageEmbedding(
            api_key=os.getenv("VOYAGE_API_KEY"),
            model=os.getenv("VOYAGE_MODEL", DEFAULT_VOYAGE_MODEL),
            api_url=os.getenv("VOYAGE_API_URL", DEFAULT_VOYAGE_API_URL),
            dimension=dimension,
            timeout=get_embed_timeout(),
        )
    elif name == "sentence":
        from journal.vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(os.getenv("EMBED_MODEL_NAME", DEFAULT_EMBED_MODEL_NAME))
    else:
        # Unknown providers fall back to the deterministic hash embedding
        from journal.vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding(dimension=dimension)


@lru_cache(maxsize=None)
def _entry_store_for(db_path: str, dimension: int, page_size: int):
    from journal.core.dao import SQLiteEntryStore
    return SQLiteEntryStore(db_path=db_path, dimension=dimension, page_size=page_size)


def get_entry_store():
    """Return the process-wide store handle for the configured database.

    The handle is built once per (path, dimension, page size) and reused.
    """
    return _entry_store_for(get_db_path(), get_embedding_dimension(), get_scan_page_size())


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    provider = get_embed_provider_name()
    if provider not in ["voyage", "sentence", "hash"]:
        issues.append(f"Invalid EMBED_PROVIDER: {provider}")

    if provider == "voyage" and not os.getenv("VOYAGE_API_KEY"):
        issues.append("EMBED_PROVIDER=voyage requires VOYAGE_API_KEY")

    if get_embedding_dimension() < 1:
        issues.append("EMBEDDING_DIMENSION must be >= 1")

    if get_embed_timeout() <= 0:
        issues.append("EMBED_TIMEOUT_SEC must be > 0")

    threshold = get_related_threshold()
    if not -1.0 <= threshold <= 1.0:
        issues.append(f"RELATED_THRESHOLD must be within [-1, 1], got {threshold}")

    if get_related_limit() < 1:
        issues.append("RELATED_LIMIT must be >= 1")

    if get_scan_page_size() < 1:
        issues.append("SCAN_PAGE_SIZE must be >= 1")

    return issues
