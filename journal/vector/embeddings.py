"""
Embedding providers: Voyage AI over HTTP, local sentence-transformers,
and a deterministic hash embedding for tests and offline use.
"""

import hashlib
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Optional

import numpy as np
import requests

from journal.core.errors import GenerationFailure
from .similarity import as_vector

# Provider calls run here so a hung provider cannot block a write past its timeout
_EMBED_EXECUTOR = ThreadPoolExecutor(max_workers=4, thread_name_prefix="embed")


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for testing purposes.

    Chains SHA-256 digests of the text with a block counter until the
    requested dimension is filled, mapping each 32-bit chunk to [-1, 1].
    Identical text always yields identical vectors.
    """

    def __init__(self, dimension: int = 1024):
        self.dimension = dimension

    def embed_text(self, text: str) -> list[float]:
        vector = []
        block = 0
        while len(vector) < self.dimension:
            digest = hashlib.sha256(f"{block}:{text}".encode()).digest()
            for i in range(0, len(digest), 4):
                value = int.from_bytes(digest[i:i + 4], "big")
                vector.append((value / (2**32)) * 2 - 1)
            block += 1
        return vector[:self.dimension]

    def get_dimension(self) -> int:
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models."""

    def __init__(self, model_name: str = "all-mpnet-base-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed_text(self, text: str) -> list[float]:
        embedding = self.model.encode(text, convert_to_tensor=False)
        return embedding.tolist()

    def get_dimension(self) -> int:
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension


class VoyageEmbedding(IEmbeddingProvider):
    """Voyage AI embeddings over HTTP.

    Args:
        api_key: Bearer token; a missing key fails every call
        model: Voyage model name (voyage-3 returns 1024 dimensions)
        api_url: Embeddings endpoint
        dimension: Expected vector length
        timeout: Request timeout in seconds
    """

    def __init__(self, api_key: Optional[str], model: str = "voyage-3",
                 api_url: str = "https://api.voyageai.com/v1/embeddings",
                 dimension: int = 1024, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        self.dimension = dimension
        self.timeout = timeout
        self.session = session or requests.Session()

    def embed_text(self, text: str) -> list[float]:
        if not self.api_key:
            raise GenerationFailure("VOYAGE_API_KEY is not set")

        try:
            response = self.session.post(
                self.api_url,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
                json={"model": self.model, "input": text},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise GenerationFailure(f"Embedding request failed: {e}") from e

        if not response.ok:
            raise GenerationFailure(
                f"Embedding API error {response.status_code}: {response.text[:200]}"
            )

        try:
            # Response shape: {"data": [{"embedding": [...]}]}
            embedding = response.json()["data"][0]["embedding"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GenerationFailure(f"Malformed embedding response: {e}") from e

        if not embedding:
            raise GenerationFailure("Embedding API returned an empty vector")
        return embedding

    def get_dimension(self) -> int:
        return self.dimension


def entry_embedding_text(title: str, body: str) -> str:
    """Text embedded for an entry: title and body separated by a blank line."""
    return f"{title}\n\n{body}"


def generate_entry_embedding(provider: IEmbeddingProvider, title: str, body: str,
                             dimension: int, timeout: Optional[float] = None) -> np.ndarray:
    """Embed an entry's content, waiting at most `timeout` seconds.

    Raises GenerationFailure on provider errors, timeouts, and vectors whose
    length differs from `dimension`.
    """
    future = _EMBED_EXECUTOR.submit(provider.embed_text, entry_embedding_text(title, body))
    try:
        raw = future.result(timeout=timeout)
    except FutureTimeoutError as e:
        future.cancel()
        raise GenerationFailure(f"Embedding generation timed out after {timeout}s") from e
    except GenerationFailure:
        raise
    except Exception as e:
        raise GenerationFailure(f"Embedding provider error: {e}") from e

    try:
        vector = as_vector(raw)
    except (TypeError, ValueError) as e:
        raise GenerationFailure(f"Embedding is not a numeric vector: {e}") from e

    if len(vector) != dimension:
        raise GenerationFailure(f"Embedding has dimension {len(vector)}, expected {dimension}")
    if not np.all(np.isfinite(vector)):
        raise GenerationFailure("Embedding contains non-finite values")
    return vector
