"""
Vector primitives: entry store interface, similarity math and embedding providers.
"""

# Package initialization for vector module
from .index import IEntryStore, InMemoryEntryStore, KeyedLock
from .types import SimilarityQuery, SimilarityResult
from .similarity import cosine_similarity
from .embeddings import (
    IEmbeddingProvider,
    DeterministicHashEmbedding,
    SentenceTransformerEmbedding,
    VoyageEmbedding,
    generate_entry_embedding,
)

__all__ = [
    'IEntryStore',
    'InMemoryEntryStore',
    'KeyedLock',
    'SimilarityQuery',
    'SimilarityResult',
    'cosine_similarity',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'VoyageEmbedding',
    'generate_entry_embedding',
]
