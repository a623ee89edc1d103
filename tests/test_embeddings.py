"""
Test cases for embedding providers.
"""

from unittest.mock import MagicMock

import numpy as np
import pytest
import requests

from journal.core.errors import GenerationFailure
from journal.vector.embeddings import (
    DeterministicHashEmbedding,
    IEmbeddingProvider,
    SentenceTransformerEmbedding,
    VoyageEmbedding,
    entry_embedding_text,
    generate_entry_embedding,
)


def voyage_response(embedding, ok=True, status_code=200, text=""):
    response = MagicMock(ok=ok, status_code=status_code, text=text)
    response.json.return_value = {"data": [{"embedding": embedding}]}
    return response


@pytest.fixture
def session():
    return MagicMock()


def test_embedding_interface():
    embedder = DeterministicHashEmbedding(dimension=1024)

    assert isinstance(embedder, IEmbeddingProvider)
    assert embedder.get_dimension() == 1024


def test_deterministic_embedding():
    """Same input, same output, full dimension."""
    embedder = DeterministicHashEmbedding(dimension=1024)

    vector1 = embedder.embed_text("Hello, world!")
    vector2 = DeterministicHashEmbedding(dimension=1024).embed_text("Hello, world!")

    assert vector1 == vector2
    assert len(vector1) == 1024
    assert all(-1.0 <= v <= 1.0 for v in vector1)


def test_different_inputs_produce_different_vectors():
    embedder = DeterministicHashEmbedding(dimension=64)
    assert embedder.embed_text("Hello, world!") != embedder.embed_text("Goodbye, world!")


def test_hash_embedding_fills_every_dimension():
    vector = DeterministicHashEmbedding(dimension=100).embed_text("text")
    assert len(vector) == 100
    assert np.count_nonzero(vector) > 90


def test_entry_embedding_text():
    assert entry_embedding_text("Title", "Body") == "Title\n\nBody"


def test_voyage_posts_model_and_input(session):
    session.post.return_value = voyage_response([0.1] * 1024)
    provider = VoyageEmbedding(api_key="key", session=session, timeout=3)

    vector = provider.embed_text("hello")

    assert len(vector) == 1024
    args, kwargs = session.post.call_args
    assert args[0] == "https://api.voyageai.com/v1/embeddings"
    assert kwargs["json"] == {"model": "voyage-3", "input": "hello"}
    assert kwargs["headers"]["Authorization"] == "Bearer key"
    assert kwargs["timeout"] == 3


def test_voyage_missing_key_fails(session):
    provider = VoyageEmbedding(api_key=None, session=session)

    with pytest.raises(GenerationFailure):
        provider.embed_text("hello")
    session.post.assert_not_called()


def test_voyage_http_error_fails(session):
    session.post.return_value = voyage_response([], ok=False, status_code=429, text="rate limited")
    provider = VoyageEmbedding(api_key="key", session=session)

    with pytest.raises(GenerationFailure, match="429"):
        provider.embed_text("hello")


def test_voyage_timeout_fails(session):
    session.post.side_effect = requests.Timeout("timed out")
    provider = VoyageEmbedding(api_key="key", session=session)

    with pytest.raises(GenerationFailure):
        provider.embed_text("hello")


def test_voyage_empty_or_malformed_response_fails(session):
    provider = VoyageEmbedding(api_key="key", session=session)

    session.post.return_value = voyage_response([])
    with pytest.raises(GenerationFailure):
        provider.embed_text("hello")

    malformed = MagicMock(ok=True, status_code=200)
    malformed.json.return_value = {"data": []}
    session.post.return_value = malformed
    with pytest.raises(GenerationFailure):
        provider.embed_text("hello")


def test_sentence_transformer_encodes_with_loaded_model():
    provider = SentenceTransformerEmbedding("test-model")
    provider._model = MagicMock()
    provider._model.encode.return_value = np.array([0.1, 0.2, 0.3])
    provider._model.get_sentence_embedding_dimension.return_value = 3

    assert provider.embed_text("hello") == pytest.approx([0.1, 0.2, 0.3])
    assert provider.get_dimension() == 3
    provider._model.encode.assert_called_once_with("hello", convert_to_tensor=False)


def test_generate_entry_embedding_returns_float64():
    provider = DeterministicHashEmbedding(dimension=8)
    vector = generate_entry_embedding(provider, "Title", "Body", dimension=8, timeout=5)

    assert vector.dtype == np.float64
    assert vector.tolist() == pytest.approx(provider.embed_text("Title\n\nBody"))


def test_generate_entry_embedding_rejects_wrong_dimension():
    with pytest.raises(GenerationFailure):
        generate_entry_embedding(DeterministicHashEmbedding(dimension=8), "t", "b", dimension=16, timeout=5)


def test_generate_entry_embedding_rejects_non_finite():
    provider = MagicMock()
    provider.embed_text.return_value = [float("nan"), 1.0]

    with pytest.raises(GenerationFailure):
        generate_entry_embedding(provider, "t", "b", dimension=2, timeout=5)


def test_generate_entry_embedding_wraps_provider_errors():
    provider = MagicMock()
    provider.embed_text.side_effect = ConnectionError("network down")

    with pytest.raises(GenerationFailure, match="network down"):
        generate_entry_embedding(provider, "t", "b", dimension=2, timeout=5)
