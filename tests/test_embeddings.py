"""
Tests for embedding providers and the config-aware embedding generator.
"""

import numpy as np
import ollama
import pytest
from unittest.mock import MagicMock, patch

from brandrag.core.config import get_embedding_provider
from brandrag.core.schema import EmbeddingProviderError, Outcome
from brandrag.vector.embeddings import (
    DeterministicHashEmbedding,
    EmbeddingGenerator,
    IEmbeddingProvider,
    OllamaEmbedding,
    SentenceTransformerEmbedding,
)


class TestDeterministicHashEmbedding:

    def test_embedding_interface(self):
        embedder = DeterministicHashEmbedding(dimension=384)

        assert isinstance(embedder, IEmbeddingProvider)
        assert embedder.get_dimension() == 384

    def test_deterministic_embedding(self):
        """The same input always produces the same output."""
        embedder = DeterministicHashEmbedding(dimension=384)

        vector1 = embedder.embed_text("Hello, world!")
        vector2 = DeterministicHashEmbedding(dimension=384).embed_text("Hello, world!")

        assert vector1 == vector2
        assert len(vector1) == 384

    def test_different_inputs_produce_different_vectors(self):
        embedder = DeterministicHashEmbedding(dimension=64)

        assert embedder.embed_text("Hello, world!") != embedder.embed_text("Goodbye, world!")

    def test_values_in_unit_range(self):
        vector = DeterministicHashEmbedding(dimension=100).embed_text("range check")

        assert all(-1.0 <= value <= 1.0 for value in vector)

    def test_model_argument_ignored(self):
        embedder = DeterministicHashEmbedding(dimension=32)

        assert embedder.embed_text("x", model="anything") == embedder.embed_text("x")


class TestOllamaEmbedding:

    def test_embed_text_uses_client(self):
        client = MagicMock()
        client.embed.return_value = {"embeddings": [[0.1, 0.2, 0.3]]}
        provider = OllamaEmbedding(model_name="nomic-embed-text", dimension=3, client=client)

        vector = provider.embed_text("brand voice")

        assert vector == [0.1, 0.2, 0.3]
        client.embed.assert_called_once_with(model="nomic-embed-text", input="brand voice")

    def test_model_override(self):
        client = MagicMock()
        client.embed.return_value = {"embeddings": [[1.0]]}
        provider = OllamaEmbedding(client=client)

        provider.embed_text("text", model="mxbai-embed-large")

        client.embed.assert_called_once_with(model="mxbai-embed-large", input="text")

    def test_response_error_wrapped(self):
        client = MagicMock()
        client.embed.side_effect = ollama.ResponseError("model not found")
        provider = OllamaEmbedding(client=client)

        with pytest.raises(EmbeddingProviderError, match="Ollama embedding request failed"):
            provider.embed_text("text")

    def test_connection_error_wrapped(self):
        client = MagicMock()
        client.embed.side_effect = ConnectionError("connection refused")
        provider = OllamaEmbedding(client=client)

        with pytest.raises(EmbeddingProviderError):
            provider.embed_text("text")

    def test_empty_response_is_error(self):
        client = MagicMock()
        client.embed.return_value = {"embeddings": []}
        provider = OllamaEmbedding(client=client)

        with pytest.raises(EmbeddingProviderError, match="no embeddings"):
            provider.embed_text("text")


class TestSentenceTransformerEmbedding:

    def test_uses_cached_model(self):
        provider = SentenceTransformerEmbedding(model_name="local-model")
        model = MagicMock()
        model.encode.return_value = np.array([0.5, -0.5])
        provider._models["local-model"] = model

        assert provider.embed_text("hello") == [0.5, -0.5]
        assert provider.get_dimension() == 2


class TestProviderFactory:

    def test_hash_provider(self):
        with patch("brandrag.core.config.EMBED_PROVIDER", "hash"):
            assert isinstance(get_embedding_provider(), DeterministicHashEmbedding)

    def test_ollama_provider(self):
        with patch("brandrag.core.config.EMBED_PROVIDER", "ollama"):
            assert isinstance(get_embedding_provider(), OllamaEmbedding)

    def test_unknown_provider(self):
        with patch("brandrag.core.config.EMBED_PROVIDER", "openai"):
            with pytest.raises(ValueError, match="Invalid EMBED_PROVIDER"):
                get_embedding_provider()


class TestEmbeddingGenerator:

    def test_generate_success(self, embedder, config_service):
        result = embedder.generate("launch week")

        assert result.outcome == Outcome.OK
        assert len(result.vector) == config_service.load().embedding.dimensions

    def test_passes_configured_model(self, config_service):
        provider = MagicMock()
        dimensions = config_service.load().embedding.dimensions
        provider.embed_text.return_value = [0.1] * dimensions

        EmbeddingGenerator(provider, config_service).embed("text")

        provider.embed_text.assert_called_once_with("text", model=config_service.load().embedding.model)

    def test_provider_failure_gives_zero_vector(self, config_service):
        provider = MagicMock()
        provider.embed_text.side_effect = EmbeddingProviderError("service unavailable")

        result = EmbeddingGenerator(provider, config_service).generate("text")
        dimensions = config_service.load().embedding.dimensions

        assert result.outcome == Outcome.ERROR_ABSORBED
        assert result.vector == [0.0] * dimensions
        assert "service unavailable" in result.reason

    def test_dimension_mismatch_logged_not_corrected(self, config_service):
        generator = EmbeddingGenerator(DeterministicHashEmbedding(dimension=16), config_service)

        with patch("brandrag.vector.embeddings.logger") as mock_logger:
            result = generator.generate("text")

        assert len(result.vector) == 16
        assert result.outcome == Outcome.OK
        assert mock_logger.log_embedding.call_args[0][0] == "dimension_mismatch"
