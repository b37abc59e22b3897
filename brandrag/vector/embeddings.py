"""
Embedding providers and the config-aware embedding generator.

The generator never raises: when the provider fails it substitutes a zero
vector of the configured dimension, which matches nothing at retrieval time.
"""

from abc import ABC, abstractmethod
import hashlib
from typing import Optional

import numpy as np
import ollama

from ..core.schema import EmbeddingProviderError, EmbeddingResult, Outcome
from ..util.logging import logger


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str, model: Optional[str] = None) -> list[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for testing purposes.

    Identical text always yields the identical vector, so a stored item and a
    query with the same text have cosine similarity 1.0. Unrelated texts land
    close to orthogonal.
    """

    def __init__(self, dimension: int = 768):
        self.dimension = dimension

    def embed_text(self, text: str, model: Optional[str] = None) -> list[float]:
        """Generate deterministic embedding vector using hash function."""
        vector = []
        counter = 0
        while len(vector) < self.dimension:
            hex_dig = hashlib.md5(f"{counter}:{text}".encode()).hexdigest()
            for i in range(0, len(hex_dig), 8):
                value = int(hex_dig[i:i + 8], 16)
                # Map to [-1, 1]
                vector.append((value / (2 ** 32)) * 2 - 1)
            counter += 1

        return vector[:self.dimension]

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Local embeddings with sentence-transformers.

    The model is loaded on first use. A different ``model`` passed to
    ``embed_text`` loads (and caches) that model instead.
    """

    def __init__(self, model_name: str = "all-mpnet-base-v2"):
        self.model_name = model_name
        self._models = {}
        self._dimension = None

    def _load(self, model_name: str):
        if model_name not in self._models:
            from sentence_transformers import SentenceTransformer
            self._models[model_name] = SentenceTransformer(model_name)
        return self._models[model_name]

    @property
    def model(self):
        return self._load(self.model_name)

    def embed_text(self, text: str, model: Optional[str] = None) -> list[float]:
        """Generate embedding vector using sentence transformers."""
        encoder = self._load(model or self.model_name)
        embedding = encoder.encode(text, convert_to_tensor=False)
        return np.asarray(embedding, dtype=float).tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = len(self.model.encode("test", convert_to_tensor=False))
        return self._dimension


class OllamaEmbedding(IEmbeddingProvider):
    """Remote embeddings from an Ollama server."""

    def __init__(self, host: str = "http://localhost:11434", model_name: str = "nomic-embed-text",
                 dimension: int = 768, client: Optional[ollama.Client] = None):
        self.host = host
        self.model_name = model_name
        self.dimension = dimension
        self._client = client

    @property
    def client(self) -> ollama.Client:
        if self._client is None:
            self._client = ollama.Client(host=self.host)
        return self._client

    def embed_text(self, text: str, model: Optional[str] = None) -> list[float]:
        try:
            response = self.client.embed(model=model or self.model_name, input=text)
        except (ollama.ResponseError, ConnectionError) as e:
            raise EmbeddingProviderError(f"Ollama embedding request failed: {e}") from e

        embeddings = response["embeddings"]
        if not embeddings:
            raise EmbeddingProviderError("Ollama returned no embeddings")
        return [float(x) for x in embeddings[0]]

    def get_dimension(self) -> int:
        return self.dimension


class EmbeddingGenerator:
    """Turns text into a vector using the model and dimension from SystemConfig."""

    def __init__(self, provider: IEmbeddingProvider, config_service):
        self.provider = provider
        self.config_service = config_service

    def generate(self, text: str) -> EmbeddingResult:
        config = self.config_service.load().embedding
        model, dimensions = config.model, config.dimensions

        try:
            vector = list(self.provider.embed_text(text, model=model))
        except Exception as e:
            logger.log_embedding("failed", model, dimensions, {"error": str(e)})
            return EmbeddingResult(
                vector=[0.0] * dimensions,
                outcome=Outcome.ERROR_ABSORBED,
                reason=f"embedding provider failure: {e}",
            )

        if len(vector) != dimensions:
            # Mismatches are reported, not corrected
            logger.log_embedding("dimension_mismatch", model, dimensions, {"actual": len(vector)})
        else:
            logger.log_embedding("success", model, dimensions)

        return EmbeddingResult(vector=vector)

    def embed(self, text: str) -> list[float]:
        return self.generate(text).vector
