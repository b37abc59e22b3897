"""
Embedding, similarity ranking and persistence of user content vectors.
"""

# Package initialization for vector module
from .index import ISimilarityIndex, LinearScanIndex, cosine_similarity
from .types import ScoredVector
from .embeddings import (
    IEmbeddingProvider,
    DeterministicHashEmbedding,
    SentenceTransformerEmbedding,
    OllamaEmbedding,
    EmbeddingGenerator,
)
from .store import VectorStore, RateLimitExceeded

__all__ = [
    'ISimilarityIndex',
    'LinearScanIndex',
    'cosine_similarity',
    'ScoredVector',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'OllamaEmbedding',
    'EmbeddingGenerator',
    'VectorStore',
    'RateLimitExceeded',
]
