"""Indexer package for SiteFoundry.

Provides the embedding client and the namespaced vector store writer.
"""

from .embeddings import EmbeddingClient
from .vector_store import EmbeddingVector, QueryMatch, VectorStoreWriter

__all__ = [
    'EmbeddingClient',
    'EmbeddingVector',
    'QueryMatch',
    'VectorStoreWriter'
]
