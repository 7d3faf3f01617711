"""
Document store abstraction for tabular rows.

Main components:
- DocumentStore: capability interface every backend implements
- InMemoryDocumentStore: dict-backed store evaluating predicates in Python
- PgVectorDocumentStore: PostgreSQL/pgvector store using JSONB documents
- EmbeddingGenerator: query text -> vector
- relevance / accept: cosine distance scoring
"""

from tabular_memory.vectorstore.base import (
    ContainerNotFoundError,
    DocumentStore,
    EmbeddingGenerator,
    ScoredDocument,
    SearchResult,
    VectorSearchError,
)
from tabular_memory.vectorstore.config import VectorStoreConfig
from tabular_memory.vectorstore.memory_store import InMemoryDocumentStore
from tabular_memory.vectorstore.pgvector_store import PgVectorDocumentStore
from tabular_memory.vectorstore.scoring import accept, cosine_distances, relevance

__all__ = [
    "DocumentStore",
    "EmbeddingGenerator",
    "ScoredDocument",
    "SearchResult",
    "ContainerNotFoundError",
    "VectorSearchError",
    "VectorStoreConfig",
    "InMemoryDocumentStore",
    "PgVectorDocumentStore",
    "accept",
    "cosine_distances",
    "relevance",
]
