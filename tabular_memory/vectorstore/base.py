"""
Abstract interfaces for document stores and embedding generators.

A document store keeps JSON documents in named containers, partitioned
by a partition key, and can rank them by cosine distance to a query
vector. Filters arrive as compiled predicate trees so every backend
evaluates the same semantics.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from tabular_memory.filters.predicate import CompiledFilter


class ContainerNotFoundError(LookupError):
    """Raised when an operation names a container that does not exist."""

    def __init__(self, container: str):
        super().__init__(f"Container '{container}' not found")
        self.container = container


class VectorSearchError(RuntimeError):
    """Raised when the store rejects a similarity query."""


@dataclass
class ScoredDocument:
    """
    A stored document together with its distance to the query vector.

    Attributes:
        document: Stored JSON document
        distance: Cosine distance (0.0 identical, 2.0 opposite)
    """

    document: dict[str, Any]
    distance: float

    def __post_init__(self) -> None:
        """Validate distance is in the cosine domain."""
        if not 0.0 <= self.distance <= 2.0 + 1e-9:
            raise ValueError(f"Distance must be between 0.0 and 2.0, got {self.distance}")


@dataclass
class SearchResult:
    """
    A decoded record with its relevance to the query.

    Attributes:
        record: Decoded record (a MemoryRecord)
        relevance: Relevance score (0.0-1.0, higher is more similar)
    """

    record: Any
    relevance: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.relevance <= 1.0:
            raise ValueError(f"Relevance must be between 0.0 and 1.0, got {self.relevance}")


class DocumentStore(ABC):
    """
    Capability interface every storage backend implements.

    Documents are dicts with at least "id" and "partitionKey"; "vector"
    holds the embedding when present. All methods are async to support
    non-blocking I/O.
    """

    @abstractmethod
    async def create_container(self, name: str, vector_size: int) -> None:
        """Create a container if it does not exist yet."""
        ...

    @abstractmethod
    async def list_containers(self) -> list[str]:
        """Names of all containers, sorted."""
        ...

    @abstractmethod
    async def delete_container(self, name: str) -> None:
        """Drop a container and its documents (no-op if absent)."""
        ...

    @abstractmethod
    async def upsert(self, container: str, document: dict[str, Any]) -> str:
        """
        Insert or replace a document.

        Returns:
            The document id

        Raises:
            ContainerNotFoundError: If the container does not exist
        """
        ...

    @abstractmethod
    async def get(
        self,
        container: str,
        document_id: str,
        partition_key: str | None = None,
    ) -> dict[str, Any] | None:
        """Point read; partition_key None searches every partition."""
        ...

    @abstractmethod
    async def delete(self, container: str, document_id: str, partition_key: str) -> bool:
        """Delete a document. Returns False if it was not found."""
        ...

    @abstractmethod
    async def query(
        self,
        container: str,
        compiled: CompiledFilter,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Documents matching a compiled filter, in storage order.

        Raises:
            ContainerNotFoundError: If the container does not exist
        """
        ...

    @abstractmethod
    async def search(
        self,
        container: str,
        vector: list[float],
        compiled: CompiledFilter,
        limit: int,
    ) -> list[ScoredDocument]:
        """
        Documents matching a compiled filter, nearest first.

        Documents without a vector are never returned.

        Raises:
            ContainerNotFoundError: If the container does not exist
        """
        ...


class EmbeddingGenerator(ABC):
    """Turns query text into a fixed-length vector."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        ...
