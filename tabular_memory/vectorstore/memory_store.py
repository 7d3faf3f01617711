"""
In-memory document store.

Keeps documents in dicts and evaluates compiled predicates in Python.
Useful for tests, the CLI and small embedded deployments; semantics
match PgVectorDocumentStore.
"""

import copy
from typing import Any

import numpy as np
import structlog

from tabular_memory.filters.predicate import CompiledFilter, evaluate
from tabular_memory.vectorstore.base import (
    ContainerNotFoundError,
    DocumentStore,
    ScoredDocument,
)
from tabular_memory.vectorstore.scoring import cosine_distances

logger = structlog.get_logger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """DocumentStore backed by process memory."""

    def __init__(self) -> None:
        # container -> (partition_key, id) -> document
        self._containers: dict[str, dict[tuple[str, str], dict[str, Any]]] = {}
        self._vector_sizes: dict[str, int] = {}

    def _documents(self, container: str) -> dict[tuple[str, str], dict[str, Any]]:
        try:
            return self._containers[container]
        except KeyError:
            raise ContainerNotFoundError(container) from None

    async def create_container(self, name: str, vector_size: int) -> None:
        if name not in self._containers:
            self._containers[name] = {}
            self._vector_sizes[name] = vector_size
            logger.debug("Container created", container=name, vector_size=vector_size)

    async def list_containers(self) -> list[str]:
        return sorted(self._containers)

    async def delete_container(self, name: str) -> None:
        self._containers.pop(name, None)
        self._vector_sizes.pop(name, None)

    async def upsert(self, container: str, document: dict[str, Any]) -> str:
        documents = self._documents(container)

        document_id = document.get("id")
        if not document_id:
            raise ValueError("Document must have a non-empty 'id'")
        partition_key = document.get("partitionKey") or ""

        vector = document.get("vector")
        if vector:
            expected = self._vector_sizes[container]
            if len(vector) != expected:
                raise ValueError(
                    f"Vector has {len(vector)} dimensions, container '{container}' "
                    f"expects {expected}"
                )

        documents[(partition_key, document_id)] = copy.deepcopy(document)
        return document_id

    async def get(
        self,
        container: str,
        document_id: str,
        partition_key: str | None = None,
    ) -> dict[str, Any] | None:
        documents = self._documents(container)
        if partition_key is not None:
            document = documents.get((partition_key, document_id))
            return copy.deepcopy(document) if document is not None else None
        for (_, doc_id), document in documents.items():
            if doc_id == document_id:
                return copy.deepcopy(document)
        return None

    async def delete(self, container: str, document_id: str, partition_key: str) -> bool:
        documents = self._documents(container)
        return documents.pop((partition_key, document_id), None) is not None

    async def query(
        self,
        container: str,
        compiled: CompiledFilter,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        matches = [
            copy.deepcopy(document)
            for document in self._documents(container).values()
            if evaluate(compiled.predicate, compiled.parameters, document)
        ]
        return matches if limit is None else matches[:limit]

    async def search(
        self,
        container: str,
        vector: list[float],
        compiled: CompiledFilter,
        limit: int,
    ) -> list[ScoredDocument]:
        candidates = [
            document
            for document in self._documents(container).values()
            if document.get("vector")
            and evaluate(compiled.predicate, compiled.parameters, document)
        ]
        if not candidates:
            return []

        matrix = np.array([document["vector"] for document in candidates], dtype=np.float64)
        distances = cosine_distances(np.array(vector, dtype=np.float64), matrix)

        order = [i for i in np.argsort(distances, kind="stable") if not np.isnan(distances[i])]
        return [
            ScoredDocument(
                document=copy.deepcopy(candidates[i]),
                distance=float(distances[i]),
            )
            for i in order[:limit]
        ]
