"""
pgvector implementation of the DocumentStore interface.

Documents are kept as JSONB in a single table keyed by container,
partition key and id. The embedding is split out into a pgvector
column so similarity ordering can use the <=> (cosine distance)
operator. Compiled filters are rendered by tabular_memory.filters.sql.
"""

import json
import math
import re
from typing import Any

import asyncpg
import structlog

from tabular_memory.filters.predicate import CompiledFilter
from tabular_memory.filters.sql import render_where
from tabular_memory.storage.database import Database
from tabular_memory.vectorstore.base import (
    ContainerNotFoundError,
    DocumentStore,
    ScoredDocument,
)

logger = structlog.get_logger(__name__)

CREATE_TABLES = """
CREATE TABLE IF NOT EXISTS tabular_containers (
    name TEXT PRIMARY KEY,
    vector_size INTEGER NOT NULL CHECK (vector_size > 0),
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS tabular_documents (
    container TEXT NOT NULL REFERENCES tabular_containers(name) ON DELETE CASCADE,
    id TEXT NOT NULL,
    partition_key TEXT NOT NULL,
    body JSONB NOT NULL,
    embedding vector,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (container, partition_key, id)
);

CREATE INDEX IF NOT EXISTS idx_tabular_documents_body
    ON tabular_documents USING GIN (body jsonb_path_ops);
"""

INSERT_CONTAINER = """
INSERT INTO tabular_containers (name, vector_size)
VALUES ($1, $2)
ON CONFLICT (name) DO NOTHING
"""

LIST_CONTAINERS = "SELECT name FROM tabular_containers ORDER BY name"

DELETE_CONTAINER = "DELETE FROM tabular_containers WHERE name = $1"

GET_VECTOR_SIZE = "SELECT vector_size FROM tabular_containers WHERE name = $1"

UPSERT_DOCUMENT = """
INSERT INTO tabular_documents (container, id, partition_key, body, embedding)
VALUES ($1, $2, $3, $4::jsonb, $5::vector)
ON CONFLICT (container, partition_key, id) DO UPDATE SET
    body = EXCLUDED.body,
    embedding = EXCLUDED.embedding,
    updated_at = NOW()
"""

GET_DOCUMENT = """
SELECT body, embedding::text AS embedding
FROM tabular_documents
WHERE container = $1 AND id = $2 AND partition_key = $3
"""

GET_DOCUMENT_ANY_PARTITION = """
SELECT body, embedding::text AS embedding
FROM tabular_documents
WHERE container = $1 AND id = $2
LIMIT 1
"""

DELETE_DOCUMENT = """
DELETE FROM tabular_documents
WHERE container = $1 AND id = $2 AND partition_key = $3
"""

_DELETE_COUNT = re.compile(r"^DELETE (\d+)$")


def _vector_literal(vector: list[float]) -> str:
    """Format a vector in pgvector's text representation."""
    return f"[{','.join(str(float(x)) for x in vector)}]"


def _row_to_document(row: asyncpg.Record) -> dict[str, Any]:
    body = row["body"]
    document = json.loads(body) if isinstance(body, str) else dict(body)
    embedding = row["embedding"]
    if embedding:
        document["vector"] = json.loads(embedding)
    return document


class PgVectorDocumentStore(DocumentStore):
    """
    pgvector-backed document store.

    Call initialize() once to create the tables. Containers are rows in
    tabular_containers; dropping one cascades to its documents.
    """

    def __init__(self, database: Database):
        """
        Initialize pgvector store.

        Args:
            database: Connected Database instance
        """
        self._db = database

    async def initialize(self) -> None:
        """Create tables and indexes if they do not exist."""
        await self._db.execute(CREATE_TABLES)
        logger.info("Document tables initialized")

    async def _vector_size(self, container: str) -> int:
        size = await self._db.fetchval(GET_VECTOR_SIZE, container)
        if size is None:
            raise ContainerNotFoundError(container)
        return size

    async def create_container(self, name: str, vector_size: int) -> None:
        await self._db.execute(INSERT_CONTAINER, name, vector_size)

    async def list_containers(self) -> list[str]:
        rows = await self._db.fetch(LIST_CONTAINERS)
        return [row["name"] for row in rows]

    async def delete_container(self, name: str) -> None:
        await self._db.execute(DELETE_CONTAINER, name)

    async def upsert(self, container: str, document: dict[str, Any]) -> str:
        expected = await self._vector_size(container)

        document_id = document.get("id")
        if not document_id:
            raise ValueError("Document must have a non-empty 'id'")
        partition_key = document.get("partitionKey") or ""

        body = {k: v for k, v in document.items() if k != "vector"}
        vector = document.get("vector")
        embedding = None
        if vector:
            if len(vector) != expected:
                raise ValueError(
                    f"Vector has {len(vector)} dimensions, container '{container}' "
                    f"expects {expected}"
                )
            embedding = _vector_literal(vector)

        await self._db.execute(
            UPSERT_DOCUMENT,
            container,
            document_id,
            partition_key,
            json.dumps(body),
            embedding,
        )
        return document_id

    async def get(
        self,
        container: str,
        document_id: str,
        partition_key: str | None = None,
    ) -> dict[str, Any] | None:
        await self._vector_size(container)
        if partition_key is None:
            row = await self._db.fetchrow(GET_DOCUMENT_ANY_PARTITION, container, document_id)
        else:
            row = await self._db.fetchrow(GET_DOCUMENT, container, document_id, partition_key)
        return _row_to_document(row) if row else None

    async def delete(self, container: str, document_id: str, partition_key: str) -> bool:
        await self._vector_size(container)
        status = await self._db.execute(DELETE_DOCUMENT, container, document_id, partition_key)
        match = _DELETE_COUNT.match(status or "")
        return bool(match and int(match.group(1)) > 0)

    async def query(
        self,
        container: str,
        compiled: CompiledFilter,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        await self._vector_size(container)

        where_clause, where_params = render_where(compiled, column="body", start_index=2)
        params: list[Any] = [container, *where_params]
        sql = f"""
            SELECT body, embedding::text AS embedding
            FROM tabular_documents
            WHERE container = $1
              AND {where_clause}
            ORDER BY partition_key, id
        """
        if limit is not None:
            params.append(limit)
            sql += f" LIMIT ${len(params)}"

        rows = await self._db.fetch(sql, *params)
        return [_row_to_document(row) for row in rows]

    async def search(
        self,
        container: str,
        vector: list[float],
        compiled: CompiledFilter,
        limit: int,
    ) -> list[ScoredDocument]:
        await self._vector_size(container)

        where_clause, where_params = render_where(compiled, column="body", start_index=3)
        params: list[Any] = [container, _vector_literal(vector), *where_params, limit]
        sql = f"""
            SELECT
                body,
                embedding::text AS embedding,
                embedding <=> $2::vector AS distance
            FROM tabular_documents
            WHERE container = $1
              AND embedding IS NOT NULL
              AND {where_clause}
            ORDER BY embedding <=> $2::vector
            LIMIT ${len(params)}
        """

        rows = await self._db.fetch(sql, *params)
        return [
            ScoredDocument(
                document=_row_to_document(row),
                distance=min(2.0, max(0.0, float(row["distance"]))),
            )
            for row in rows
            if row["distance"] is not None and not math.isnan(row["distance"])
        ]
