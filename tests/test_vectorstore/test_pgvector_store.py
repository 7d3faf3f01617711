"""Unit tests for PgVectorDocumentStore."""

import json
from unittest.mock import AsyncMock

import pytest

from tabular_memory.filters.predicate import CompiledFilter, field_equals
from tabular_memory.vectorstore.base import ContainerNotFoundError
from tabular_memory.vectorstore.pgvector_store import (
    CREATE_TABLES,
    GET_DOCUMENT,
    GET_DOCUMENT_ANY_PARTITION,
    INSERT_CONTAINER,
    UPSERT_DOCUMENT,
    PgVectorDocumentStore,
)


def db_row(document: dict, distance: float | None = None) -> dict:
    """Shape a document the way the SELECT statements return it."""
    body = {k: v for k, v in document.items() if k != "vector"}
    row = {
        "body": json.dumps(body),
        "embedding": json.dumps(document["vector"]) if document.get("vector") else None,
    }
    if distance is not None:
        row["distance"] = distance
    return row


class TestPgVectorContainers:
    """Tests for container management."""

    @pytest.mark.asyncio
    async def test_initialize(self, mock_database):
        await PgVectorDocumentStore(mock_database).initialize()
        mock_database.execute.assert_awaited_once_with(CREATE_TABLES)

    @pytest.mark.asyncio
    async def test_create_and_list(self, mock_database):
        mock_database.fetch = AsyncMock(return_value=[{"name": "a"}, {"name": "b"}])
        store = PgVectorDocumentStore(mock_database)

        await store.create_container("a", 3)

        mock_database.execute.assert_awaited_once_with(INSERT_CONTAINER, "a", 3)
        assert await store.list_containers() == ["a", "b"]

    @pytest.mark.asyncio
    async def test_unknown_container(self, mock_database):
        mock_database.fetchval = AsyncMock(return_value=None)
        store = PgVectorDocumentStore(mock_database)

        with pytest.raises(ContainerNotFoundError):
            await store.query("missing", CompiledFilter())
        mock_database.fetch.assert_not_called()


class TestPgVectorDocuments:
    """Tests for upsert/get/delete."""

    @pytest.mark.asyncio
    async def test_upsert_splits_out_embedding(self, mock_database, row_documents):
        store = PgVectorDocumentStore(mock_database)

        result = await store.upsert("rows", row_documents[0])

        assert result == "cm93LTE"
        args = mock_database.execute.await_args.args
        assert args[0] == UPSERT_DOCUMENT
        assert args[1:4] == ("rows", "cm93LTE", "sales")
        assert "vector" not in json.loads(args[4])
        assert args[5] == "[1.0,0.0,0.0]"

    @pytest.mark.asyncio
    async def test_upsert_without_vector(self, mock_database):
        store = PgVectorDocumentStore(mock_database)

        await store.upsert("rows", {"id": "x", "partitionKey": "p"})

        assert mock_database.execute.await_args.args[5] is None

    @pytest.mark.asyncio
    async def test_upsert_dimension_mismatch(self, mock_database):
        store = PgVectorDocumentStore(mock_database)

        with pytest.raises(ValueError, match="expects 3"):
            await store.upsert("rows", {"id": "x", "vector": [1.0]})
        mock_database.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_restores_vector(self, mock_database, row_documents):
        mock_database.fetchrow = AsyncMock(return_value=db_row(row_documents[0]))
        store = PgVectorDocumentStore(mock_database)

        document = await store.get("rows", "cm93LTE", "sales")

        assert document == row_documents[0]
        mock_database.fetchrow.assert_awaited_once_with(GET_DOCUMENT, "rows", "cm93LTE", "sales")

    @pytest.mark.asyncio
    async def test_get_any_partition_and_missing(self, mock_database):
        store = PgVectorDocumentStore(mock_database)

        assert await store.get("rows", "nope") is None
        mock_database.fetchrow.assert_awaited_once_with(
            GET_DOCUMENT_ANY_PARTITION, "rows", "nope"
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,expected", [("DELETE 1", True), ("DELETE 0", False)])
    async def test_delete(self, mock_database, status, expected):
        mock_database.execute = AsyncMock(return_value=status)
        store = PgVectorDocumentStore(mock_database)

        assert await store.delete("rows", "x", "p") is expected


class TestPgVectorQuery:
    """Tests for query() and search() SQL assembly."""

    @pytest.mark.asyncio
    async def test_query_binds_filter_after_container(self, mock_database, row_documents):
        mock_database.fetch = AsyncMock(return_value=[db_row(row_documents[0])])
        store = PgVectorDocumentStore(mock_database)
        compiled = field_equals("data.region", "West", case_insensitive=True)

        documents = await store.query("rows", compiled, limit=5)

        sql, *params = mock_database.fetch.await_args.args
        assert "LOWER(body #>> $2::text[]) = $3" in sql
        assert sql.rstrip().endswith("LIMIT $4")
        assert params == ["rows", ["data", "region"], "west", 5]
        assert documents == [row_documents[0]]

    @pytest.mark.asyncio
    async def test_query_match_all_without_limit(self, mock_database):
        store = PgVectorDocumentStore(mock_database)

        await store.query("rows", CompiledFilter())

        sql, *params = mock_database.fetch.await_args.args
        assert "AND TRUE" in sql
        assert "LIMIT" not in sql
        assert params == ["rows"]

    @pytest.mark.asyncio
    async def test_search(self, mock_database, row_documents):
        mock_database.fetch = AsyncMock(
            return_value=[
                db_row(row_documents[0], distance=-1e-9),
                db_row(row_documents[1], distance=float("nan")),
                db_row(row_documents[2], distance=2.0000001),
            ]
        )
        store = PgVectorDocumentStore(mock_database)

        results = await store.search(
            "rows", [1.0, 0.0, 0.0], field_equals("data.quantity", 12), 10
        )

        sql, *params = mock_database.fetch.await_args.args
        assert "embedding <=> $2::vector AS distance" in sql
        assert "(body #> $3::text[]) = $4::jsonb" in sql
        assert "LIMIT $5" in sql
        assert params == ["rows", "[1.0,0.0,0.0]", ["data", "quantity"], "12", 10]
        assert [r.document["id"] for r in results] == ["cm93LTE", "cm93LTM"]
        assert [r.distance for r in results] == [0.0, 2.0]
