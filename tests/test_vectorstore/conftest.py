"""Pytest fixtures for vectorstore tests."""

from unittest.mock import AsyncMock

import pytest

from tabular_memory.vectorstore.memory_store import InMemoryDocumentStore


@pytest.fixture
def mock_database() -> AsyncMock:
    """Database double; the container exists with 3 dimensions."""
    db = AsyncMock()
    db.fetchval = AsyncMock(return_value=3)
    db.fetch = AsyncMock(return_value=[])
    db.fetchrow = AsyncMock(return_value=None)
    db.execute = AsyncMock(return_value="INSERT 0 1")
    return db


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def row_documents() -> list[dict]:
    """Three row documents with 3-dimensional vectors."""
    return [
        {
            "id": "cm93LTE",
            "partitionKey": "sales",
            "data": {"region": "West", "quantity": 12},
            "tags": {"year": ["2024"]},
            "vector": [1.0, 0.0, 0.0],
        },
        {
            "id": "cm93LTI",
            "partitionKey": "sales",
            "data": {"region": "East", "quantity": 3},
            "tags": {"year": ["2023"]},
            "vector": [0.0, 1.0, 0.0],
        },
        {
            "id": "cm93LTM",
            "partitionKey": "sales",
            "data": {"region": "West", "quantity": 7},
            "tags": {"year": ["2024"]},
            "vector": [-1.0, 0.0, 0.0],
        },
    ]
