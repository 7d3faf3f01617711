"""Shared fixtures for schema tests."""

from datetime import datetime, timezone

import pytest

from tabular_memory.schema.config import SchemaConfig
from tabular_memory.schema.registry import SchemaRegistry
from tabular_memory.schema.schemas import TabularSchema
from tabular_memory.vectorstore.memory_store import InMemoryDocumentStore


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """Empty in-memory document store."""
    return InMemoryDocumentStore()


@pytest.fixture
def schema_config() -> SchemaConfig:
    """Default schema settings."""
    return SchemaConfig()


@pytest.fixture
def registry(store: InMemoryDocumentStore, schema_config: SchemaConfig) -> SchemaRegistry:
    """Registry over the in-memory store."""
    return SchemaRegistry(store, schema_config, vector_size=3)


@pytest.fixture
def january_schema() -> TabularSchema:
    """Schema snapshot imported in January."""
    return TabularSchema.create(
        "sales",
        "sales_jan.xlsx",
        now=datetime(2024, 1, 5, 9, 30, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def february_schema() -> TabularSchema:
    """Later schema snapshot of the same dataset."""
    return TabularSchema.create(
        "sales",
        "sales_feb.xlsx",
        now=datetime(2024, 2, 5, 9, 30, 0, tzinfo=timezone.utc),
    )
