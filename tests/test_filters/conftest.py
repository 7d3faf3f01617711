"""Fixtures for filter tests."""

import pytest

from tabular_memory.filters.compiler import FilterCompiler
from tabular_memory.filters.config import FuzzyMatchConfig


@pytest.fixture
def compiler() -> FilterCompiler:
    """Compiler with the default policy (exact, case-insensitive)."""
    return FilterCompiler(FuzzyMatchConfig())


@pytest.fixture
def fuzzy_compiler() -> FilterCompiler:
    """Compiler with CONTAINS fuzzy matching enabled."""
    return FilterCompiler(FuzzyMatchConfig(enabled=True, operator="CONTAINS"))


@pytest.fixture
def row_document() -> dict:
    """A stored row document as the stores see it."""
    return {
        "id": "ZD1zYWxlcw",
        "partitionKey": "sales-2024",
        "tags": {"dataset_name": ["sales"], "year": ["2024"], "Region": ["West"]},
        "data": {
            "customer_name": "Acme Corp",
            "region": "West",
            "quantity": 12,
            "active": True,
        },
        "schemaId": "schema_sales_20240105093000_abcd1234",
    }
