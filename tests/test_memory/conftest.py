"""Fixtures for TabularMemory tests."""

import json

import pytest

from tabular_memory.memory import TabularMemory
from tabular_memory.records.schemas import MemoryRecord
from tabular_memory.records.text_recovery import render_record_text
from tabular_memory.schema.config import SchemaConfig
from tabular_memory.vectorstore.base import EmbeddingGenerator
from tabular_memory.vectorstore.config import VectorStoreConfig
from tabular_memory.vectorstore.memory_store import InMemoryDocumentStore


class FakeEmbedder(EmbeddingGenerator):
    """Maps known query texts to fixed 3-dimensional vectors."""

    def __init__(self, vectors: dict[str, list[float]] | None = None):
        self.vectors = vectors or {}

    async def embed(self, text: str) -> list[float]:
        return self.vectors.get(text, [1.0, 0.0, 0.0])


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder({"west": [1.0, 0.0, 0.0], "east": [0.0, 1.0, 0.0]})


@pytest.fixture
def memory(store, embedder) -> TabularMemory:
    """TabularMemory over an in-memory store with 3-dimensional vectors."""
    return TabularMemory(
        store,
        embedder,
        config=VectorStoreConfig(default_index="sales", vector_size=3),
        schema_config=SchemaConfig(),
    )


def make_record(
    row_id: str,
    row: dict,
    vector: list[float],
    dataset: str = "sales",
    file_id: str = "sales-2024",
    import_batch_id: str | None = None,
    row_number: int = 1,
) -> MemoryRecord:
    """External record as the tabular decoders produce it."""
    payload = {
        "text": render_record_text("Sheet1", row_number, row),
        "__custom_tabular_data": json.dumps(row),
        "worksheetName": "Sheet1",
        "rowNumber": row_number,
        "file": f"{file_id}.xlsx",
    }
    if import_batch_id:
        payload["import_batch_id"] = import_batch_id
    return MemoryRecord(
        id=f"d={file_id}//p={row_id}",
        tags={
            "dataset_name": [dataset],
            "__file_id": [file_id],
            "__custom_tabular_data_tag": ["true"],
            "year": ["2024"],
        },
        payload=payload,
        vector=vector,
    )


@pytest.fixture
def sales_records() -> list[MemoryRecord]:
    """Three rows of one import batch."""
    return [
        make_record(
            "row-1",
            {"Customer Name": "Acme Corp", "Region": "West", "Quantity": 12},
            [1.0, 0.0, 0.0],
            import_batch_id="batch-1",
            row_number=1,
        ),
        make_record(
            "row-2",
            {"Customer Name": "Globex", "Region": "East", "Quantity": 3},
            [0.0, 1.0, 0.0],
            import_batch_id="batch-1",
            row_number=2,
        ),
        make_record(
            "row-3",
            {"Customer Name": "Initech", "Region": "West", "Quantity": "n/a"},
            [0.6, 0.8, 0.0],
            import_batch_id="batch-1",
            row_number=3,
        ),
    ]


@pytest.fixture
def record_factory():
    """Build decoder-shaped external records inside a test."""
    return make_record
