"""
Schema-aware tabular memory.

TabularMemory wires the record codec, the schema registry, the filter
compiler and the similarity scorer on top of a document store:

- Upserting rows (extract structured data, learn the dataset schema, store)
- Similarity search and filtered listing over rows
- Lookups by schema id / import batch and field discovery

This is the primary interface for application code to use.
"""

from collections import Counter
from collections.abc import Sequence
from typing import Any, Literal

import structlog

from tabular_memory.filters.compiler import FilterCompiler, FilterGroup
from tabular_memory.filters.config import FuzzyMatchConfig
from tabular_memory.filters.predicate import CompiledFilter, as_text, field_equals
from tabular_memory.observability.logging import import_context
from tabular_memory.records.codec import (
    RecordCodec,
    encode_id,
    extract_tabular_data,
    first_string,
)
from tabular_memory.records.schemas import (
    DATASET_NAME_TAG,
    FILE_FIELD,
    MemoryRecord,
    TabularRecord,
)
from tabular_memory.schema.config import SchemaConfig
from tabular_memory.schema.normalizer import normalize_name
from tabular_memory.schema.registry import SchemaRegistry
from tabular_memory.schema.schemas import (
    DOCUMENT_TYPE_KEY,
    SCHEMA_DOCUMENT_TYPE,
    TabularSchema,
)
from tabular_memory.vectorstore.base import (
    ContainerNotFoundError,
    DocumentStore,
    EmbeddingGenerator,
    SearchResult,
    VectorSearchError,
)
from tabular_memory.vectorstore.config import VectorStoreConfig
from tabular_memory.vectorstore.scoring import accept, relevance

logger = structlog.get_logger(__name__)

# Lowercased fragments of backend errors caused by the distance function
# or the vector column rather than by the data
_DISTANCE_ERROR_MARKERS = (
    "vectordistance",
    "<=>",
    "vector dimensions",
    "operator does not exist",
    "distance",
)


def _rows_only() -> CompiledFilter:
    """Filter excluding schema documents."""
    return field_equals(("metadata", DOCUMENT_TYPE_KEY), SCHEMA_DOCUMENT_TYPE).negate()


def _is_distance_error(error: Exception) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in _DISTANCE_ERROR_MARKERS)


class TabularMemory:
    """
    High-level API over a document store for tabular rows.

    Args:
        store: Document store backend
        embedder: Embedding generator for query text
        config: Search and index defaults
        schema_config: Schema management settings (ignored if registry given)
        fuzzy_config: Fuzzy matching policy (ignored if compiler given)
        registry: Optional pre-built SchemaRegistry
        compiler: Optional pre-built FilterCompiler
        codec: Optional pre-built RecordCodec
    """

    def __init__(
        self,
        store: DocumentStore,
        embedder: EmbeddingGenerator,
        config: VectorStoreConfig | None = None,
        schema_config: SchemaConfig | None = None,
        fuzzy_config: FuzzyMatchConfig | None = None,
        registry: SchemaRegistry | None = None,
        compiler: FilterCompiler | None = None,
        codec: RecordCodec | None = None,
    ):
        self._store = store
        self._embedder = embedder
        self._config = config or VectorStoreConfig()
        self._registry = registry or SchemaRegistry(
            store, schema_config, vector_size=self._config.vector_size
        )
        self._compiler = compiler or FilterCompiler(fuzzy_config, registry=self._registry)
        self._codec = codec or RecordCodec()

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    @property
    def compiler(self) -> FilterCompiler:
        return self._compiler

    def _index(self, index: str | None) -> str:
        name = (index or "").strip()
        return name or self._config.default_index

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    async def create_index(self, index: str | None, vector_size: int | None = None) -> None:
        """Create an index (container) if it does not exist."""
        name = self._index(index)
        await self._store.create_container(name, vector_size or self._config.vector_size)
        logger.info("Index ready", index=name)

    async def get_indexes(self) -> list[str]:
        return await self._store.list_containers()

    async def delete_index(self, index: str | None) -> None:
        name = self._index(index)
        await self._store.delete_container(name)
        logger.info("Index deleted", index=name)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def upsert(self, index: str | None, record: MemoryRecord) -> str:
        """
        Store a row, learning its dataset schema on the way.

        The dataset comes from the "dataset_name" tag and the source file
        from the "file" payload field. Schema extraction runs only when
        enabled and both a dataset name and row data are present.

        Returns:
            The encoded record id
        """
        name = self._index(index)
        tabular = self._codec.build_record(record)

        schema_config = self._registry.config
        dataset_name = record.first_tag(DATASET_NAME_TAG)
        source_file = (
            first_string(record.payload.get(FILE_FIELD)) or schema_config.default_source_file
        )

        # Learn from the row as imported so columns keep their display names
        row = extract_tabular_data(record.payload) or tabular.data
        with import_context(dataset_name, tabular.import_batch_id or None, index=name):
            schema = await self._registry.record_row(
                dataset_name,
                source_file,
                row,
                import_batch_id=tabular.import_batch_id or None,
                container=name,
            )
            if schema is not None:
                tabular = self._codec.with_schema(tabular, schema.id, schema.import_batch_id)

            await self._store.upsert(name, tabular.to_document())
            logger.debug(
                "Record upserted",
                record_id=record.id,
                schema_id=tabular.schema_id or None,
            )
        return tabular.id

    async def delete(self, index: str | None, record: MemoryRecord) -> None:
        """Delete a record; deleting a missing record is a no-op."""
        name = self._index(index)
        try:
            deleted = await self._store.delete(
                name, encode_id(record.id), self._codec.partition_key_for(record)
            )
        except ContainerNotFoundError:
            logger.debug("Delete on missing index ignored", index=name, record_id=record.id)
            return
        if not deleted:
            logger.debug("Delete of missing record ignored", index=name, record_id=record.id)

    async def _compile(
        self,
        filters: Sequence[FilterGroup] | None,
        dataset_name: str | None,
    ) -> CompiledFilter:
        if dataset_name:
            compiled = await self._compiler.compile_for_dataset(filters, dataset_name)
        else:
            compiled = self._compiler.compile(filters)
        for warning in compiled.warnings:
            logger.warning("Filter warning", detail=warning)
        return compiled.conjoin(_rows_only())

    def _to_external(self, document: dict[str, Any], with_embeddings: bool) -> MemoryRecord:
        return self._codec.to_external(self._codec.from_document(document), with_embeddings)

    async def get_similar_list(
        self,
        index: str | None,
        text: str,
        filters: Sequence[FilterGroup] | None = None,
        min_relevance: float | None = None,
        limit: int | None = None,
        with_embeddings: bool = False,
        dataset_name: str | None = None,
    ) -> list[SearchResult]:
        """
        Rows most similar to a query text, most relevant first.

        Args:
            index: Index to search (default index if None)
            text: Query text to embed
            filters: Filter groups (AND within a group, OR across groups)
            min_relevance: Inclusive relevance threshold (0.0-1.0)
            limit: Maximum results
            with_embeddings: Include stored vectors in the results
            dataset_name: Validate data filters against this dataset's schema

        Raises:
            VectorSearchError: If the store rejects the distance query
        """
        name = self._index(index)
        limit = limit or self._config.default_limit
        if min_relevance is None:
            min_relevance = self._config.default_min_relevance

        compiled = await self._compile(filters, dataset_name)
        vector = await self._embedder.embed(text)

        try:
            scored = await self._store.search(name, vector, compiled, limit)
        except ContainerNotFoundError:
            raise
        except Exception as e:
            if not _is_distance_error(e):
                raise
            logger.error("Vector search failed", index=name, error=str(e))
            raise VectorSearchError(
                f"Vector search on index '{name}' failed: {e}. Check that the index "
                f"was created with the embedding dimensionality ({len(vector)}), that "
                f"the vector column and distance function are configured for it, and "
                f"that filter fields exist on the stored documents."
            ) from e

        results = []
        for item in scored:
            score = relevance(item.distance)
            if not accept(score, min_relevance):
                continue
            results.append(
                SearchResult(
                    record=self._to_external(item.document, with_embeddings),
                    relevance=score,
                )
            )

        logger.debug(
            "Similarity search complete",
            index=name,
            candidates=len(scored),
            results=len(results),
        )
        return results

    async def get_list(
        self,
        index: str | None,
        filters: Sequence[FilterGroup] | None = None,
        limit: int | None = None,
        with_embeddings: bool = False,
        dataset_name: str | None = None,
    ) -> list[MemoryRecord]:
        """Rows matching the filters (schema documents never included)."""
        name = self._index(index)
        compiled = await self._compile(filters, dataset_name)
        documents = await self._store.query(name, compiled, limit or self._config.default_limit)
        return [self._to_external(doc, with_embeddings) for doc in documents]

    async def get_records_by_schema_id(
        self,
        index: str | None,
        schema_id: str,
        limit: int | None = None,
    ) -> list[MemoryRecord]:
        """Rows stamped with a schema snapshot id."""
        name = self._index(index)
        compiled = field_equals("schemaId", schema_id).conjoin(_rows_only())
        documents = await self._store.query(name, compiled, limit)
        return [self._to_external(doc, False) for doc in documents]

    async def get_records_by_import_batch_id(
        self,
        index: str | None,
        import_batch_id: str,
        limit: int | None = None,
    ) -> list[MemoryRecord]:
        """Rows written by one import batch."""
        name = self._index(index)
        compiled = field_equals("importBatchId", import_batch_id).conjoin(_rows_only())
        documents = await self._store.query(name, compiled, limit)
        return [self._to_external(doc, False) for doc in documents]

    # ------------------------------------------------------------------
    # Schemas and field discovery
    # ------------------------------------------------------------------

    async def get_schema_for_record(
        self,
        index: str | None,
        record_id: str,
    ) -> TabularSchema | None:
        """
        Schema snapshot a stored row belongs to.

        Falls back to the dataset's latest snapshot for rows stored
        without a schema id.
        """
        name = self._index(index)
        document = await self._store.get(name, encode_id(record_id))
        if document is None:
            return None

        record = self._codec.from_document(document)
        if record.schema_id:
            schema = await self._registry.get_schema_by_id(record.schema_id)
            if schema is not None:
                return schema

        dataset_name = next((v for v in record.tags.get(DATASET_NAME_TAG) or [] if v), None)
        if dataset_name:
            return await self._registry.get_schema_by_dataset(dataset_name)
        return None

    async def list_dataset_names(self) -> list[str]:
        return await self._registry.list_dataset_names()

    async def _sample(self, index: str | None, size: int) -> list[TabularRecord]:
        name = self._index(index)
        documents = await self._store.query(name, _rows_only(), size)
        return [self._codec.from_document(doc) for doc in documents]

    async def get_filterable_fields(self, index: str | None) -> dict[str, list[str]]:
        """
        Tag keys and data fields seen on a sample of rows.

        Returns:
            {"tags": [...], "data": [...]}, both sorted; internal tags
            (prefixed with "__") are left out
        """
        records = await self._sample(index, self._config.field_sample_size)
        tag_keys: set[str] = set()
        data_keys: set[str] = set()
        for record in records:
            tag_keys.update(k for k in record.tags if not k.startswith("__"))
            data_keys.update(record.data)
        return {"tags": sorted(tag_keys), "data": sorted(data_keys)}

    async def get_top_field_values(
        self,
        index: str | None,
        field_type: Literal["tag", "data"],
        field_name: str,
        limit: int | None = None,
    ) -> list[tuple[str, int]]:
        """
        Most frequent values of a tag or data field over a sample of rows.

        Returns:
            (value, count) pairs, most frequent first
        """
        if field_type not in ("tag", "data"):
            raise ValueError(f"field_type must be 'tag' or 'data', got {field_type!r}")

        records = await self._sample(index, self._config.top_values_sample_size)
        counts: Counter[str] = Counter()

        if field_type == "tag":
            for record in records:
                counts.update(v for v in record.tags.get(field_name) or [] if v)
        else:
            key = normalize_name(field_name)
            for record in records:
                value = record.data.get(key)
                if value is not None:
                    counts[as_text(value)] += 1

        return counts.most_common(limit or self._config.top_values_limit)
