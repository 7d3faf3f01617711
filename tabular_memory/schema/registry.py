"""
Schema registry: create, merge, store and look up dataset schemas.

Schema documents share containers with the rows they describe and are
marked with ``metadata.document_type = "schema"``. Lookups search every
container; a container that disappears mid-search counts as empty.

Versioning policy: every import batch gets its own schema snapshot,
seeded with the columns of the dataset's latest snapshot. Rows of the
same batch merge into that batch's snapshot. The current schema of a
dataset is the snapshot with the newest import date. Each store call is
a read-merge-write; concurrent writers to one snapshot are last-write-wins.
"""

from typing import Any

import structlog

from tabular_memory.filters.predicate import CompiledFilter, field_equals
from tabular_memory.schema.config import SchemaConfig
from tabular_memory.schema.normalizer import infer_type, normalize_name, validate_value
from tabular_memory.schema.schemas import (
    DATA_PREFIX,
    DOCUMENT_TYPE_KEY,
    SCHEMA_DOCUMENT_TYPE,
    DataType,
    SchemaColumn,
    TabularSchema,
)
from tabular_memory.vectorstore.base import ContainerNotFoundError, DocumentStore
from tabular_memory.vectorstore.config import VectorStoreConfig

logger = structlog.get_logger(__name__)


class SchemaRegistry:
    """
    Persistence and validation for dataset schemas.

    Args:
        store: Document store holding schema and row documents
        config: Schema management settings
        vector_size: Dimensionality used if the registry has to create
            a container for schema documents
    """

    def __init__(
        self,
        store: DocumentStore,
        config: SchemaConfig | None = None,
        vector_size: int | None = None,
    ):
        self._store = store
        self._config = config or SchemaConfig()
        self._vector_size = vector_size or VectorStoreConfig().vector_size

    @property
    def config(self) -> SchemaConfig:
        return self._config

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    # ------------------------------------------------------------------
    # Schema construction
    # ------------------------------------------------------------------

    def create_schema(
        self,
        dataset_name: str | None,
        source_file: str,
        import_batch_id: str | None = None,
    ) -> TabularSchema:
        """New empty schema with fresh id and import batch id."""
        return TabularSchema.create(
            dataset_name,
            source_file,
            placeholder_names=self._config.placeholder_dataset_names,
            import_batch_id=import_batch_id,
        )

    def merge_columns(self, schema: TabularSchema, row: dict[str, Any]) -> bool:
        """
        Merge one observed row into the schema's columns.

        Known columns record the value among their common values and
        widen to string on a type disagreement; unknown fields become
        new columns. Returns True if the schema changed.
        """
        changed = False
        capacity = self._config.common_values_capacity

        for field_name, value in row.items():
            normalized = normalize_name(field_name)
            if not normalized:
                logger.debug("Skipping unnamed column", field=field_name)
                continue

            observed = value is not None and str(value).strip() != ""
            inferred = infer_type(value)
            column = schema.find_column(field_name, normalized)

            if column is None:
                column = SchemaColumn(
                    name=field_name,
                    normalized_name=normalized,
                    data_type=inferred,
                )
                if observed and capacity > 0:
                    column.common_values.append(str(value))
                schema.columns.append(column)
                changed = True
                continue

            if observed and capacity > 0:
                text = str(value)
                if text not in column.common_values:
                    column.common_values.append(text)
                    while len(column.common_values) > capacity:
                        column.common_values.pop(0)
                    changed = True

            if observed and inferred != column.data_type:
                if column.data_type is not DataType.STRING:
                    logger.debug(
                        "Widening column type",
                        column=column.name,
                        from_type=column.data_type.value,
                        observed=inferred.value,
                    )
                    column.data_type = DataType.STRING
                    changed = True

        return changed

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _schema_container(self, container: str | None) -> str:
        if container:
            return container
        if self._config.container_name:
            await self._store.create_container(self._config.container_name, self._vector_size)
            return self._config.container_name
        containers = await self._store.list_containers()
        if containers:
            return containers[0]
        await self._store.create_container(self._config.default_container, self._vector_size)
        return self._config.default_container

    async def store_schema(self, schema: TabularSchema, container: str | None = None) -> str:
        """
        Persist a schema document.

        Returns:
            The schema id, or "" when schema management is disabled
        """
        if not self._config.enabled:
            logger.debug("Schema management disabled, not storing schema", schema_id=schema.id)
            return ""

        schema.metadata[DOCUMENT_TYPE_KEY] = SCHEMA_DOCUMENT_TYPE
        schema.partition_key = schema.dataset_name

        target = await self._schema_container(container)
        await self._store.upsert(target, schema.to_document())

        logger.info(
            "Schema stored",
            schema_id=schema.id,
            dataset=schema.dataset_name,
            container=target,
            columns=len(schema.columns),
        )
        return schema.id

    async def begin_import(
        self,
        dataset_name: str | None,
        source_file: str,
        import_batch_id: str | None = None,
        container: str | None = None,
    ) -> TabularSchema:
        """
        Start a schema snapshot for a new import batch.

        Columns of the dataset's latest snapshot are carried forward so
        type widening and common values survive across imports.
        """
        schema = self.create_schema(dataset_name, source_file, import_batch_id)

        previous = await self.get_schema_by_dataset(schema.dataset_name)
        if previous is not None:
            schema.columns = [c.model_copy(deep=True) for c in previous.columns]

        await self.store_schema(schema, container)
        return schema

    async def schema_for_import(
        self,
        dataset_name: str | None,
        source_file: str,
        import_batch_id: str | None = None,
        container: str | None = None,
    ) -> TabularSchema:
        """
        Schema snapshot that rows of an import should merge into.

        With a batch id: that batch's snapshot, started if missing.
        Without one: the dataset's latest snapshot, or a new one if the
        dataset has none yet.
        """
        if import_batch_id:
            existing = await self.get_schema_by_import_batch(import_batch_id)
        else:
            name = TabularSchema.effective_dataset_name(
                dataset_name, source_file, self._config.placeholder_dataset_names
            )
            existing = await self.get_schema_by_dataset(name)
        if existing is not None:
            return existing
        return await self.begin_import(dataset_name, source_file, import_batch_id, container)

    async def record_row(
        self,
        dataset_name: str | None,
        source_file: str,
        row: dict[str, Any],
        import_batch_id: str | None = None,
        container: str | None = None,
    ) -> TabularSchema | None:
        """
        Fold an imported row into its batch's schema snapshot.

        Returns None when schema management or extraction is off, or
        when there is no dataset name or no data to learn from.
        """
        if not (self._config.enabled and self._config.extract_on_import):
            return None
        if not dataset_name or not row:
            return None

        schema = await self.schema_for_import(
            dataset_name, source_file, import_batch_id, container
        )
        if self.merge_columns(schema, row):
            await self.store_schema(schema, container)
        return schema

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _find(self, criteria: CompiledFilter | None = None) -> list[TabularSchema]:
        if not self._config.enabled:
            return []

        compiled = field_equals(("metadata", DOCUMENT_TYPE_KEY), SCHEMA_DOCUMENT_TYPE)
        if criteria is not None:
            compiled = compiled.conjoin(criteria)

        schemas: list[TabularSchema] = []
        for container in await self._store.list_containers():
            try:
                documents = await self._store.query(container, compiled)
            except ContainerNotFoundError:
                logger.debug("Container vanished during schema search", container=container)
                continue
            schemas.extend(TabularSchema.model_validate(doc) for doc in documents)
        return schemas

    async def get_schema_by_dataset(self, dataset_name: str) -> TabularSchema | None:
        """Latest schema snapshot of a dataset (name compared case-insensitively)."""
        schemas = await self._find(
            field_equals("datasetName", dataset_name, case_insensitive=True)
        )
        if not schemas:
            return None
        return max(schemas, key=lambda s: s.import_date)

    async def get_schema_by_id(self, schema_id: str) -> TabularSchema | None:
        schemas = await self._find(field_equals("id", schema_id))
        return schemas[0] if schemas else None

    async def get_schema_by_import_batch(self, import_batch_id: str) -> TabularSchema | None:
        schemas = await self._find(field_equals("importBatchId", import_batch_id))
        return schemas[0] if schemas else None

    async def list_schemas(self) -> list[TabularSchema]:
        """All schema snapshots, newest first."""
        schemas = await self._find()
        return sorted(schemas, key=lambda s: s.import_date, reverse=True)

    async def get_schemas_by_source_file(self, source_file: str) -> list[TabularSchema]:
        schemas = await self._find(field_equals("sourceFile", source_file))
        return sorted(schemas, key=lambda s: s.import_date, reverse=True)

    async def list_dataset_names(self) -> list[str]:
        schemas = await self._find()
        return sorted({s.dataset_name for s in schemas})

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    async def validate_parameters(
        self,
        dataset_name: str,
        params: dict[str, Any],
    ) -> tuple[dict[str, Any], list[str]]:
        """
        Check filter parameters against the dataset schema.

        Known fields are rewritten to their normalized column names.
        Unknown fields and ill-typed values are kept with a warning, so
        a bad parameter never silently widens into "match all".

        Returns:
            (validated parameters, warnings)
        """
        if not self._config.enabled:
            return dict(params), ["Schema management is disabled. Parameters not validated."]

        schema = await self.get_schema_by_dataset(dataset_name)
        if schema is None:
            return dict(params), [
                f"No schema found for dataset '{dataset_name}'. Parameters not validated."
            ]

        validated: dict[str, Any] = {}
        warnings: list[str] = []

        for key, value in params.items():
            has_prefix = key.startswith(DATA_PREFIX)
            field_name = key[len(DATA_PREFIX):] if has_prefix else key

            column = schema.find_column(field_name, normalize_name(field_name))
            if column is None:
                warnings.append(
                    f"Field '{field_name}' not found in schema for dataset '{dataset_name}'."
                )
                validated[key] = value
                continue

            if not validate_value(value, column.data_type):
                warnings.append(
                    f"Value '{value}' is not valid for field '{field_name}' "
                    f"of type '{column.data_type.value}'."
                )

            new_key = column.normalized_name
            if has_prefix:
                new_key = f"{DATA_PREFIX}{new_key}"
            validated[new_key] = value

        if warnings:
            logger.warning(
                "Parameter validation warnings",
                dataset=dataset_name,
                count=len(warnings),
            )
        return validated, warnings
