"""
Schema documents describing the columns of an imported tabular dataset.

Schemas are stored in the same containers as the rows they describe and
are told apart by ``metadata.document_type == "schema"``. Field names are
camelCase on the wire so stored documents stay readable by other tooling.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePath

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DOCUMENT_TYPE_KEY = "document_type"
SCHEMA_DOCUMENT_TYPE = "schema"

# Filter and parameter keys with this prefix address structured row fields
DATA_PREFIX = "data."

DEFAULT_PLACEHOLDER_DATASET_NAMES = ("default", "tabular")


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def _file_stem(source_file: str) -> str:
    return PurePath(source_file).stem if source_file else "unknown"


class DataType(str, Enum):
    """Column data types. Types only ever widen to STRING."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class SchemaColumn(_WireModel):
    """A single column of a dataset schema."""

    name: str = Field(..., min_length=1, description="Column name as seen in the source")
    normalized_name: str = Field(..., description="snake_case name used in filters")
    data_type: DataType = DataType.STRING
    is_required: bool = False
    description: str = ""
    common_values: list[str] = Field(
        default_factory=list,
        description="Recently observed distinct values, oldest first",
    )


class TabularSchema(_WireModel):
    """
    Schema snapshot for one import batch of a dataset.

    Each import batch gets its own immutable snapshot; the current schema
    of a dataset is the snapshot with the newest import_date.
    """

    id: str
    dataset_name: str
    source_file: str = ""
    import_date: datetime = Field(default_factory=_utc_now)
    import_batch_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    columns: list[SchemaColumn] = Field(default_factory=list)
    metadata: dict[str, str] = Field(default_factory=dict)
    partition_key: str = ""

    @classmethod
    def create(
        cls,
        dataset_name: str | None,
        source_file: str,
        placeholder_names: tuple[str, ...] | list[str] = DEFAULT_PLACEHOLDER_DATASET_NAMES,
        import_batch_id: str | None = None,
        now: datetime | None = None,
    ) -> "TabularSchema":
        """
        Build an empty schema with a fresh id and import batch id.

        Placeholder dataset names (empty, "default", "tabular", compared
        case-insensitively) are replaced by the source file's base name.
        """
        now = now or _utc_now()
        stem = _file_stem(source_file)
        effective_name = cls.effective_dataset_name(dataset_name, source_file, placeholder_names)

        schema_id = f"schema_{stem}_{now:%Y%m%d%H%M%S}_{uuid.uuid4().hex[:8]}"

        return cls(
            id=schema_id,
            dataset_name=effective_name,
            source_file=source_file,
            import_date=now,
            import_batch_id=import_batch_id or str(uuid.uuid4()),
            metadata={DOCUMENT_TYPE_KEY: SCHEMA_DOCUMENT_TYPE},
            partition_key=effective_name,
        )

    @staticmethod
    def effective_dataset_name(
        dataset_name: str | None,
        source_file: str,
        placeholder_names: tuple[str, ...] | list[str] = DEFAULT_PLACEHOLDER_DATASET_NAMES,
    ) -> str:
        """Dataset name, or the source file's base name for placeholders."""
        name = (dataset_name or "").strip()
        if not name or name.lower() in {p.lower() for p in placeholder_names}:
            return _file_stem(source_file)
        return name

    def find_column(self, name: str, normalized_name: str) -> SchemaColumn | None:
        """Find a column by raw or normalized name, ignoring case."""
        name_lower = name.lower()
        normalized_lower = normalized_name.lower()
        for column in self.columns:
            if (
                column.name.lower() == name_lower
                or column.normalized_name.lower() == normalized_lower
            ):
                return column
        return None

    def to_document(self) -> dict:
        """Serialize to the stored JSON document shape."""
        return self.model_dump(mode="json", by_alias=True)
