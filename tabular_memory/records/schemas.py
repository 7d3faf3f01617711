"""
Record models: the external memory record and the stored tabular record.

External records come from (and go back to) the memory host; stored
records are what the document store keeps. Field names of stored
records are camelCase on the wire.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Tags
DATASET_NAME_TAG = "dataset_name"
FILE_ID_TAG = "__file_id"
CUSTOM_DATA_TAG = "__custom_tabular_data_tag"

# Payload keys written by the tabular decoders
TEXT_FIELD = "text"
CUSTOM_DATA_FIELD = "__custom_tabular_data"
WORKSHEET_FIELD = "worksheetName"
ROW_NUMBER_FIELD = "rowNumber"
FILE_FIELD = "file"
SCHEMA_ID_FIELD = "schema_id"
IMPORT_BATCH_ID_FIELD = "import_batch_id"

# Payload keys written when decoding stored records
TABULAR_DATA_FIELD = "tabular_data"
SOURCE_INFO_FIELD = "source_info"

# Provenance keys in TabularRecord.source
WORKSHEET_KEY = "_worksheet"
ROW_NUMBER_KEY = "_rowNumber"


@dataclass
class MemoryRecord:
    """
    Record as exchanged with the memory host.

    Attributes:
        id: Raw record id, e.g. "d=report//p=part-3"
        tags: Multi-valued categorical tags
        payload: Free-form payload ("text", "file", decoder fields)
        vector: Embedding, if any
    """

    id: str
    tags: dict[str, list[str | None]] = field(default_factory=dict)
    payload: dict[str, Any] = field(default_factory=dict)
    vector: list[float] | None = None

    def first_tag(self, name: str) -> str | None:
        """First non-empty value of a tag."""
        for value in self.tags.get(name) or []:
            if value:
                return value
        return None


class TabularRecord(BaseModel):
    """A row as stored in a document store container."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str = Field(..., min_length=1, description="Storage-safe encoded id")
    partition_key: str = ""
    payload: dict[str, Any] = Field(default_factory=dict)
    tags: dict[str, list[str | None]] = Field(default_factory=dict)
    data: dict[str, Any] = Field(default_factory=dict)
    source: dict[str, str] = Field(default_factory=dict)
    schema_id: str = ""
    import_batch_id: str = ""
    vector: list[float] | None = None

    @property
    def worksheet(self) -> str | None:
        return self.source.get(WORKSHEET_KEY)

    @property
    def row_number(self) -> int | None:
        value = self.source.get(ROW_NUMBER_KEY)
        return int(value) if value and value.isdigit() else None

    def to_document(self) -> dict[str, Any]:
        """Serialize to the stored JSON document shape."""
        return self.model_dump(mode="json", by_alias=True)
