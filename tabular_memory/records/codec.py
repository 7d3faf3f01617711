"""
Conversion between external memory records and stored tabular records.

Structured row data normally travels in the ``__custom_tabular_data``
payload field. When it is missing, data and provenance are recovered
from the record's sentence text. Explicit values always win over
payload values, and payload values win over recovered ones.
"""

import base64
import binascii
import json
import math
from typing import Any

import structlog

from tabular_memory.records.schemas import (
    CUSTOM_DATA_FIELD,
    CUSTOM_DATA_TAG,
    FILE_ID_TAG,
    IMPORT_BATCH_ID_FIELD,
    ROW_NUMBER_FIELD,
    ROW_NUMBER_KEY,
    SCHEMA_ID_FIELD,
    SOURCE_INFO_FIELD,
    TABULAR_DATA_FIELD,
    TEXT_FIELD,
    WORKSHEET_FIELD,
    WORKSHEET_KEY,
    MemoryRecord,
    TabularRecord,
)
from tabular_memory.records.text_recovery import RecoveredRecord, recover_from_text
from tabular_memory.schema.normalizer import normalize_name

logger = structlog.get_logger(__name__)


def encode_id(raw_id: str) -> str:
    """
    Storage-safe, reversible id encoding.

    UTF-8 bytes as URL-safe base64 without padding, so the result only
    uses A-Z a-z 0-9 - and _.
    """
    encoded = base64.urlsafe_b64encode(raw_id.encode("utf-8")).decode("ascii")
    return encoded.rstrip("=")


def decode_id(encoded_id: str) -> str:
    """Inverse of encode_id(). Raises ValueError on malformed input."""
    padded = encoded_id + "=" * (-len(encoded_id) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError) as e:
        raise ValueError(f"Invalid encoded id: {encoded_id!r}") from e


def partition_key_of(raw_id: str) -> str:
    """
    Grouping key embedded in a record id.

    Ids look like "d=<document>//p=<part>", sometimes with an
    "f=<file>" segment. The file segment wins, then the document
    segment; ids without either are their own partition.
    """
    segments: dict[str, str] = {}
    for segment in raw_id.split("//"):
        key, sep, value = segment.partition("=")
        if sep and value:
            segments.setdefault(key.strip(), value)
    return segments.get("f") or segments.get("d") or raw_id


def extract_tabular_data(payload: dict[str, Any]) -> dict[str, Any] | None:
    """Row data from the payload's JSON field, or None if absent or invalid."""
    raw = payload.get(CUSTOM_DATA_FIELD)
    if raw is None:
        return None
    if isinstance(raw, dict):
        return dict(raw)
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed tabular data payload", field=CUSTOM_DATA_FIELD)
        return None
    return parsed if isinstance(parsed, dict) else None


def first_string(value: Any) -> str:
    """Payload values may be a string or a list of strings."""
    if isinstance(value, (list, tuple)):
        value = next((v for v in value if v), None)
    return str(value) if value not in (None, "") else ""


def _normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in data.items():
        name = normalize_name(key)
        if name:
            normalized[name] = value
    return normalized


class RecordCodec:
    """
    Builds stored records from external ones and back.

    Args:
        vector_size: Expected embedding dimensionality; None skips the check
    """

    def __init__(self, vector_size: int | None = None):
        self._vector_size = vector_size

    def partition_key_for(self, record: MemoryRecord) -> str:
        """Partition key of an external record (file id tag, else from the id)."""
        return record.first_tag(FILE_ID_TAG) or partition_key_of(record.id)

    def _validate_vector(self, vector: list[Any] | None) -> list[float] | None:
        if vector is None or len(vector) == 0:
            return None
        values = []
        for item in vector:
            if isinstance(item, bool) or not isinstance(item, (int, float)):
                raise ValueError(f"Vector contains a non-numeric value: {item!r}")
            if not math.isfinite(item):
                raise ValueError(f"Vector contains a non-finite value: {item!r}")
            values.append(float(item))
        if self._vector_size is not None and len(values) != self._vector_size:
            raise ValueError(
                f"Vector has {len(values)} dimensions, expected {self._vector_size}"
            )
        return values

    def build_record(
        self,
        external: MemoryRecord,
        data: dict[str, Any] | None = None,
        source: dict[str, Any] | None = None,
        schema_id: str | None = None,
        import_batch_id: str | None = None,
    ) -> TabularRecord:
        """
        Build the stored form of an external record.

        Raises:
            ValueError: If the vector is malformed
        """
        payload = dict(external.payload)
        vector = self._validate_vector(external.vector)

        payload_data = extract_tabular_data(payload)
        payload_source: dict[str, str] = {}
        if payload.get(WORKSHEET_FIELD) not in (None, ""):
            payload_source[WORKSHEET_KEY] = str(payload[WORKSHEET_FIELD])
        if payload.get(ROW_NUMBER_FIELD) not in (None, ""):
            payload_source[ROW_NUMBER_KEY] = str(payload[ROW_NUMBER_FIELD])
        explicit_source = {k: str(v) for k, v in (source or {}).items() if v is not None}

        schema_id = schema_id or first_string(payload.get(SCHEMA_ID_FIELD))
        import_batch_id = import_batch_id or first_string(payload.get(IMPORT_BATCH_ID_FIELD))

        known_source = {**payload_source, **explicit_source}
        needs_recovery = (
            (data is None and payload_data is None)
            or not schema_id
            or not import_batch_id
            or WORKSHEET_KEY not in known_source
            or ROW_NUMBER_KEY not in known_source
        )
        recovered = (
            recover_from_text(first_string(payload.get(TEXT_FIELD)))
            if needs_recovery
            else RecoveredRecord()
        )

        if data is not None:
            record_data = data
        elif payload_data is not None:
            record_data = payload_data
        else:
            record_data = recovered.data

        record_source = {**recovered.source, **known_source}
        schema_id = schema_id or record_source.get(SCHEMA_ID_FIELD, "")
        import_batch_id = import_batch_id or record_source.get(IMPORT_BATCH_ID_FIELD, "")

        if schema_id:
            record_source[SCHEMA_ID_FIELD] = schema_id
            payload[SCHEMA_ID_FIELD] = schema_id
        if import_batch_id:
            record_source[IMPORT_BATCH_ID_FIELD] = import_batch_id
            payload[IMPORT_BATCH_ID_FIELD] = import_batch_id

        tags = {
            name: list(values)
            for name, values in external.tags.items()
            if name != CUSTOM_DATA_TAG
        }

        return TabularRecord(
            id=encode_id(external.id),
            partition_key=self.partition_key_for(external),
            payload=payload,
            tags=tags,
            data=_normalize_keys(record_data),
            source=record_source,
            schema_id=schema_id,
            import_batch_id=import_batch_id,
            vector=vector,
        )

    def with_schema(
        self,
        record: TabularRecord,
        schema_id: str,
        import_batch_id: str,
    ) -> TabularRecord:
        """Copy of a record stamped with the schema snapshot it belongs to."""
        ids = {SCHEMA_ID_FIELD: schema_id, IMPORT_BATCH_ID_FIELD: import_batch_id}
        return record.model_copy(
            update={
                "schema_id": schema_id,
                "import_batch_id": import_batch_id,
                "source": {**record.source, **ids},
                "payload": {**record.payload, **ids},
            }
        )

    def to_external(self, record: TabularRecord, include_vector: bool = False) -> MemoryRecord:
        """Convert a stored record back to the host's record shape."""
        payload = dict(record.payload)
        payload[TABULAR_DATA_FIELD] = json.dumps(record.data, default=str)
        payload[SOURCE_INFO_FIELD] = json.dumps(record.source)
        if record.schema_id:
            payload[SCHEMA_ID_FIELD] = record.schema_id
        if record.import_batch_id:
            payload[IMPORT_BATCH_ID_FIELD] = record.import_batch_id

        vector = list(record.vector) if include_vector and record.vector else None
        return MemoryRecord(
            id=decode_id(record.id),
            tags={name: list(values) for name, values in record.tags.items()},
            payload=payload,
            vector=vector,
        )

    def from_document(self, document: dict[str, Any]) -> TabularRecord:
        """Validate a stored document as a TabularRecord."""
        return TabularRecord.model_validate(document)
