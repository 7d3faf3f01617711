"""
Record models and conversion.

Main components:
- MemoryRecord: record shape exchanged with the memory host
- TabularRecord: stored record with structured data and provenance
- RecordCodec: build stored records, convert them back
- recover_from_text: parse data back out of a record's sentence text
"""

from tabular_memory.records.codec import (
    RecordCodec,
    decode_id,
    encode_id,
    extract_tabular_data,
    partition_key_of,
)
from tabular_memory.records.schemas import MemoryRecord, TabularRecord
from tabular_memory.records.text_recovery import (
    RecoveredRecord,
    recover_from_text,
    render_record_text,
)

__all__ = [
    "MemoryRecord",
    "TabularRecord",
    "RecordCodec",
    "RecoveredRecord",
    "decode_id",
    "encode_id",
    "extract_tabular_data",
    "partition_key_of",
    "recover_from_text",
    "render_record_text",
]
