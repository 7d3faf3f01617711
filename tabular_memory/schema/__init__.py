"""
Dataset schema management.

Main components:
- TabularSchema / SchemaColumn: stored schema documents
- normalize_name, infer_type, validate_value: shared type and name rules
- SchemaRegistry (tabular_memory.schema.registry): create, merge, store,
  look up and validate schemas
"""

from tabular_memory.schema.schemas import (
    DATA_PREFIX,
    DOCUMENT_TYPE_KEY,
    SCHEMA_DOCUMENT_TYPE,
    DataType,
    SchemaColumn,
    TabularSchema,
)
from tabular_memory.schema.normalizer import (
    convert_typed_value,
    infer_type,
    normalize_name,
    validate_value,
)
from tabular_memory.schema.config import SchemaConfig

__all__ = [
    "DATA_PREFIX",
    "DOCUMENT_TYPE_KEY",
    "SCHEMA_DOCUMENT_TYPE",
    "DataType",
    "SchemaColumn",
    "TabularSchema",
    "SchemaConfig",
    "convert_typed_value",
    "infer_type",
    "normalize_name",
    "validate_value",
]
