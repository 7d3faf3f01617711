"""Type inference, column-name normalization and value validation.

Shared by the schema registry, the filter compiler and the record codec
so that a column name means the same thing everywhere.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

from tabular_memory.schema.schemas import DataType

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]")
_UNDERSCORE_RUN = re.compile(r"_{2,}")

_INTEGER = re.compile(r"^[+-]?\d+$")
_DECIMAL = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

# Tried in order after ISO 8601
_DATE_FORMATS: tuple[str, ...] = (
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %I:%M:%S %p",
    "%Y/%m/%d",
    "%d-%b-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d %Y",
    "%B %d %Y",
)

# Type names accepted by validate_value besides the DataType members
_TYPE_ALIASES: dict[str, DataType] = {
    "integer": DataType.NUMBER,
    "int": DataType.NUMBER,
    "float": DataType.NUMBER,
    "double": DataType.NUMBER,
    "bool": DataType.BOOLEAN,
    "datetime": DataType.DATE,
}


def normalize_name(raw: str) -> str:
    """
    Canonical snake_case form of a column name.

    "CustomerName" -> "customer_name", "Order Total ($)" -> "order_total".
    Applying it twice gives the same result as applying it once.
    """
    if not raw:
        return ""
    name = _CAMEL_BOUNDARY.sub("_", raw).lower()
    name = _NON_ALNUM.sub("_", name)
    name = _UNDERSCORE_RUN.sub("_", name)
    return name.strip("_")


def parse_bool(text: str) -> bool | None:
    """Parse "true"/"false" (any case, surrounding whitespace allowed)."""
    lowered = text.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return None


def is_number(text: str) -> bool:
    """True for finite decimal notation such as "42", "-3.5" or "1e6"."""
    return bool(_DECIMAL.match(text.strip()))


def parse_date(text: str) -> datetime | None:
    """Parse ISO 8601 or a common US/long date form."""
    candidate = text.strip()
    if not candidate:
        return None
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(candidate, fmt)
        except ValueError:
            continue
    return None


def infer_type(value: Any) -> DataType:
    """
    Infer the column type of a single observed value.

    Native values map directly; anything else is judged by its string
    form: boolean first, then numeric, then date, else string.
    """
    if value is None:
        return DataType.STRING
    if isinstance(value, bool):
        return DataType.BOOLEAN
    if isinstance(value, (int, float)):
        return DataType.NUMBER
    if isinstance(value, (date, datetime)):
        return DataType.DATE

    text = str(value).strip()
    if not text:
        return DataType.STRING
    if parse_bool(text) is not None:
        return DataType.BOOLEAN
    if is_number(text):
        return DataType.NUMBER
    if parse_date(text) is not None:
        return DataType.DATE
    return DataType.STRING


def resolve_type(data_type: DataType | str) -> DataType | None:
    """Map a type name (including aliases like "integer") to a DataType."""
    if isinstance(data_type, DataType):
        return data_type
    lowered = str(data_type).strip().lower()
    try:
        return DataType(lowered)
    except ValueError:
        return _TYPE_ALIASES.get(lowered)


def validate_value(value: Any, data_type: DataType | str) -> bool:
    """
    Check whether a value is acceptable for a column type.

    None is valid for every type and unknown type names accept anything.
    A list is valid when every item is.
    """
    if value is None:
        return True
    if isinstance(value, (list, tuple)):
        return all(validate_value(item, data_type) for item in value)

    resolved = resolve_type(data_type)
    if resolved is None or resolved is DataType.STRING:
        return True

    if isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value)

    if resolved is DataType.NUMBER:
        return not isinstance(value, bool) and is_number(text)
    if resolved is DataType.BOOLEAN:
        return parse_bool(text) is not None
    if resolved is DataType.DATE:
        return isinstance(value, (date, datetime)) or parse_date(text) is not None
    return True


def convert_typed_value(text: str | None) -> Any:
    """
    Convert a rendered cell value back to a typed value.

    "NULL" and empty become None, then boolean, integer and float are
    tried in that order; anything else stays a string.
    """
    if text is None or text == "" or text == "NULL":
        return None
    flag = parse_bool(text)
    if flag is not None:
        return flag
    stripped = text.strip()
    if _INTEGER.match(stripped):
        return int(stripped)
    if is_number(stripped):
        return float(stripped)
    return text
