"""Recover structured row data from its sentence rendering.

Tabular decoders render each row as text for embedding:

    Record from worksheet Sheet1, row 3: Name is Bob. Age is 42.

When a record arrives without its structured payload, this module
parses that sentence back into a data map and a provenance map.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import structlog

from tabular_memory.records.schemas import (
    IMPORT_BATCH_ID_FIELD,
    ROW_NUMBER_KEY,
    SCHEMA_ID_FIELD,
    WORKSHEET_KEY,
)
from tabular_memory.schema.normalizer import convert_typed_value, normalize_name

logger = structlog.get_logger(__name__)

# Worksheet names may contain commas; the name ends at the first ", row N:".
# Bounded so a corrupted blob cannot make the match run away.
HEADER_PATTERN = re.compile(
    r"Record from worksheet (?P<worksheet>[^\n]{1,256}?), row (?P<row>\d{1,9}):"
)

_PROVENANCE_KEYS = {SCHEMA_ID_FIELD, IMPORT_BATCH_ID_FIELD}


@dataclass
class RecoveredRecord:
    """
    Result of parsing record text.

    Attributes:
        data: Normalized field name -> typed value
        source: Provenance (worksheet, row number, schema/batch ids)
        found: Whether a record header was present
        truncated: Whether a second concatenated record was cut off
    """

    data: dict[str, Any] = field(default_factory=dict)
    source: dict[str, str] = field(default_factory=dict)
    found: bool = False
    truncated: bool = False


def render_record_text(worksheet: str, row_number: int, row: dict[str, Any]) -> str:
    """
    Render a row the way the tabular decoders do.

    Keys starting with "_" are internal and skipped; None renders as NULL.
    """
    sentences = []
    for key, value in row.items():
        if key.startswith("_"):
            continue
        rendered = "NULL" if value is None else str(value)
        sentences.append(f"{key} is {rendered}.")
    header = f"Record from worksheet {worksheet}, row {row_number}:"
    return " ".join([header, *sentences])


def recover_from_text(text: str | None) -> RecoveredRecord:
    """
    Parse one record's data and provenance out of its sentence text.

    If the text holds more than one record header (concatenated input),
    only the first record is parsed. Text without a header yields an
    empty, not-found result.
    """
    if not text:
        return RecoveredRecord()

    header = HEADER_PATTERN.search(text)
    if header is None:
        logger.debug("No record header in text", length=len(text))
        return RecoveredRecord()

    worksheet = header.group("worksheet").strip()
    row_number = str(int(header.group("row")))
    body = text[header.end():]

    result = RecoveredRecord(found=True)
    second = HEADER_PATTERN.search(body)
    if second is not None:
        body = body[: second.start()]
        result.truncated = True
        logger.warning(
            "Concatenated record text, keeping first record only",
            worksheet=worksheet,
            row=row_number,
            dropped_chars=len(text) - header.end() - second.start(),
        )

    body = body.strip()
    if body and not body.endswith("."):
        body += "."

    for token in body.split(". "):
        token = token.strip()
        if token.endswith("."):
            token = token[:-1]
        key, sep, raw_value = token.partition(" is ")
        key = key.strip()
        if not sep or not key:
            continue

        if key.lower() in _PROVENANCE_KEYS:
            result.source[key.lower()] = raw_value.strip()
            continue

        name = normalize_name(key)
        if not name:
            continue
        result.data[name] = convert_typed_value(raw_value.strip())

    result.source[WORKSHEET_KEY] = worksheet
    result.source[ROW_NUMBER_KEY] = row_number
    return result
