"""Tests for type inference, name normalization and value validation."""

from datetime import date, datetime

import pytest

from tabular_memory.schema.normalizer import (
    convert_typed_value,
    infer_type,
    normalize_name,
    validate_value,
)
from tabular_memory.schema.schemas import DataType

NAMES = [
    "CustomerName",
    "customerName",
    "Order Total ($)",
    "orderID",
    "__Weird--Name__",
    "already_normal",
    "ABC",
    "Quarter 3 Revenue",
    "e-mail address",
    "x",
    "",
]


class TestNormalizeName:
    """Tests for normalize_name()."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("CustomerName", "customer_name"),
            ("customerName", "customer_name"),
            ("Customer Name", "customer_name"),
            ("Order Total ($)", "order_total"),
            ("orderID", "order_id"),
            ("__Weird--Name__", "weird_name"),
            ("ABC", "abc"),
            ("customerName2", "customer_name2"),
            ("Quarter 3 Revenue", "quarter_3_revenue"),
            ("", ""),
        ],
    )
    def test_examples(self, raw, expected):
        """Known inputs normalize to snake_case."""
        assert normalize_name(raw) == expected

    @pytest.mark.parametrize("raw", NAMES)
    def test_idempotent(self, raw):
        """Normalizing twice equals normalizing once."""
        once = normalize_name(raw)
        assert normalize_name(once) == once

    def test_only_separators_is_empty(self):
        """A name made of separators normalizes to empty."""
        assert normalize_name("  --  ") == ""


class TestInferType:
    """Tests for infer_type()."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("true", DataType.BOOLEAN),
            ("False", DataType.BOOLEAN),
            ("42", DataType.NUMBER),
            ("-3.5", DataType.NUMBER),
            ("1e6", DataType.NUMBER),
            ("2024-01-05", DataType.DATE),
            ("2024-01-05T10:30:00", DataType.DATE),
            ("01/05/2024", DataType.DATE),
            ("Jan 5, 2024", DataType.DATE),
            ("hello", DataType.STRING),
            ("nan", DataType.STRING),
            ("", DataType.STRING),
            (None, DataType.STRING),
        ],
    )
    def test_string_forms(self, value, expected):
        """String values are judged boolean, then number, then date."""
        assert infer_type(value) == expected

    def test_native_values(self):
        """Native Python values map directly."""
        assert infer_type(True) == DataType.BOOLEAN
        assert infer_type(7) == DataType.NUMBER
        assert infer_type(2.5) == DataType.NUMBER
        assert infer_type(date(2024, 1, 5)) == DataType.DATE
        assert infer_type(datetime(2024, 1, 5, 12, 0)) == DataType.DATE


class TestValidateValue:
    """Tests for validate_value()."""

    def test_string_accepts_anything(self):
        assert validate_value("anything at all", DataType.STRING)
        assert validate_value(42, "string")

    def test_number(self):
        assert validate_value("12.5", DataType.NUMBER)
        assert validate_value(3, DataType.NUMBER)
        assert not validate_value("abc", DataType.NUMBER)
        assert not validate_value(True, DataType.NUMBER)

    def test_boolean(self):
        assert validate_value("TRUE", DataType.BOOLEAN)
        assert validate_value(False, DataType.BOOLEAN)
        assert not validate_value("yes", DataType.BOOLEAN)

    def test_date(self):
        assert validate_value("2024-01-05", DataType.DATE)
        assert validate_value(date(2024, 1, 5), DataType.DATE)
        assert not validate_value("not a date", DataType.DATE)

    @pytest.mark.parametrize("data_type", list(DataType))
    def test_none_is_valid_for_every_type(self, data_type):
        assert validate_value(None, data_type)

    def test_type_aliases(self):
        """Alias type names map onto the base types."""
        assert validate_value("12", "integer")
        assert not validate_value("x", "integer")
        assert validate_value("2024-01-05", "datetime")

    def test_unknown_type_accepts(self):
        assert validate_value("whatever", "currency")

    def test_lists_validate_every_item(self):
        assert validate_value(["1", "2"], DataType.NUMBER)
        assert not validate_value(["1", "x"], DataType.NUMBER)


class TestConvertTypedValue:
    """Tests for convert_typed_value()."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("NULL", None),
            ("", None),
            (None, None),
            ("true", True),
            ("False", False),
            ("42", 42),
            ("-7", -7),
            ("3.5", 3.5),
            ("Bob", "Bob"),
            ("null", "null"),
        ],
    )
    def test_conversion(self, text, expected):
        result = convert_typed_value(text)
        assert result == expected
        assert type(result) is type(expected)
