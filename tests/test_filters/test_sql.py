"""Tests for PostgreSQL WHERE-clause rendering."""

from tabular_memory.filters.predicate import (
    And,
    CompiledFilter,
    Comparison,
    Not,
    Operator,
    Or,
    field_equals,
)
from tabular_memory.filters.sql import render_where


class TestRenderWhere:
    """Tests for render_where()."""

    def test_match_all(self):
        assert render_where(CompiledFilter()) == ("TRUE", [])

    def test_case_insensitive_equality(self):
        sql, params = render_where(field_equals("data.region", "West", case_insensitive=True))

        assert sql == "LOWER(body #>> $1::text[]) = $2"
        assert params == [["data", "region"], "west"]

    def test_strict_equality_binds_json(self):
        sql, params = render_where(field_equals("data.quantity", 12))

        assert sql == "(body #> $1::text[]) = $2::jsonb"
        assert params == [["data", "quantity"], "12"]

    def test_strict_string_equality_is_json_quoted(self):
        _, params = render_where(field_equals("schemaId", "schema_x"))
        assert params == [["schemaId"], '"schema_x"']

    def test_contains_and_like(self):
        compiled = CompiledFilter(
            And(
                (
                    Comparison(Operator.CONTAINS, ("data", "name"), 0, True),
                    Comparison(Operator.LIKE, ("data", "city"), 1),
                )
            ),
            ["acme", "%san%"],
        )

        sql, params = render_where(compiled)

        assert sql == (
            "(STRPOS(LOWER(body #>> $1::text[]), $2) > 0 AND "
            "(body #>> $3::text[]) LIKE $4 ESCAPE '\\')"
        )
        assert params == [["data", "name"], "acme", ["data", "city"], "%san%"]

    def test_array_contains(self):
        compiled = CompiledFilter(
            Comparison(Operator.ARRAY_CONTAINS, ("tags", "year"), 0, True), ["2024"]
        )

        sql, params = render_where(compiled)

        assert sql == (
            "EXISTS (SELECT 1 FROM jsonb_array_elements_text("
            "CASE WHEN jsonb_typeof(body #> $1::text[]) = 'array' "
            "THEN body #> $1::text[] ELSE '[]'::jsonb END"
            ") AS t(value) WHERE LOWER(t.value) = $2)"
        )
        assert params == [["tags", "year"], "2024"]

    def test_not_treats_missing_as_non_matching(self):
        compiled = field_equals(("metadata", "document_type"), "schema").negate()

        sql, _ = render_where(compiled)

        assert sql == "NOT COALESCE((body #> $1::text[]) = $2::jsonb, FALSE)"

    def test_or_with_start_index_and_column(self):
        compiled = CompiledFilter(
            Or(
                (
                    Comparison(Operator.EQ, ("id",), 0),
                    Comparison(Operator.EQ, ("id",), 1),
                )
            ),
            ["a", "b"],
        )

        sql, params = render_where(compiled, column="d.body", start_index=3)

        assert sql == "((d.body #> $3::text[]) = $4::jsonb OR (d.body #> $5::text[]) = $6::jsonb)"
        assert params == [["id"], '"a"', ["id"], '"b"']

    def test_values_never_spliced_into_sql(self):
        sql, params = render_where(
            field_equals("data.name", "x'; DROP TABLE t; --", case_insensitive=True)
        )

        assert "DROP" not in sql
        assert params[1] == "x'; drop table t; --"
