"""
Render compiled filters as PostgreSQL boolean expressions.

Documents live in a JSONB column. Field paths and literals are always
bound as positional parameters ($n); nothing from a filter is spliced
into the SQL text.
"""

import json
from typing import Any

from tabular_memory.filters.predicate import (
    And,
    CompiledFilter,
    Comparison,
    Not,
    Operator,
    Or,
    Predicate,
)


class _Renderer:
    def __init__(self, column: str, parameters: list[Any], start_index: int):
        self._column = column
        self._literals = parameters
        self._next_index = start_index
        self.params: list[Any] = []

    def _bind(self, value: Any) -> str:
        placeholder = f"${self._next_index}"
        self.params.append(value)
        self._next_index += 1
        return placeholder

    def render(self, predicate: Predicate) -> str:
        if isinstance(predicate, Comparison):
            return self._comparison(predicate)
        if isinstance(predicate, And):
            return "(" + " AND ".join(self.render(p) for p in predicate.operands) + ")"
        if isinstance(predicate, Or):
            return "(" + " OR ".join(self.render(p) for p in predicate.operands) + ")"
        if isinstance(predicate, Not):
            # Missing fields yield NULL; NOT must still treat them as non-matching
            return f"NOT COALESCE({self.render(predicate.operand)}, FALSE)"
        raise TypeError(f"Unknown predicate node: {type(predicate).__name__}")

    def _comparison(self, comparison: Comparison) -> str:
        value = self._literals[comparison.param]
        path = self._bind(list(comparison.field))
        col = self._column

        if comparison.op is Operator.ARRAY_CONTAINS:
            element = "LOWER(t.value)" if comparison.case_insensitive else "t.value"
            literal = self._bind(str(value))
            return (
                "EXISTS (SELECT 1 FROM jsonb_array_elements_text("
                f"CASE WHEN jsonb_typeof({col} #> {path}::text[]) = 'array' "
                f"THEN {col} #> {path}::text[] ELSE '[]'::jsonb END"
                f") AS t(value) WHERE {element} = {literal})"
            )

        if comparison.op is Operator.EQ and not comparison.case_insensitive:
            literal = self._bind(json.dumps(value))
            return f"({col} #> {path}::text[]) = {literal}::jsonb"

        text = f"({col} #>> {path}::text[])"
        if comparison.case_insensitive:
            text = f"LOWER{text}"
        literal = self._bind(str(value))

        if comparison.op is Operator.EQ:
            return f"{text} = {literal}"
        if comparison.op is Operator.CONTAINS:
            return f"STRPOS({text}, {literal}) > 0"
        return f"{text} LIKE {literal} ESCAPE '\\'"


def render_where(
    compiled: CompiledFilter,
    column: str = "body",
    start_index: int = 1,
) -> tuple[str, list[Any]]:
    """
    Render a compiled filter as a WHERE-clause fragment.

    Args:
        compiled: Output of FilterCompiler.compile()
        column: JSONB column holding the documents
        start_index: Number of the first placeholder to use

    Returns:
        (sql, params) where sql is "TRUE" for a match-all filter
    """
    if compiled.predicate is None:
        return "TRUE", []
    renderer = _Renderer(column, compiled.parameters, start_index)
    sql = renderer.render(compiled.predicate)
    return sql, renderer.params
