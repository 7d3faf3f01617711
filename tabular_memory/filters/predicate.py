"""
Backend-neutral predicate tree for compiled filters.

A compiled filter is a tree of boolean nodes over field comparisons plus
an ordered list of bound literal values. Comparisons refer to their
literal by index, so a backend can bind parameters instead of splicing
values into its query language.
"""

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class Operator(str, Enum):
    """Comparison operators understood by every store backend."""

    EQ = "eq"
    CONTAINS = "contains"
    LIKE = "like"
    ARRAY_CONTAINS = "array_contains"


@dataclass(frozen=True)
class Comparison:
    """
    Compare the value at a document path with a bound parameter.

    Attributes:
        op: Comparison operator
        field: Path into the document, e.g. ("data", "customer_name")
        param: Index into CompiledFilter.parameters
        case_insensitive: Lowercase the document value before comparing
            (the bound parameter is already lowercased by the compiler)
    """

    op: Operator
    field: tuple[str, ...]
    param: int
    case_insensitive: bool = False


@dataclass(frozen=True)
class And:
    operands: tuple["Predicate", ...]


@dataclass(frozen=True)
class Or:
    operands: tuple["Predicate", ...]


@dataclass(frozen=True)
class Not:
    operand: "Predicate"


Predicate = Union[Comparison, And, Or, Not]


def all_of(operands: list[Predicate]) -> Predicate | None:
    """AND the operands, collapsing the single-operand case."""
    if not operands:
        return None
    if len(operands) == 1:
        return operands[0]
    return And(tuple(operands))


def any_of(operands: list[Predicate]) -> Predicate | None:
    """OR the operands, collapsing the single-operand case."""
    if not operands:
        return None
    if len(operands) == 1:
        return operands[0]
    return Or(tuple(operands))


def _shift(predicate: Predicate, offset: int) -> Predicate:
    if isinstance(predicate, Comparison):
        return Comparison(
            op=predicate.op,
            field=predicate.field,
            param=predicate.param + offset,
            case_insensitive=predicate.case_insensitive,
        )
    if isinstance(predicate, And):
        return And(tuple(_shift(p, offset) for p in predicate.operands))
    if isinstance(predicate, Or):
        return Or(tuple(_shift(p, offset) for p in predicate.operands))
    return Not(_shift(predicate.operand, offset))


@dataclass
class CompiledFilter:
    """
    Predicate tree plus its bound literals.

    Attributes:
        predicate: Root node, or None to match every document
        parameters: Literal values referenced by Comparison.param
        warnings: Non-fatal problems found while compiling
    """

    predicate: Predicate | None = None
    parameters: list[Any] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def match_all(self) -> bool:
        """True when no predicate restricts the result."""
        return self.predicate is None

    def bind(self, value: Any) -> int:
        """Append a literal and return its parameter index."""
        self.parameters.append(value)
        return len(self.parameters) - 1

    def conjoin(self, other: "CompiledFilter") -> "CompiledFilter":
        """Return a new filter matching documents accepted by both."""
        offset = len(self.parameters)
        shifted = _shift(other.predicate, offset) if other.predicate is not None else None
        operands = [p for p in (self.predicate, shifted) if p is not None]
        return CompiledFilter(
            predicate=all_of(operands),
            parameters=[*self.parameters, *other.parameters],
            warnings=[*self.warnings, *other.warnings],
        )

    def negate(self) -> "CompiledFilter":
        """Return a filter matching what this one rejects."""
        if self.predicate is None:
            raise ValueError("Cannot negate a match-all filter")
        return CompiledFilter(
            predicate=Not(self.predicate),
            parameters=list(self.parameters),
            warnings=list(self.warnings),
        )


def field_equals(
    path: tuple[str, ...] | str,
    value: Any,
    case_insensitive: bool = False,
) -> CompiledFilter:
    """Single equality test, e.g. field_equals("schemaId", "schema_x")."""
    if isinstance(path, str):
        path = tuple(path.split("."))
    compiled = CompiledFilter()
    if case_insensitive and isinstance(value, str):
        value = value.lower()
    index = compiled.bind(value)
    compiled.predicate = Comparison(Operator.EQ, path, index, case_insensitive)
    return compiled


def resolve_path(document: dict[str, Any], path: tuple[str, ...]) -> Any:
    """Walk a document by path, returning None when any step is missing."""
    current: Any = document
    for part in path:
        if not isinstance(current, dict):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current


LIKE_ESCAPE = "\\"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so the value matches literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def like_to_regex(pattern: str) -> re.Pattern:
    """Translate a SQL LIKE pattern (% and _ wildcards, \\ escape) to a regex."""
    parts = []
    escaped = False
    for char in pattern:
        if escaped:
            parts.append(re.escape(char))
            escaped = False
        elif char == LIKE_ESCAPE:
            escaped = True
        elif char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.DOTALL)


def as_text(value: Any) -> str:
    """Render a scalar the way it appears in stored JSON text."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _compare(comparison: Comparison, expected: Any, document: dict[str, Any]) -> bool:
    actual = resolve_path(document, comparison.field)
    if actual is None:
        return False

    if comparison.op is Operator.ARRAY_CONTAINS:
        if not isinstance(actual, list):
            return False
        for item in actual:
            if item is None:
                continue
            if comparison.case_insensitive:
                if as_text(item).lower() == as_text(expected):
                    return True
            elif item == expected:
                return True
        return False

    if comparison.op is Operator.EQ and not comparison.case_insensitive:
        if isinstance(actual, bool) or isinstance(expected, bool):
            return type(actual) is type(expected) and actual == expected
        return actual == expected

    # Text comparisons see scalars in their rendered form
    if isinstance(actual, (dict, list)):
        return False
    text = as_text(actual)
    if comparison.case_insensitive:
        text = text.lower()
    if comparison.op is Operator.EQ:
        return text == expected
    if comparison.op is Operator.CONTAINS:
        return str(expected) in text
    return like_to_regex(str(expected)).fullmatch(text) is not None


def evaluate(
    predicate: Predicate | None,
    parameters: list[Any],
    document: dict[str, Any],
) -> bool:
    """
    Evaluate a predicate tree against a plain document dict.

    Used by the in-memory store; mirrors the SQL rendering in
    tabular_memory.filters.sql (missing fields never match).
    """
    if predicate is None:
        return True
    if isinstance(predicate, Comparison):
        return _compare(predicate, parameters[predicate.param], document)
    if isinstance(predicate, And):
        return all(evaluate(p, parameters, document) for p in predicate.operands)
    if isinstance(predicate, Or):
        return any(evaluate(p, parameters, document) for p in predicate.operands)
    return not evaluate(predicate.operand, parameters, document)


_OPERATOR_SYMBOLS = {
    Operator.EQ: "=",
    Operator.CONTAINS: "CONTAINS",
    Operator.LIKE: "LIKE",
    Operator.ARRAY_CONTAINS: "HAS",
}


def describe(predicate: Predicate | None, parameters: list[Any]) -> str:
    """
    Human-readable infix rendering, for logs and diagnostics.

    Example: (LOWER(data.region) = "west" AND tags.year HAS "2024") OR data.qty = 3
    """
    if predicate is None:
        return "TRUE"
    if isinstance(predicate, Comparison):
        path = ".".join(predicate.field)
        if predicate.case_insensitive and predicate.op is not Operator.ARRAY_CONTAINS:
            path = f"LOWER({path})"
        value = json.dumps(parameters[predicate.param], default=str)
        return f"{path} {_OPERATOR_SYMBOLS[predicate.op]} {value}"
    if isinstance(predicate, And):
        return "(" + " AND ".join(describe(p, parameters) for p in predicate.operands) + ")"
    if isinstance(predicate, Or):
        return "(" + " OR ".join(describe(p, parameters) for p in predicate.operands) + ")"
    return f"NOT {describe(predicate.operand, parameters)}"
