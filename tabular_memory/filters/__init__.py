"""
Filter compilation.

Main components:
- FilterCompiler: filter groups -> CompiledFilter
- CompiledFilter: predicate tree plus bound literals
- evaluate: run a predicate against a document dict
- render_where: render a predicate as parameterized PostgreSQL
"""

from tabular_memory.filters.compiler import DATA_PREFIX, FilterCompiler, FilterGroup
from tabular_memory.filters.config import FuzzyMatchConfig
from tabular_memory.filters.predicate import (
    And,
    CompiledFilter,
    Comparison,
    Not,
    Operator,
    Or,
    Predicate,
    describe,
    evaluate,
    field_equals,
)
from tabular_memory.filters.sql import render_where

__all__ = [
    "DATA_PREFIX",
    "FilterCompiler",
    "FilterGroup",
    "FuzzyMatchConfig",
    "CompiledFilter",
    "Predicate",
    "Comparison",
    "And",
    "Or",
    "Not",
    "Operator",
    "describe",
    "evaluate",
    "field_equals",
    "render_where",
]
