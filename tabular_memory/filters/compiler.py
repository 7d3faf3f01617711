"""
Compile memory filters into a backend-neutral predicate.

A filter request is a list of groups. Entries inside a group are AND'ed
and groups are OR'ed. Keys prefixed with ``data.`` address structured
row fields; all other keys address tags.
"""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

import structlog

from tabular_memory.filters.config import FuzzyMatchConfig
from tabular_memory.filters.predicate import (
    CompiledFilter,
    Comparison,
    Operator,
    Predicate,
    all_of,
    any_of,
    as_text,
    escape_like,
)
from tabular_memory.schema.normalizer import normalize_name
from tabular_memory.schema.schemas import DATA_PREFIX

if TYPE_CHECKING:
    from tabular_memory.schema.registry import SchemaRegistry

logger = structlog.get_logger(__name__)

FilterGroup = Mapping[str, Any]


class FilterCompiler:
    """
    Turns filter groups into a CompiledFilter.

    Compilation is pure; only compile_for_dataset() touches the schema
    registry, to validate and canonicalize ``data.`` keys first.
    """

    def __init__(
        self,
        fuzzy: FuzzyMatchConfig | None = None,
        registry: "SchemaRegistry | None" = None,
    ):
        self._fuzzy = fuzzy or FuzzyMatchConfig()
        self._registry = registry

    @property
    def fuzzy(self) -> FuzzyMatchConfig:
        return self._fuzzy

    def compile(self, filters: Sequence[FilterGroup] | None) -> CompiledFilter:
        """
        Compile filter groups.

        An empty request, or one where every group is empty or yields no
        valid entry, compiles to match-all.
        """
        compiled = CompiledFilter()
        branches: list[Predicate] = []

        for group in filters or []:
            if not group:
                continue
            conditions = []
            for key, value in group.items():
                condition = self._compile_entry(compiled, key, value)
                if condition is not None:
                    conditions.append(condition)
            branch = all_of(conditions)
            if branch is not None:
                branches.append(branch)

        compiled.predicate = any_of(branches)
        return compiled

    async def compile_for_dataset(
        self,
        filters: Sequence[FilterGroup] | None,
        dataset_name: str,
    ) -> CompiledFilter:
        """Validate each group against the dataset schema, then compile."""
        if self._registry is None:
            return self.compile(filters)

        validated_groups: list[dict[str, Any]] = []
        warnings: list[str] = []
        for group in filters or []:
            if not group:
                continue
            validated, group_warnings = await self._registry.validate_parameters(
                dataset_name, dict(group)
            )
            validated_groups.append(validated)
            warnings.extend(group_warnings)

        compiled = self.compile(validated_groups)
        compiled.warnings[:0] = warnings
        return compiled

    def _compile_entry(
        self,
        compiled: CompiledFilter,
        key: str,
        value: Any,
    ) -> Predicate | None:
        if value is None:
            return None

        if key.startswith(DATA_PREFIX):
            field_name = normalize_name(key[len(DATA_PREFIX):])
            if not field_name:
                message = f"Invalid structured data filter key found: '{key}'"
                compiled.warnings.append(message)
                logger.warning("Dropping filter entry", key=key, reason="empty field name")
                return None
            return self._compile_data(compiled, ("data", field_name), value)

        return self._compile_tag(compiled, ("tags", key), value)

    def _compile_data(
        self,
        compiled: CompiledFilter,
        path: tuple[str, ...],
        value: Any,
    ) -> Predicate | None:
        if isinstance(value, str):
            return self._string_condition(compiled, path, value)

        if isinstance(value, (list, tuple, set)):
            conditions = []
            for item in value:
                if item is None:
                    continue
                if isinstance(item, str) and not self._fuzzy.apply_to_list_values:
                    index = compiled.bind(item.lower())
                    conditions.append(Comparison(Operator.EQ, path, index, True))
                elif isinstance(item, str):
                    conditions.append(self._string_condition(compiled, path, item))
                else:
                    index = compiled.bind(item)
                    conditions.append(Comparison(Operator.EQ, path, index))
            return any_of(conditions)

        index = compiled.bind(value)
        return Comparison(Operator.EQ, path, index)

    def _string_condition(
        self,
        compiled: CompiledFilter,
        path: tuple[str, ...],
        value: str,
    ) -> Predicate:
        policy = self._fuzzy
        case_insensitive = policy.case_insensitive
        literal = value.lower() if case_insensitive else value

        if not policy.enabled or len(value) < policy.minimum_length:
            return Comparison(Operator.EQ, path, compiled.bind(literal), case_insensitive)

        if policy.operator == "LIKE":
            # Wildcards typed by the user match literally
            pattern = "%" + escape_like(literal).replace(" ", "%") + "%"
            return Comparison(Operator.LIKE, path, compiled.bind(pattern), case_insensitive)

        return Comparison(Operator.CONTAINS, path, compiled.bind(literal), case_insensitive)

    def _compile_tag(
        self,
        compiled: CompiledFilter,
        path: tuple[str, ...],
        value: Any,
    ) -> Predicate | None:
        if isinstance(value, str):
            index = compiled.bind(value.lower())
            return Comparison(Operator.ARRAY_CONTAINS, path, index, True)

        if isinstance(value, (list, tuple, set)):
            conditions = []
            for item in value:
                if item is None:
                    continue
                conditions.append(self._compile_tag(compiled, path, item))
            return any_of(conditions)

        index = compiled.bind(as_text(value))
        return Comparison(Operator.ARRAY_CONTAINS, path, index)
