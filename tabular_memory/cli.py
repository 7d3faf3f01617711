"""
Command-line interface for tabular-memory.

Offline diagnostics plus a few commands against the PostgreSQL store.

Usage:
    tabular-memory compile-filters '[{"data.region": "west"}]' --sql
    tabular-memory parse-text "Record from worksheet Sheet1, row 3: Name is Bob."
    tabular-memory normalize "CustomerName" "Order Total ($)"
    tabular-memory infer-type 42 true 2024-01-05
    tabular-memory init-db
    tabular-memory datasets
    tabular-memory schema sales
"""

import asyncio
import json
import os
import sys

import click

from tabular_memory.observability.logging import setup_logging


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option(
    "--log-format",
    type=click.Choice(["auto", "json", "console"]),
    default=None,
    help="Log renderer (default: LOG_FORMAT setting)",
)
def main(debug: bool, log_format: str | None) -> None:
    """Tabular Memory - schema-aware storage and search for tabular rows."""
    if debug:
        os.environ["LOG_LEVEL"] = "DEBUG"
        from tabular_memory.config.settings import get_settings

        get_settings.cache_clear()

    setup_logging(log_format=log_format)


@main.command("compile-filters")
@click.argument("filters_json")
@click.option("--fuzzy/--no-fuzzy", default=None, help="Override fuzzy matching")
@click.option(
    "--operator",
    type=click.Choice(["CONTAINS", "LIKE"], case_sensitive=False),
    default=None,
    help="Fuzzy operator",
)
@click.option("--case-sensitive", is_flag=True, help="Compare values as given")
@click.option("--min-length", type=int, default=None, help="Minimum length for fuzzy matching")
@click.option("--sql", "as_sql", is_flag=True, help="Render as a PostgreSQL WHERE clause")
def compile_filters(
    filters_json: str,
    fuzzy: bool | None,
    operator: str | None,
    case_sensitive: bool,
    min_length: int | None,
    as_sql: bool,
) -> None:
    """Compile filter groups (a JSON list of objects) and print the predicate."""
    from tabular_memory.filters.compiler import FilterCompiler
    from tabular_memory.filters.config import FuzzyMatchConfig
    from tabular_memory.filters.predicate import describe
    from tabular_memory.filters.sql import render_where

    try:
        filters = json.loads(filters_json)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"Invalid JSON: {e}", param_hint="FILTERS_JSON") from e
    if isinstance(filters, dict):
        filters = [filters]
    if not isinstance(filters, list) or not all(isinstance(g, dict) for g in filters):
        raise click.BadParameter(
            "Expected a JSON object or a list of objects", param_hint="FILTERS_JSON"
        )

    overrides: dict = {}
    if fuzzy is not None:
        overrides["enabled"] = fuzzy
    if operator is not None:
        overrides["operator"] = operator
    if case_sensitive:
        overrides["case_insensitive"] = False
    if min_length is not None:
        overrides["minimum_length"] = min_length

    compiled = FilterCompiler(FuzzyMatchConfig(**overrides)).compile(filters)

    if as_sql:
        clause, params = render_where(compiled)
        click.echo(clause)
        click.echo(json.dumps(params, default=str))
    else:
        click.echo(describe(compiled.predicate, compiled.parameters))

    for warning in compiled.warnings:
        click.echo(f"warning: {warning}", err=True)


@main.command("parse-text")
@click.argument("text")
def parse_text(text: str) -> None:
    """Recover structured data from a record's sentence text."""
    from tabular_memory.records.text_recovery import recover_from_text

    recovered = recover_from_text(text)
    click.echo(
        json.dumps(
            {
                "found": recovered.found,
                "truncated": recovered.truncated,
                "data": recovered.data,
                "source": recovered.source,
            },
            indent=2,
            default=str,
        )
    )
    if not recovered.found:
        sys.exit(1)


@main.command()
@click.argument("names", nargs=-1, required=True)
def normalize(names: tuple[str, ...]) -> None:
    """Show the normalized form of column names."""
    from tabular_memory.schema.normalizer import normalize_name

    for name in names:
        click.echo(f"{name} -> {normalize_name(name)}")


@main.command("infer-type")
@click.argument("values", nargs=-1, required=True)
def infer_type_command(values: tuple[str, ...]) -> None:
    """Show the inferred data type of values."""
    from tabular_memory.schema.normalizer import infer_type

    for value in values:
        click.echo(f"{value}: {infer_type(value).value}")


@main.command("init-db")
def init_db() -> None:
    """Create the document tables in PostgreSQL."""
    from tabular_memory.storage.database import Database
    from tabular_memory.vectorstore.pgvector_store import PgVectorDocumentStore

    async def run() -> str | None:
        db = Database()
        await db.connect()
        try:
            await PgVectorDocumentStore(db).initialize()
            return await db.vector_extension_version()
        finally:
            await db.close()

    version = asyncio.run(run())
    click.echo(f"Database initialized (pgvector {version or 'unknown'})")


@main.command()
def datasets() -> None:
    """List datasets that have a stored schema."""
    from tabular_memory.schema.registry import SchemaRegistry
    from tabular_memory.storage.database import Database
    from tabular_memory.vectorstore.pgvector_store import PgVectorDocumentStore

    async def run() -> list[str]:
        db = Database()
        await db.connect()
        try:
            registry = SchemaRegistry(PgVectorDocumentStore(db))
            return await registry.list_dataset_names()
        finally:
            await db.close()

    names = asyncio.run(run())
    if not names:
        click.echo("No datasets found")
        return
    for name in names:
        click.echo(name)


@main.command()
@click.argument("dataset_name")
def schema(dataset_name: str) -> None:
    """Print the latest schema of a dataset as JSON."""
    from tabular_memory.schema.registry import SchemaRegistry
    from tabular_memory.storage.database import Database
    from tabular_memory.vectorstore.pgvector_store import PgVectorDocumentStore

    async def run():
        db = Database()
        await db.connect()
        try:
            registry = SchemaRegistry(PgVectorDocumentStore(db))
            return await registry.get_schema_by_dataset(dataset_name)
        finally:
            await db.close()

    found = asyncio.run(run())
    if found is None:
        click.echo(f"No schema found for dataset '{dataset_name}'", err=True)
        sys.exit(1)
    click.echo(json.dumps(found.to_document(), indent=2))


if __name__ == "__main__":
    main()
