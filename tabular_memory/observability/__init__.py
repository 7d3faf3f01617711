"""Logging setup and helpers."""

from tabular_memory.observability.logging import (
    bind_context,
    clear_context,
    get_logger,
    import_context,
    setup_logging,
    summarize_vectors,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "import_context",
    "summarize_vectors",
]
