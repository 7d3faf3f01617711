"""
structlog setup for tabular-memory.

Log lines go to stderr so CLI commands can print JSON on stdout. While
rows of an import are processed, the dataset and import batch are bound
with import_context() and appear on every line logged inside it.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from tabular_memory.config.settings import get_settings

# Lists of numbers at least this long are logged as a summary
VECTOR_SUMMARY_THRESHOLD = 16


def summarize_vectors(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Replace embedding-sized number lists with "<vector dim=N>"."""
    for key, value in event_dict.items():
        if (
            isinstance(value, (list, tuple))
            and len(value) >= VECTOR_SUMMARY_THRESHOLD
            and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value)
        ):
            event_dict[key] = f"<vector dim={len(value)}>"
    return event_dict


def _use_json(log_format: str, is_production: bool) -> bool:
    if log_format == "json":
        return True
    if log_format == "console":
        return False
    return is_production


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level override (defaults to settings.log_level)
        log_format: "json", "console" or "auto" (defaults to
            settings.log_format; "auto" means JSON in production)
    """
    settings = get_settings()
    level = level or settings.log_level
    log_format = log_format or settings.log_format

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        summarize_vectors,
        structlog.processors.StackInfoRenderer(),
    ]
    if _use_json(log_format, settings.is_production):
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=getattr(logging, level))
    for noisy in ("asyncio", "asyncpg"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind key-value pairs to every later log line of this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


@contextmanager
def import_context(
    dataset: str | None,
    import_batch_id: str | None = None,
    **extra: Any,
) -> Iterator[None]:
    """
    Bind dataset and import batch for the duration of a block.

    Keys whose value is None are left out. Previously bound values are
    restored on exit.
    """
    values = {"dataset": dataset, "import_batch_id": import_batch_id, **extra}
    bound = {k: v for k, v in values.items() if v is not None}
    with structlog.contextvars.bound_contextvars(**bound):
        yield
