"""PostgreSQL connection management."""

from tabular_memory.storage.database import Database

__all__ = ["Database"]
