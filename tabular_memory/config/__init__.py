"""Application configuration."""

from tabular_memory.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
