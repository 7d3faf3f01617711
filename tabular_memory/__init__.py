"""Schema-aware tabular memory on top of a vector-searchable document store."""

__version__ = "0.1.0"
