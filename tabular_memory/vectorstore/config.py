"""
Configuration for vector store operations.

Uses Pydantic BaseSettings for environment variable support.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class VectorStoreConfig(BaseSettings):
    """
    Configuration for document stores and TabularMemory.

    All settings can be overridden via environment variables with
    VECTORSTORE_ prefix (e.g., VECTORSTORE_DEFAULT_LIMIT=20).
    """

    default_index: str = Field(
        default="default",
        min_length=1,
        description="Index (container) used when callers pass none",
    )
    vector_size: int = Field(
        default=1536,
        ge=1,
        description="Embedding dimensionality for newly created indexes",
    )

    # Search defaults
    default_limit: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Default number of results to return",
    )
    default_min_relevance: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Default minimum relevance for similarity searches",
    )

    # Field discovery
    field_sample_size: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Records sampled when listing filterable fields",
    )
    top_values_sample_size: int = Field(
        default=1000,
        ge=1,
        le=100000,
        description="Records sampled when counting top field values",
    )
    top_values_limit: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Default number of top values returned per field",
    )

    model_config = SettingsConfigDict(env_prefix="VECTORSTORE_")
