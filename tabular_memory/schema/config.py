"""Configuration for dataset schema management."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchemaConfig(BaseSettings):
    """
    Settings for the schema registry.

    All settings can be overridden via environment variables with
    SCHEMA_ prefix (e.g., SCHEMA_ENABLED=false).
    """

    model_config = SettingsConfigDict(
        env_prefix="SCHEMA_",
        case_sensitive=False,
        extra="ignore",
    )

    enabled: bool = Field(
        default=True,
        description="Master switch for schema storage, lookup and validation",
    )
    container_name: str = Field(
        default="",
        description="Dedicated container for schema documents (empty = store beside the rows)",
    )
    extract_on_import: bool = Field(
        default=True,
        description="Create and merge schemas while rows are upserted",
    )
    common_values_capacity: int = Field(
        default=10,
        ge=0,
        le=1000,
        description="Number of recent distinct values kept per column",
    )
    placeholder_dataset_names: list[str] = Field(
        default_factory=lambda: ["default", "tabular"],
        description="Dataset names replaced by the source file's base name",
    )
    default_container: str = Field(
        default="default",
        description="Container created for schemas when no other container exists",
    )
    default_source_file: str = Field(
        default="excel_import",
        description="Source file recorded when a row names none",
    )
