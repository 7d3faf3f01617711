"""Configuration for fuzzy matching of structured-field filters."""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FuzzyMatchConfig(BaseSettings):
    """
    Fuzzy matching policy for string values of ``data.`` filters.

    All settings can be overridden via environment variables with
    FUZZY_MATCH_ prefix (e.g., FUZZY_MATCH_ENABLED=true).
    """

    model_config = SettingsConfigDict(
        env_prefix="FUZZY_MATCH_",
        case_sensitive=False,
        extra="ignore",
    )

    enabled: bool = Field(
        default=False,
        description="Use substring/pattern matching instead of equality",
    )
    operator: Literal["CONTAINS", "LIKE"] = Field(
        default="CONTAINS",
        description="CONTAINS for substring tests, LIKE for wildcard patterns",
    )
    case_insensitive: bool = Field(
        default=True,
        description="Compare lowercased values",
    )
    minimum_length: int = Field(
        default=2,
        ge=0,
        description="Shorter values fall back to equality",
    )
    apply_to_list_values: bool = Field(
        default=True,
        description=(
            "Apply the policy to each item of a list value; when false, list "
            "items are always compared with case-insensitive equality"
        ),
    )

    @field_validator("operator", mode="before")
    @classmethod
    def normalize_operator(cls, v: str) -> str:
        """Accept the operator in any case."""
        if isinstance(v, str):
            return v.strip().upper()
        return v
