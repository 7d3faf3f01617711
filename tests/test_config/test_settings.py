"""Tests for settings and component configuration."""

import pytest
from pydantic import ValidationError

from tabular_memory.config.settings import Settings, get_settings
from tabular_memory.schema.config import SchemaConfig
from tabular_memory.vectorstore.config import VectorStoreConfig


class TestSettings:
    """Tests for the application Settings."""

    def test_fixture_settings(self, test_settings):
        assert test_settings.log_level == "DEBUG"
        assert test_settings.is_production is False
        assert "tabular_memory_test" in str(test_settings.database_url)

    def test_production_flag(self):
        assert Settings(environment="production").is_production is True

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="LOUD")

    def test_log_format(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        assert Settings().log_format == "json"

        with pytest.raises(ValidationError):
            Settings(log_format="xml")

    def test_pool_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(db_pool_min_size=0)

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()
        get_settings.cache_clear()


class TestComponentConfig:
    """Tests for the prefixed component configs."""

    def test_schema_config_env(self, monkeypatch):
        monkeypatch.setenv("SCHEMA_ENABLED", "false")
        monkeypatch.setenv("SCHEMA_COMMON_VALUES_CAPACITY", "25")

        config = SchemaConfig()

        assert config.enabled is False
        assert config.common_values_capacity == 25
        assert config.placeholder_dataset_names == ["default", "tabular"]

    def test_vectorstore_config_env(self, monkeypatch):
        monkeypatch.setenv("VECTORSTORE_DEFAULT_LIMIT", "20")

        config = VectorStoreConfig()

        assert config.default_limit == 20
        assert config.vector_size == 1536

    def test_vectorstore_config_bounds(self):
        with pytest.raises(ValidationError):
            VectorStoreConfig(default_min_relevance=1.5)
