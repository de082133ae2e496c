"""
Unit tests for configuration loading.

Tests cover:
- Defaults and environment overrides
- MySQL URL parsing, including the jdbc: form
- Validation errors
- Secret redaction when logging
"""

import logging

import pytest

from dealerdb.config import (
    AppConfig,
    EmbeddedConfig,
    RelationalConfig,
    StorageEngine,
    parse_engine,
)
from dealerdb.errors import ConfigError

ENV_VARS = [
    "DEALERDB_ENGINE",
    "MYSQL_URL",
    "MYSQL_USER",
    "MYSQL_PASSWORD",
    "MYSQL_CONNECT_TIMEOUT",
    "SQLITE_PATH",
    "LOG_LEVEL",
    "LOG_FORMAT",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every dealerdb variable from the environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestAppConfig:
    """Tests for AppConfig.from_env."""

    def test_defaults(self, clean_env):
        """Without environment the embedded engine is selected."""
        config = AppConfig.from_env()

        assert config.engine == StorageEngine.SQLITE
        assert config.embedded.path == "concesionario.db"
        assert config.relational.database == "concesionario"
        assert config.relational.user == "root"
        assert config.observability.log_format == "text"

    def test_environment_overrides(self, clean_env):
        """Variables override every section."""
        clean_env.setenv("DEALERDB_ENGINE", "MySQL")
        clean_env.setenv("MYSQL_URL", "mysql://db.internal:3307/shop")
        clean_env.setenv("MYSQL_USER", "dealer")
        clean_env.setenv("MYSQL_CONNECT_TIMEOUT", "3")
        clean_env.setenv("LOG_FORMAT", "JSON")

        config = AppConfig.from_env()

        assert config.engine == StorageEngine.MYSQL
        assert config.relational.host == "db.internal"
        assert config.relational.port == 3307
        assert config.relational.database == "shop"
        assert config.relational.user == "dealer"
        assert config.relational.connect_timeout == 3
        assert config.observability.log_format == "json"

    def test_invalid_engine(self, clean_env):
        clean_env.setenv("DEALERDB_ENGINE", "oracle")

        with pytest.raises(ConfigError) as exc_info:
            AppConfig.from_env()

        assert exc_info.value.setting == "DEALERDB_ENGINE"

    def test_invalid_timeout(self, clean_env):
        clean_env.setenv("MYSQL_CONNECT_TIMEOUT", "soon")

        with pytest.raises(ConfigError) as exc_info:
            AppConfig.from_env()

        assert exc_info.value.setting == "MYSQL_CONNECT_TIMEOUT"

    def test_invalid_log_format(self, clean_env):
        clean_env.setenv("LOG_FORMAT", "xml")

        with pytest.raises(ConfigError):
            AppConfig.from_env()

    def test_empty_sqlite_path_rejected(self):
        config = AppConfig(embedded=EmbeddedConfig(path=""))

        with pytest.raises(ConfigError):
            config.validate()

    def test_log_config_redacts_password(self, caplog):
        """The MySQL password never reaches the log."""
        config = AppConfig(
            engine=StorageEngine.MYSQL,
            relational=RelationalConfig(password="s3cret-pass"),
        )

        with caplog.at_level(logging.INFO, logger="dealerdb.config"):
            config.log_config()

        assert caplog.records
        for record in caplog.records:
            assert "s3cret-pass" not in str(record.__dict__)


class TestRelationalConfig:
    """Tests for MySQL URL handling."""

    def test_jdbc_prefix_accepted(self):
        config = RelationalConfig(url="jdbc:mysql://localhost:3306/concesionario")
        config.validate()

        assert config.scheme == "mysql"
        assert config.host == "localhost"
        assert config.port == 3306
        assert config.database == "concesionario"

    def test_missing_port_and_database_use_defaults(self):
        config = RelationalConfig(url="mysql://db.example")

        assert config.port == 3306
        assert config.database == "concesionario"
        assert config.server_address == "db.example:3306"

    def test_wrong_scheme_rejected(self):
        with pytest.raises(ConfigError):
            RelationalConfig(url="postgresql://localhost/shop").validate()

    def test_invalid_port_rejected(self):
        with pytest.raises(ConfigError):
            RelationalConfig(url="mysql://localhost:port/shop").validate()

    def test_unsafe_database_name_rejected(self):
        with pytest.raises(ConfigError):
            RelationalConfig(url="mysql://localhost:3306/shop`; DROP").validate()


class TestParseEngine:
    def test_case_insensitive(self):
        assert parse_engine(" SQLite ") == StorageEngine.SQLITE
        assert parse_engine("MYSQL") == StorageEngine.MYSQL

    def test_unknown(self):
        with pytest.raises(ConfigError):
            parse_engine("postgres")
