"""
Configuration management for dealerdb.

All configuration is done via environment variables; command line flags may
override the engine selection and the SQLite path.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - The MySQL password is never logged or exposed in error messages
    - The engine selection only chooses how to open a connection; the engine
      kind itself is always detected from the live connection

How to change safely:
    - Add new settings with defaults that keep existing deployments working
    - Keep MYSQL_URL compatible with the legacy ``jdbc:mysql://`` form
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlsplit

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "concesionario"
DEFAULT_SQLITE_PATH = "concesionario.db"

_DATABASE_NAME = re.compile(r"^[A-Za-z0-9_$]+$")


class StorageEngine(Enum):
    """Engines selectable at startup."""

    MYSQL = "mysql"
    SQLITE = "sqlite"


@dataclass(frozen=True)
class RelationalConfig:
    """MySQL server configuration.

    Attributes:
        url: Server URL including the target database,
            e.g. ``mysql://localhost:3306/concesionario``
        user: Account name
        password: Account password
        connect_timeout: Seconds to wait for the server when connecting
    """

    url: str = f"mysql://localhost:3306/{DEFAULT_DATABASE}"
    user: str = "root"
    password: str = ""
    connect_timeout: int = 10

    @classmethod
    def from_env(cls) -> RelationalConfig:
        """Load configuration from environment variables."""
        return cls(
            url=os.getenv("MYSQL_URL", f"mysql://localhost:3306/{DEFAULT_DATABASE}"),
            user=os.getenv("MYSQL_USER", "root"),
            password=os.getenv("MYSQL_PASSWORD", ""),
            connect_timeout=_int_env("MYSQL_CONNECT_TIMEOUT", "10"),
        )

    @property
    def _parts(self):
        url = self.url[len("jdbc:"):] if self.url.startswith("jdbc:") else self.url
        return urlsplit(url)

    @property
    def scheme(self) -> str:
        return self._parts.scheme

    @property
    def host(self) -> str:
        return self._parts.hostname or "localhost"

    @property
    def port(self) -> int:
        return self._parts.port or 3306

    @property
    def database(self) -> str:
        """Target database name, taken from the URL path."""
        name = self._parts.path.strip("/")
        return name or DEFAULT_DATABASE

    @property
    def server_address(self) -> str:
        """Server address without the database, safe to log."""
        return f"{self.host}:{self.port}"

    def validate(self) -> None:
        """Validate the URL.

        Raises:
            ConfigError: If the scheme or database name is invalid.
        """
        if self.scheme != "mysql":
            raise ConfigError(
                f"MYSQL_URL must use the mysql:// scheme, got '{self.scheme or self.url}'",
                setting="MYSQL_URL",
            )
        try:
            self.port
        except ValueError:
            raise ConfigError("MYSQL_URL has an invalid port", setting="MYSQL_URL")
        if not _DATABASE_NAME.match(self.database):
            raise ConfigError(
                f"Invalid database name '{self.database}' in MYSQL_URL",
                setting="MYSQL_URL",
            )


@dataclass(frozen=True)
class EmbeddedConfig:
    """SQLite configuration.

    Attributes:
        path: Database file path (created on first connection)
    """

    path: str = DEFAULT_SQLITE_PATH

    @classmethod
    def from_env(cls) -> EmbeddedConfig:
        """Load configuration from environment variables."""
        return cls(path=os.getenv("SQLITE_PATH") or DEFAULT_SQLITE_PATH)


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (text, json)
    """

    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text").lower(),
        )


@dataclass
class AppConfig:
    """Complete application configuration.

    Attributes:
        engine: Which engine to open
        relational: MySQL configuration (if engine is MYSQL)
        embedded: SQLite configuration (if engine is SQLITE)
        observability: Logging configuration
    """

    engine: StorageEngine = StorageEngine.SQLITE
    relational: RelationalConfig = field(default_factory=RelationalConfig)
    embedded: EmbeddedConfig = field(default_factory=EmbeddedConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load complete configuration from environment variables.

        Returns:
            AppConfig with all sections populated from environment.

        Raises:
            ConfigError: If configuration is invalid.
        """
        config = cls(
            engine=parse_engine(os.getenv("DEALERDB_ENGINE", "sqlite")),
            relational=RelationalConfig.from_env(),
            embedded=EmbeddedConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ConfigError: If configuration is invalid.
        """
        if self.engine == StorageEngine.MYSQL:
            self.relational.validate()
        elif not self.embedded.path:
            raise ConfigError("SQLITE_PATH must not be empty", setting="SQLITE_PATH")

        if self.observability.log_format not in ("text", "json"):
            raise ConfigError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be one of: text, json",
                setting="LOG_FORMAT",
            )

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "Configuration loaded",
            extra={
                "engine": self.engine.value,
                "mysql_server": self.relational.server_address
                if self.engine == StorageEngine.MYSQL
                else None,
                "mysql_database": self.relational.database
                if self.engine == StorageEngine.MYSQL
                else None,
                "mysql_user": self.relational.user
                if self.engine == StorageEngine.MYSQL
                else None,
                "sqlite_path": self.embedded.path
                if self.engine == StorageEngine.SQLITE
                else None,
                "log_level": self.observability.log_level,
            },
        )


def parse_engine(value: str) -> StorageEngine:
    """Map an engine name to a StorageEngine.

    Raises:
        ConfigError: If the name is not a supported engine.
    """
    try:
        return StorageEngine(value.strip().lower())
    except ValueError:
        raise ConfigError(
            f"Invalid DEALERDB_ENGINE '{value}'. Must be one of: mysql, sqlite",
            setting="DEALERDB_ENGINE",
        )


def _int_env(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got '{raw}'", setting=name)
