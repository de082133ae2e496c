"""
Connection session for dealerdb.

A ConnectionSession owns one live DB-API connection to either engine and is
the only object that opens, classifies or closes it. Every other component
receives the session explicitly and borrows the connection per call.

Responsibilities:
- Open MySQL (creating the target database first) or SQLite connections
- Decide the EngineKind once, from the connection's product name
- Hand out the connection, cursors and transaction scopes
- Close idempotently, always resetting to "no connection"

Invariants:
    - At most one connection per session; opening a new one closes the old
    - A failed open leaves the session exactly as it was
    - Outside transaction() the connection is in auto-commit mode
    - transaction() commits or rolls back on every exit path

How to change safely:
    - Keep SQL written with ``?`` placeholders and pass it through prepare()
    - Test transaction() exit paths on both engines after driver upgrades
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import pymysql
from pymysql.constants import CLIENT

from ..config import AppConfig, RelationalConfig, StorageEngine
from ..errors import ConnectionError, NotConnectedError, UnsupportedEngineError
from .catalog import EngineKind

logger = logging.getLogger(__name__)

# Driver exceptions the core catches and classifies.
STORAGE_ERRORS = (sqlite3.Error, pymysql.err.Error)
INTEGRITY_ERRORS = (sqlite3.IntegrityError, pymysql.err.IntegrityError)


def product_name(connection: Any) -> str:
    """Return the product identifier of an open DB-API connection.

    SQLite connections report the linked library version; MySQL-protocol
    connections expose ``get_server_info()``.
    """
    if isinstance(connection, sqlite3.Connection):
        return f"SQLite {sqlite3.sqlite_version}"
    server_info = getattr(connection, "get_server_info", None)
    if callable(server_info):
        return f"MySQL {server_info()}"
    return type(connection).__name__


class ConnectionSession:
    """Single-connection session over MySQL or SQLite.

    Example:
        >>> with ConnectionSession() as session:
        ...     session.open_embedded("concesionario.db")
        ...     with session.transaction() as cursor:
        ...         cursor.execute(session.prepare("DELETE FROM vehicles WHERE plate = ?"), ("1234ABC",))
    """

    def __init__(self) -> None:
        self._connection: Any = None
        self._kind: EngineKind | None = None
        self._product_name: str | None = None

    def __enter__(self) -> ConnectionSession:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def product_name(self) -> str | None:
        """Product name of the live connection, if any."""
        return self._product_name

    def open_relational(self, config: RelationalConfig) -> EngineKind:
        """Connect to MySQL, creating the target database if absent.

        Steps: connect to the server without a database, issue
        ``CREATE DATABASE IF NOT EXISTS``, close that transient connection,
        then open the definitive connection scoped to the database.

        Args:
            config: Server URL and credentials

        Returns:
            The classified engine kind

        Raises:
            ConfigError: If the URL is invalid (checked before connecting)
            ConnectionError: If any step fails
        """
        config.validate()
        target = config.server_address
        params = {
            "host": config.host,
            "port": config.port,
            "user": config.user,
            "password": config.password,
            "connect_timeout": config.connect_timeout,
            "charset": "utf8mb4",
            "autocommit": True,
            # rowcount reports matched rows, as SQLite does
            "client_flag": CLIENT.FOUND_ROWS,
        }

        try:
            server = pymysql.connect(**params)
            try:
                with server.cursor() as cursor:
                    cursor.execute(f"CREATE DATABASE IF NOT EXISTS `{config.database}`")
            finally:
                server.close()
            logger.info(f"Database {config.database} ready on {target}")

            connection = pymysql.connect(database=config.database, **params)
        except pymysql.err.Error as exc:
            logger.error(
                "MySQL connection failed",
                extra={"target": target, "database": config.database, "error": str(exc)},
            )
            raise ConnectionError(f"Cannot connect to MySQL at {target}: {exc}", target=target) from exc

        return self.adopt(connection)

    def open_embedded(self, path: str | Path) -> EngineKind:
        """Open (creating if absent) a SQLite database file.

        Args:
            path: Database file path

        Returns:
            The classified engine kind

        Raises:
            ConnectionError: If the file cannot be opened or created
        """
        target = str(path)
        try:
            # Autocommit by default, explicit transactions
            connection = sqlite3.connect(target, isolation_level=None)
        except sqlite3.Error as exc:
            logger.error("SQLite connection failed", extra={"target": target, "error": str(exc)})
            raise ConnectionError(f"Cannot open SQLite database {target}: {exc}", target=target) from exc

        try:
            connection.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as exc:
            connection.close()
            logger.error("SQLite connection failed", extra={"target": target, "error": str(exc)})
            raise ConnectionError(f"Cannot open SQLite database {target}: {exc}", target=target) from exc

        return self.adopt(connection)

    def adopt(self, connection: Any) -> EngineKind:
        """Take ownership of an already-open DB-API connection.

        The connection is classified before it replaces the current one; a
        connection of an unknown engine is closed and rejected.

        Raises:
            UnsupportedEngineError: If the product name matches no engine
        """
        name = product_name(connection)
        try:
            kind = EngineKind.from_product_name(name)
        except UnsupportedEngineError:
            connection.close()
            raise

        if self._connection is not None:
            self.close()

        self._connection = connection
        self._kind = kind
        self._product_name = name
        logger.info("Connection established", extra={"engine": kind.value, "product": name})
        return kind

    def classify(self) -> EngineKind:
        """Return the engine kind of the live connection.

        Raises:
            NotConnectedError: If no connection is open
        """
        self.current()
        return self._kind

    def current(self) -> Any:
        """Return the live connection.

        Raises:
            NotConnectedError: If no connection is open or it was closed
        """
        if self._connection is None:
            raise NotConnectedError()
        if not self._is_open(self._connection):
            raise NotConnectedError("Connection is closed")
        return self._connection

    def is_active(self) -> bool:
        """Check whether a usable connection is held. Never raises."""
        try:
            return self._connection is not None and self._is_open(self._connection)
        except Exception:
            return False

    def close(self) -> None:
        """Release the connection and reset the session.

        Idempotent. A failure while releasing is logged, not raised.
        """
        connection = self._connection
        try:
            if connection is not None and self._is_open(connection):
                connection.close()
                logger.info("Connection closed", extra={"product": self._product_name})
        except (*STORAGE_ERRORS, OSError) as exc:
            logger.error(f"Error closing connection: {exc}")
        finally:
            self._connection = None
            self._kind = None
            self._product_name = None

    def prepare(self, statement: str) -> str:
        """Rewrite ``?`` placeholders into the active engine's style."""
        kind = self.classify()
        if kind.placeholder == "?":
            return statement
        return statement.replace("?", kind.placeholder)

    @contextmanager
    def cursor(self) -> Iterator[Any]:
        """Yield a cursor for auto-committed statements."""
        cursor = self.current().cursor()
        try:
            yield cursor
        finally:
            cursor.close()

    @contextmanager
    def transaction(self) -> Iterator[Any]:
        """Run a block as one transaction.

        Yields a cursor. Commits when the block exits normally; rolls back
        and re-raises on any exception, including a failed commit. The
        connection is back in auto-commit mode afterwards.
        """
        connection = self.current()
        kind = self.classify()

        if kind is EngineKind.EMBEDDED_FILE:
            connection.execute("BEGIN IMMEDIATE")
        else:
            connection.begin()

        try:
            cursor = connection.cursor()
            try:
                yield cursor
            finally:
                cursor.close()

            if kind is EngineKind.EMBEDDED_FILE:
                connection.execute("COMMIT")
            else:
                connection.commit()
        except BaseException:
            self._rollback(connection, kind)
            raise

    def _rollback(self, connection: Any, kind: EngineKind) -> None:
        try:
            if kind is EngineKind.EMBEDDED_FILE:
                if connection.in_transaction:
                    connection.execute("ROLLBACK")
            else:
                connection.rollback()
        except STORAGE_ERRORS as exc:
            logger.error(f"Error rolling back transaction: {exc}")

    def _is_open(self, connection: Any) -> bool:
        if isinstance(connection, sqlite3.Connection):
            try:
                connection.total_changes
            except sqlite3.ProgrammingError:
                return False
            return True
        return bool(getattr(connection, "open", True))


def open_session(config: AppConfig) -> ConnectionSession:
    """Open a session on the configured engine.

    Args:
        config: Application configuration

    Returns:
        An active ConnectionSession

    Raises:
        ConnectionError: If the connection cannot be established
    """
    session = ConnectionSession()
    if config.engine == StorageEngine.MYSQL:
        session.open_relational(config.relational)
    else:
        session.open_embedded(config.embedded.path)
    return session
