"""
Schema bootstrap for dealerdb.

Creates the owners, vehicles and transfers tables on the session's engine by
executing the engine's bundled DDL resource:
- sql/schema-mysql.sql  for MySQL
- sql/schema-sqlite.sql for SQLite

The bootstrapper never opens or closes connections; it only runs DDL on the
connection the session provides.

Invariants:
    - Every DDL statement is idempotent (IF NOT EXISTS), so bootstrap can run
      against an initialized store
    - Statements run in file order
    - The first failing statement stops the run; later statements are not
      attempted

How to change safely:
    - Keep ``;`` out of comments (the script is split on it)
    - Update both resources together
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..errors import BootstrapError, ResourceNotFoundError
from .catalog import EngineKind
from .session import STORAGE_ERRORS, ConnectionSession

logger = logging.getLogger(__name__)

SQL_DIR = Path(__file__).parent / "sql"

STATEMENT_TERMINATOR = ";"
LINE_COMMENT = "--"


def clean_statement(raw: str) -> str:
    """Drop comment and blank lines, join the rest with single spaces."""
    lines = (line.strip() for line in raw.splitlines())
    return " ".join(line for line in lines if line and not line.startswith(LINE_COMMENT))


def split_statements(script: str) -> list[str]:
    """Split a DDL script into executable statements.

    Args:
        script: Script text, statements separated by ``;``

    Returns:
        Non-empty cleaned statements in order
    """
    statements = []
    for raw in script.split(STATEMENT_TERMINATOR):
        statement = clean_statement(raw)
        if statement:
            statements.append(statement)
    return statements


class SchemaBootstrapper:
    """Creates the inventory tables for the session's engine.

    Example:
        >>> bootstrapper = SchemaBootstrapper()
        >>> bootstrapper.bootstrap(session)
        5
    """

    def __init__(self, resource_dir: str | Path | None = None) -> None:
        """Initialize the bootstrapper.

        Args:
            resource_dir: Directory holding the DDL resources
                (defaults to the bundled ``sql`` directory)
        """
        self.resource_dir = Path(resource_dir) if resource_dir is not None else SQL_DIR

    def load_script(self, kind: EngineKind) -> str:
        """Read the DDL resource for an engine.

        Raises:
            ResourceNotFoundError: If the resource file does not exist
        """
        path = self.resource_dir / kind.ddl_resource
        if not path.is_file():
            raise ResourceNotFoundError(kind.ddl_resource, path=str(path))
        return path.read_text(encoding="utf-8")

    def bootstrap(self, session: ConnectionSession) -> int:
        """Create the tables on the session's connection.

        Args:
            session: Active session

        Returns:
            Number of statements executed

        Raises:
            NotConnectedError: If the session has no connection
            ResourceNotFoundError: If the engine's DDL resource is missing
            BootstrapError: If a statement fails
        """
        kind = session.classify()
        logger.info(f"Creating tables for engine: {kind.value}")

        statements = split_statements(self.load_script(kind))

        executed = 0
        with session.cursor() as cursor:
            for index, statement in enumerate(statements):
                try:
                    cursor.execute(statement)
                except STORAGE_ERRORS as exc:
                    logger.error(
                        "DDL statement failed",
                        extra={"statement_index": index, "error": str(exc)},
                    )
                    raise BootstrapError(
                        f"DDL statement {index + 1} of {len(statements)} failed: {exc}",
                        statement_index=index,
                        statement=statement,
                    ) from exc
                executed += 1
                logger.debug("Executed DDL statement", extra={"statement_index": index})

        logger.info(f"Schema ready: {executed} statements executed")
        return executed
