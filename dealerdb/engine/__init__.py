"""
Engine module for dealerdb - connections, engine detection and schema.

This module handles:
- The catalog of supported engines (MySQL, SQLite)
- The connection session and its transaction scope
- Engine-specific schema bootstrap from bundled DDL resources
"""

from .bootstrap import SchemaBootstrapper, split_statements
from .catalog import EngineKind
from .session import (
    INTEGRITY_ERRORS,
    STORAGE_ERRORS,
    ConnectionSession,
    open_session,
    product_name,
)

__all__ = [
    "EngineKind",
    "ConnectionSession",
    "open_session",
    "product_name",
    "STORAGE_ERRORS",
    "INTEGRITY_ERRORS",
    "SchemaBootstrapper",
    "split_statements",
]
