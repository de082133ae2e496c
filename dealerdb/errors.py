"""
Error types for dealerdb.

This module defines the exceptions raised by the persistence core:
- DealerDbError: Base exception
- ConnectionError: A connection could not be established
- UnsupportedEngineError: Connection belongs to an unknown engine
- NotConnectedError: Operation attempted without a live connection
- ResourceNotFoundError: A bundled DDL resource is missing
- BootstrapError: A DDL statement failed during bootstrap
- ValidationError: Malformed input row or value
- ConfigError: Invalid configuration

Invariants:
    - All errors inherit from DealerDbError
    - Errors include context for debugging
    - Passwords never appear in messages or details
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class DealerDbError(Exception):
    """Base exception for all dealerdb errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "DEALERDB_ERROR"
        self.details = details or {}


class ConnectionError(DealerDbError):
    """Failed to establish a database connection.

    Raised when:
    - The MySQL server is unreachable or rejects the credentials
    - The target database cannot be created
    - The SQLite file cannot be opened or created
    """

    def __init__(
        self,
        message: str,
        target: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="CONNECTION_ERROR",
            details={"target": target},
        )
        self.target = target


class UnsupportedEngineError(DealerDbError):
    """The connection's product name matches no supported engine."""

    def __init__(self, product_name: str) -> None:
        super().__init__(
            f"Unsupported database engine: {product_name}",
            code="UNSUPPORTED_ENGINE",
            details={"product_name": product_name},
        )
        self.product_name = product_name


class NotConnectedError(DealerDbError):
    """No live connection is available on the session."""

    def __init__(self, message: str = "No active connection") -> None:
        super().__init__(message, code="NOT_CONNECTED")


class ResourceNotFoundError(DealerDbError):
    """A bundled DDL resource could not be found."""

    def __init__(self, resource: str, path: Optional[str] = None) -> None:
        super().__init__(
            f"DDL resource not found: {resource}",
            code="RESOURCE_NOT_FOUND",
            details={"resource": resource, "path": path},
        )
        self.resource = resource
        self.path = path


class BootstrapError(DealerDbError):
    """A schema statement failed while bootstrapping.

    Attributes:
        statement_index: Zero-based position of the failing statement
        statement: The statement text that failed
    """

    def __init__(self, message: str, statement_index: int, statement: str) -> None:
        super().__init__(
            message,
            code="BOOTSTRAP_ERROR",
            details={"statement_index": statement_index, "statement": statement},
        )
        self.statement_index = statement_index
        self.statement = statement


class ValidationError(DealerDbError):
    """Input validation failed.

    Raised when:
    - A CSV row does not have exactly five fields
    - A price is not a decimal number or is negative
    - A required value is empty
    """

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        errors: Optional[List[str]] = None,
    ) -> None:
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"line_number": line_number, "errors": errors or []},
        )
        self.line_number = line_number
        self.errors = errors or []


class ConfigError(DealerDbError):
    """Configuration is missing or invalid."""

    def __init__(self, message: str, setting: Optional[str] = None) -> None:
        super().__init__(message, code="CONFIG_ERROR", details={"setting": setting})
        self.setting = setting
