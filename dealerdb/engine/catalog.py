"""
Catalog of supported storage engines.

Maps each EngineKind to the facts the rest of the core needs about it:
- which bundled DDL resource creates its tables
- which parameter placeholder its driver expects
- which product names identify it

Invariants:
    - EngineKind is a closed set; adding a member requires a DDL resource
    - Classification is a pure function of the product name
"""

from __future__ import annotations

from enum import Enum

from ..errors import UnsupportedEngineError


class EngineKind(Enum):
    """Backing store targeted by a session."""

    RELATIONAL_SERVER = "mysql"
    EMBEDDED_FILE = "sqlite"

    @property
    def ddl_resource(self) -> str:
        """File name of the DDL resource for this engine."""
        return f"schema-{self.value}.sql"

    @property
    def placeholder(self) -> str:
        """Parameter marker of the engine's DB-API driver."""
        return "%s" if self is EngineKind.RELATIONAL_SERVER else "?"

    @classmethod
    def from_product_name(cls, product_name: str) -> EngineKind:
        """Classify a connection by its product name.

        Args:
            product_name: Product identifier, e.g. ``"MySQL 8.0.36"``

        Returns:
            The matching EngineKind

        Raises:
            UnsupportedEngineError: If the name matches no known engine
        """
        lowered = product_name.lower()
        if "mysql" in lowered:
            return cls.RELATIONAL_SERVER
        if "sqlite" in lowered:
            return cls.EMBEDDED_FILE
        raise UnsupportedEngineError(product_name)
