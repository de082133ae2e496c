"""
dealerdb - Transactional persistence core for a vehicle dealership inventory.

This package stores vehicles, their owners and ownership transfers in one of
two interchangeable relational engines selected at runtime:
- MySQL (client-server), through PyMySQL
- SQLite (embedded file), through the sqlite3 module

Architecture:
    ┌──────────────┐     ┌───────────────────┐     ┌──────────────────┐
    │  CLI / app   │────▶│ ConnectionSession │────▶│ MySQL | SQLite   │
    └──────┬───────┘     └─────────▲─────────┘     └──────────────────┘
           │                       │ borrowed per call
           ▼                       │
    ┌──────────────────────────────┴───────────────────────────────┐
    │ SchemaBootstrapper | InventoryRepository | OwnerRepository    │
    │ OwnershipTransferService | ReportAggregator                   │
    └───────────────────────────────────────────────────────────────┘

Invariants:
    - A session owns exactly one live connection; consumers never keep it
    - The engine kind is decided once, when the connection is opened
    - Multi-row changes (batch import, transfer) are all-or-nothing
    - Repository calls report failures as OperationResult, never raw
      driver exceptions

How to change safely:
    - Keep both DDL resources in sync when adding columns or tables
    - Write SQL with ``?`` placeholders; the session adapts them per engine
    - Run the test suite against SQLite before touching transaction code
"""

from ._version import __version__

__all__ = ["__version__"]
