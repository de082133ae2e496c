"""
Store module for dealerdb - records, repositories and the transfer workflow.

This module handles:
- Vehicle CRUD and atomic CSV import
- Owner registration and lookup
- The transactional ownership transfer

Invariants:
    - Repositories report failures through OperationResult
    - Multi-row writes run inside session.transaction()
"""

from .inventory import InventoryRepository
from .models import (
    FailureReason,
    OperationResult,
    OwnedVehicle,
    Owner,
    Transfer,
    Vehicle,
    VehicleRow,
)
from .owners import OwnerRepository
from .transfers import OwnershipTransferService

__all__ = [
    "InventoryRepository",
    "OwnerRepository",
    "OwnershipTransferService",
    "FailureReason",
    "OperationResult",
    "Owner",
    "Vehicle",
    "OwnedVehicle",
    "Transfer",
    "VehicleRow",
]
