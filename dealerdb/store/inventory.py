"""
Vehicle inventory repository.

Single-statement CRUD over the vehicles table plus the CSV batch import.

Invariants:
    - Every method returns an OperationResult; driver exceptions are logged
      and classified, never propagated
    - Plates are immutable; update() changes every other column except owner
    - import_batch() is all-or-nothing: one bad line leaves the table as it
      was before the call
    - The connection is borrowed from the session per call, never stored

How to change safely:
    - Keep the CSV column order in sync with CSV_FIELDS
    - Route new multi-statement writes through session.transaction()
"""

from __future__ import annotations

import csv
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

from ..engine.session import INTEGRITY_ERRORS, STORAGE_ERRORS, ConnectionSession
from ..errors import ValidationError
from .models import (
    FailureReason,
    OperationResult,
    OwnedVehicle,
    Vehicle,
    VehicleRow,
    decimal_param,
    validate_vehicle,
)

logger = logging.getLogger(__name__)

CSV_DELIMITER = ";"
CSV_FIELDS = ("plate", "make", "model", "features", "price")

_INSERT = (
    "INSERT INTO vehicles (plate, make, model, features, price, owner_id) "
    "VALUES (?, ?, ?, ?, ?, NULL)"
)
_UPDATE = "UPDATE vehicles SET make = ?, model = ?, features = ?, price = ? WHERE plate = ?"
_SELECT_ONE = "SELECT plate, make, model, features, price, owner_id FROM vehicles WHERE plate = ?"
_DELETE = "DELETE FROM vehicles WHERE plate = ?"
_SELECT_UNOWNED = (
    "SELECT plate, make, model, features, price, owner_id FROM vehicles WHERE owner_id IS NULL"
)
_SELECT_OWNED = (
    "SELECT v.plate, v.make, v.model, v.price, o.national_id, o.name, o.surname "
    "FROM vehicles v "
    "INNER JOIN owners o ON v.owner_id = o.owner_id "
    "WHERE v.owner_id IS NOT NULL"
)


def _storage_failure(action: str, exc: Exception) -> OperationResult:
    if isinstance(exc, INTEGRITY_ERRORS):
        logger.warning(f"Constraint violation while trying to {action}: {exc}")
        return OperationResult.failure(FailureReason.CONSTRAINT_VIOLATION, str(exc))
    logger.error(f"Storage error while trying to {action}: {exc}")
    return OperationResult.failure(FailureReason.STORAGE_ERROR, str(exc))


class InventoryRepository:
    """CRUD and bulk import for vehicles.

    Example:
        >>> inventory = InventoryRepository(session)
        >>> if inventory.insert("1234ABC", "Seat", "Ibiza", "GPS|Bluetooth", Decimal("10000")):
        ...     vehicle = inventory.find_by_plate("1234ABC").value
    """

    def __init__(self, session: ConnectionSession) -> None:
        self._session = session

    @staticmethod
    def _row_params(row: VehicleRow) -> tuple:
        return (row.plate, row.make, row.model, row.features, decimal_param(row.price))

    def insert(
        self,
        plate: str,
        make: str,
        model: str,
        features: str,
        price: Decimal | int | str,
    ) -> OperationResult:
        """Add a vehicle to dealership stock (no owner).

        Returns:
            Success with the stored Vehicle; INVALID_INPUT or
            CONSTRAINT_VIOLATION (duplicate plate) on failure
        """
        try:
            row = validate_vehicle(plate, make, model, features, price)
        except ValidationError as exc:
            return OperationResult.failure(FailureReason.INVALID_INPUT, exc.message)

        try:
            with self._session.cursor() as cursor:
                cursor.execute(self._session.prepare(_INSERT), self._row_params(row))
                inserted = cursor.rowcount
        except STORAGE_ERRORS as exc:
            return _storage_failure(f"insert vehicle {row.plate}", exc)

        if inserted == 0:
            return OperationResult.failure(FailureReason.STORAGE_ERROR, f"Vehicle {row.plate} was not inserted")

        logger.info("Inserted vehicle", extra={"plate": row.plate})
        return OperationResult.success(
            Vehicle(row.plate, row.make, row.model, row.features, row.price, None)
        )

    def update(
        self,
        plate: str,
        make: str,
        model: str,
        features: str,
        price: Decimal | int | str,
    ) -> OperationResult:
        """Replace make, model, features and price of an existing vehicle.

        Returns:
            Success, or NOT_FOUND when no vehicle has that plate
        """
        try:
            row = validate_vehicle(plate, make, model, features, price)
        except ValidationError as exc:
            return OperationResult.failure(FailureReason.INVALID_INPUT, exc.message)

        try:
            with self._session.cursor() as cursor:
                cursor.execute(
                    self._session.prepare(_UPDATE),
                    (row.make, row.model, row.features, decimal_param(row.price), row.plate),
                )
                updated = cursor.rowcount
        except STORAGE_ERRORS as exc:
            return _storage_failure(f"update vehicle {row.plate}", exc)

        if updated == 0:
            return OperationResult.failure(FailureReason.NOT_FOUND, f"No vehicle with plate {row.plate}")

        logger.info("Updated vehicle", extra={"plate": row.plate})
        return OperationResult.success()

    def find_by_plate(self, plate: str) -> OperationResult:
        """Look up a vehicle; ``value`` is the Vehicle on success."""
        try:
            with self._session.cursor() as cursor:
                cursor.execute(self._session.prepare(_SELECT_ONE), (plate,))
                row = cursor.fetchone()
        except STORAGE_ERRORS as exc:
            return _storage_failure(f"find vehicle {plate}", exc)

        if row is None:
            return OperationResult.failure(FailureReason.NOT_FOUND, f"No vehicle with plate {plate}")
        return OperationResult.success(Vehicle.from_row(row))

    def delete(self, plate: str) -> OperationResult:
        """Remove a vehicle.

        Vehicles that appear in transfer history cannot be removed and fail
        with CONSTRAINT_VIOLATION.
        """
        try:
            with self._session.cursor() as cursor:
                cursor.execute(self._session.prepare(_DELETE), (plate,))
                deleted = cursor.rowcount
        except STORAGE_ERRORS as exc:
            return _storage_failure(f"delete vehicle {plate}", exc)

        if deleted == 0:
            return OperationResult.failure(FailureReason.NOT_FOUND, f"No vehicle with plate {plate}")

        logger.info("Deleted vehicle", extra={"plate": plate})
        return OperationResult.success()

    def list_unowned(self) -> OperationResult:
        """Dealership stock; ``value`` is a list of Vehicle."""
        return self._list(_SELECT_UNOWNED, Vehicle.from_row, "list dealership stock")

    def list_owned(self) -> OperationResult:
        """Sold vehicles with their owners; ``value`` is a list of OwnedVehicle."""
        return self._list(_SELECT_OWNED, OwnedVehicle.from_row, "list owned vehicles")

    def _list(self, query: str, build: Any, action: str) -> OperationResult:
        try:
            with self._session.cursor() as cursor:
                cursor.execute(query)
                rows = cursor.fetchall()
        except STORAGE_ERRORS as exc:
            return _storage_failure(action, exc)
        return OperationResult.success([build(row) for row in rows])

    def import_batch(self, path: str | Path) -> OperationResult:
        """Import vehicles from a semicolon-separated file in one transaction.

        The first line is a header and is skipped; blank lines are ignored.
        Every other line must hold exactly the fields in CSV_FIELDS.

        Args:
            path: CSV file path

        Returns:
            Success with the number of imported rows, or a failure
            (INVALID_ROW, FILE_ERROR, CONSTRAINT_VIOLATION, STORAGE_ERROR)
            after rolling back every row of the batch
        """
        statement = self._session.prepare(_INSERT)
        imported = 0

        try:
            with self._session.transaction() as cursor:
                with open(path, newline="", encoding="utf-8") as handle:
                    reader = csv.reader(handle, delimiter=CSV_DELIMITER)
                    next(reader, None)

                    for fields in reader:
                        line_number = reader.line_num
                        if not any(value.strip() for value in fields):
                            continue
                        if len(fields) != len(CSV_FIELDS):
                            raise ValidationError(
                                f"Invalid line {line_number}: expected {len(CSV_FIELDS)} fields, "
                                f"got {len(fields)}",
                                line_number=line_number,
                            )

                        row = validate_vehicle(*fields, line_number=line_number)
                        cursor.execute(statement, self._row_params(row))
                        imported += 1
        except ValidationError as exc:
            logger.warning(f"CSV import rolled back: {exc.message}", extra={"path": str(path)})
            return OperationResult.failure(FailureReason.INVALID_ROW, exc.message)
        except csv.Error as exc:
            logger.warning(f"CSV import rolled back: {exc}", extra={"path": str(path)})
            return OperationResult.failure(FailureReason.INVALID_ROW, str(exc))
        except (OSError, UnicodeDecodeError) as exc:
            logger.error(f"CSV import rolled back, cannot read {path}: {exc}")
            return OperationResult.failure(FailureReason.FILE_ERROR, str(exc))
        except STORAGE_ERRORS as exc:
            return _storage_failure(f"import {path}", exc)

        logger.info(f"Imported {imported} vehicles", extra={"path": str(path)})
        return OperationResult.success(imported, detail=f"Imported {imported} vehicles")
