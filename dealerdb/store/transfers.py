"""
Ownership transfer workflow.

A transfer records who sold a vehicle to whom and for how much, and repoints
the vehicle's owner to the buyer. Both writes happen in one transaction:

    Begin
      -> validate buyer      (missing: abort UNKNOWN_BUYER)
      -> validate vehicle    (missing: abort UNKNOWN_VEHICLE)
      -> resolve seller      (vehicle's current owner, None for stock)
      -> record transfer     (no row: abort INSERT_FAILED)
      -> repoint ownership   (no row: abort UPDATE_FAILED)
    Commit

Invariants:
    - After a successful transfer the vehicle's owner is the buyer and
      exactly one new transfer row references the buyer and previous owner
    - An aborted transfer leaves no transfer row and no owner change
    - The buyer is checked before the vehicle
    - Transfer rows are never updated or deleted

How to change safely:
    - Add new checks as _TransferAborted raises inside the transaction block
    - Never commit or roll back by hand; session.transaction() owns that
"""

from __future__ import annotations

import logging
from decimal import Decimal

from ..engine.session import STORAGE_ERRORS, ConnectionSession
from ..errors import ValidationError
from .models import FailureReason, OperationResult, Transfer, decimal_param, validate_amount

logger = logging.getLogger(__name__)

_SELECT_BUYER = "SELECT owner_id FROM owners WHERE national_id = ?"
_SELECT_CURRENT_OWNER = "SELECT owner_id FROM vehicles WHERE plate = ?"
_INSERT_TRANSFER = (
    "INSERT INTO transfers (plate, seller_id, buyer_id, amount) VALUES (?, ?, ?, ?)"
)
_REPOINT_OWNER = "UPDATE vehicles SET owner_id = ? WHERE plate = ?"
_SELECT_HISTORY = (
    "SELECT transfer_id, plate, seller_id, buyer_id, amount, transferred_at "
    "FROM transfers WHERE plate = ? ORDER BY transfer_id"
)


class _TransferAborted(Exception):
    """Raised inside the transaction block to force a rollback."""

    def __init__(self, reason: FailureReason, detail: str) -> None:
        super().__init__(detail)
        self.reason = reason
        self.detail = detail


class OwnershipTransferService:
    """Sells a vehicle to a registered owner, atomically.

    Example:
        >>> service = OwnershipTransferService(session)
        >>> result = service.transfer("12345678A", "1234ABC", Decimal("9500"))
        >>> result.value.is_dealership_sale
        True
    """

    def __init__(self, session: ConnectionSession) -> None:
        self._session = session

    def transfer(self, buyer_national_id: str, plate: str, amount: Decimal | int | str) -> OperationResult:
        """Transfer a vehicle to a buyer.

        Args:
            buyer_national_id: National id of a registered owner
            plate: Plate of the vehicle being sold
            amount: Non-negative sale amount, at most two decimals and
                eight integer digits

        Returns:
            Success with the recorded Transfer, or a failure whose reason is
            INVALID_INPUT, UNKNOWN_BUYER, UNKNOWN_VEHICLE, INSERT_FAILED,
            UPDATE_FAILED or STORAGE_ERROR. Failures change nothing.
        """
        try:
            value = validate_amount(amount)
        except ValidationError as exc:
            return OperationResult.failure(FailureReason.INVALID_INPUT, exc.message)

        prepare = self._session.prepare
        try:
            with self._session.transaction() as cursor:
                cursor.execute(prepare(_SELECT_BUYER), (buyer_national_id,))
                row = cursor.fetchone()
                if row is None:
                    raise _TransferAborted(
                        FailureReason.UNKNOWN_BUYER,
                        f"No owner with national id {buyer_national_id}",
                    )
                buyer_id = row[0]

                cursor.execute(prepare(_SELECT_CURRENT_OWNER), (plate,))
                row = cursor.fetchone()
                if row is None:
                    raise _TransferAborted(
                        FailureReason.UNKNOWN_VEHICLE,
                        f"No vehicle with plate {plate}",
                    )
                seller_id = row[0]

                cursor.execute(
                    prepare(_INSERT_TRANSFER),
                    (plate, seller_id, buyer_id, decimal_param(value)),
                )
                if cursor.rowcount == 0:
                    raise _TransferAborted(FailureReason.INSERT_FAILED, "Transfer could not be recorded")
                transfer_id = cursor.lastrowid

                cursor.execute(prepare(_REPOINT_OWNER), (buyer_id, plate))
                if cursor.rowcount == 0:
                    raise _TransferAborted(FailureReason.UPDATE_FAILED, "Vehicle owner could not be updated")
        except _TransferAborted as abort:
            logger.warning(
                f"Transfer aborted: {abort.detail}",
                extra={"plate": plate, "reason": abort.reason.value},
            )
            return OperationResult.failure(abort.reason, abort.detail)
        except STORAGE_ERRORS as exc:
            logger.error(f"Transfer of {plate} rolled back: {exc}", extra={"plate": plate})
            return OperationResult.failure(FailureReason.STORAGE_ERROR, str(exc))

        transfer = Transfer(
            transfer_id=transfer_id,
            plate=plate,
            seller_id=seller_id,
            buyer_id=buyer_id,
            amount=value,
        )
        logger.info(
            "Transfer completed",
            extra={
                "plate": plate,
                "transfer_id": transfer_id,
                "dealership_sale": transfer.is_dealership_sale,
            },
        )
        return OperationResult.success(transfer)

    def history(self, plate: str) -> OperationResult:
        """Transfers of a vehicle, oldest first; ``value`` is a list of Transfer."""
        try:
            with self._session.cursor() as cursor:
                cursor.execute(self._session.prepare(_SELECT_HISTORY), (plate,))
                rows = cursor.fetchall()
        except STORAGE_ERRORS as exc:
            logger.error(f"Storage error reading transfers of {plate}: {exc}")
            return OperationResult.failure(FailureReason.STORAGE_ERROR, str(exc))
        return OperationResult.success([Transfer.from_row(row) for row in rows])
