"""Owner registration and lookup."""

from __future__ import annotations

import logging

from ..engine.session import INTEGRITY_ERRORS, STORAGE_ERRORS, ConnectionSession
from .models import FailureReason, OperationResult, Owner

logger = logging.getLogger(__name__)

_INSERT = "INSERT INTO owners (national_id, name, surname, phone) VALUES (?, ?, ?, ?)"
_SELECT_BY_NATIONAL_ID = (
    "SELECT owner_id, national_id, name, surname, phone FROM owners WHERE national_id = ?"
)
_SELECT_BY_ID = "SELECT owner_id, national_id, name, surname, phone FROM owners WHERE owner_id = ?"


class OwnerRepository:
    """Owners are created once and never modified."""

    def __init__(self, session: ConnectionSession) -> None:
        self._session = session

    def register(self, national_id: str, name: str, surname: str, phone: str = "") -> OperationResult:
        """Register an owner; ``value`` is the stored Owner.

        Fails with CONSTRAINT_VIOLATION if the national id is already taken.
        """
        national_id = national_id.strip()
        if not national_id or not name.strip() or not surname.strip():
            return OperationResult.failure(
                FailureReason.INVALID_INPUT, "National id, name and surname are required"
            )

        try:
            with self._session.cursor() as cursor:
                cursor.execute(
                    self._session.prepare(_INSERT),
                    (national_id, name.strip(), surname.strip(), phone.strip() or None),
                )
                owner_id = cursor.lastrowid
        except INTEGRITY_ERRORS as exc:
            logger.warning(f"Owner {national_id} not registered: {exc}")
            return OperationResult.failure(FailureReason.CONSTRAINT_VIOLATION, str(exc))
        except STORAGE_ERRORS as exc:
            logger.error(f"Storage error registering owner {national_id}: {exc}")
            return OperationResult.failure(FailureReason.STORAGE_ERROR, str(exc))

        logger.info("Registered owner", extra={"owner_id": owner_id})
        return OperationResult.success(
            Owner(owner_id, national_id, name.strip(), surname.strip(), phone.strip() or None)
        )

    def find_by_national_id(self, national_id: str) -> OperationResult:
        """Look up an owner; ``value`` is the Owner, NOT_FOUND otherwise."""
        try:
            with self._session.cursor() as cursor:
                cursor.execute(self._session.prepare(_SELECT_BY_NATIONAL_ID), (national_id,))
                row = cursor.fetchone()
        except STORAGE_ERRORS as exc:
            logger.error(f"Storage error looking up owner {national_id}: {exc}")
            return OperationResult.failure(FailureReason.STORAGE_ERROR, str(exc))

        if row is None:
            return OperationResult.failure(FailureReason.NOT_FOUND, f"No owner with national id {national_id}")
        return OperationResult.success(Owner.from_row(row))

    def find_by_id(self, owner_id: int) -> OperationResult:
        """Resolve an owner reference held by a vehicle or transfer."""
        try:
            with self._session.cursor() as cursor:
                cursor.execute(self._session.prepare(_SELECT_BY_ID), (owner_id,))
                row = cursor.fetchone()
        except STORAGE_ERRORS as exc:
            logger.error(f"Storage error looking up owner #{owner_id}: {exc}")
            return OperationResult.failure(FailureReason.STORAGE_ERROR, str(exc))

        if row is None:
            return OperationResult.failure(FailureReason.NOT_FOUND, f"No owner with id {owner_id}")
        return OperationResult.success(Owner.from_row(row))
