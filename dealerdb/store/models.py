"""
Data model for the dealership inventory.

Attributes of each record mirror the table columns. Prices and amounts are
Decimal on the Python side whatever the engine returns (SQLite hands back
int/float, PyMySQL hands back Decimal).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError

FEATURE_DELIMITER = "|"


def to_decimal(value: Any) -> Decimal:
    """Normalize a numeric column value to Decimal."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class Owner:
    """A registered individual owner.

    Attributes:
        owner_id: Surrogate key referenced by vehicles and transfers
        national_id: National identity document number (unique)
        name: Given name
        surname: Family name(s)
        phone: Contact phone
    """

    owner_id: int
    national_id: str
    name: str
    surname: str
    phone: Optional[str]

    @classmethod
    def from_row(cls, row: tuple) -> Owner:
        return cls(
            owner_id=row[0],
            national_id=row[1],
            name=row[2],
            surname=row[3],
            phone=row[4],
        )


@dataclass(frozen=True)
class Vehicle:
    """A vehicle. owner_id is None for dealership stock.

    Attributes:
        plate: Registration plate (identity)
        make: Manufacturer
        model: Model name
        features: Optional equipment joined with ``|``
        price: Non-negative price
        owner_id: Current owner, None while unsold
    """

    plate: str
    make: str
    model: str
    features: str
    price: Decimal
    owner_id: Optional[int] = None

    @property
    def is_dealership_stock(self) -> bool:
        return self.owner_id is None

    @property
    def feature_list(self) -> list[str]:
        return [token.strip() for token in self.features.split(FEATURE_DELIMITER) if token.strip()]

    @classmethod
    def from_row(cls, row: tuple) -> Vehicle:
        return cls(
            plate=row[0],
            make=row[1],
            model=row[2],
            features=row[3] or "",
            price=to_decimal(row[4]),
            owner_id=row[5],
        )


@dataclass(frozen=True)
class OwnedVehicle:
    """A sold vehicle joined with its owner, for listings."""

    plate: str
    make: str
    model: str
    price: Decimal
    national_id: str
    name: str
    surname: str

    @classmethod
    def from_row(cls, row: tuple) -> OwnedVehicle:
        return cls(
            plate=row[0],
            make=row[1],
            model=row[2],
            price=to_decimal(row[3]),
            national_id=row[4],
            name=row[5],
            surname=row[6],
        )


@dataclass(frozen=True)
class Transfer:
    """An ownership transfer. seller_id is None for dealership sales.

    Attributes:
        transfer_id: Surrogate key (None before the store assigns one)
        plate: Vehicle transferred
        seller_id: Previous owner, None when sold by the dealership
        buyer_id: New owner
        amount: Agreed amount
        transferred_at: Timestamp filled by the store
    """

    transfer_id: Optional[int]
    plate: str
    seller_id: Optional[int]
    buyer_id: int
    amount: Decimal
    transferred_at: Optional[datetime | str] = None

    @property
    def is_dealership_sale(self) -> bool:
        return self.seller_id is None

    @classmethod
    def from_row(cls, row: tuple) -> Transfer:
        return cls(
            transfer_id=row[0],
            plate=row[1],
            seller_id=row[2],
            buyer_id=row[3],
            amount=to_decimal(row[4]),
            transferred_at=row[5],
        )


class FailureReason(Enum):
    """Why a repository or service operation failed."""

    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    INVALID_ROW = "invalid_row"
    FILE_ERROR = "file_error"
    CONSTRAINT_VIOLATION = "constraint_violation"
    STORAGE_ERROR = "storage_error"
    UNKNOWN_BUYER = "unknown_buyer"
    UNKNOWN_VEHICLE = "unknown_vehicle"
    INSERT_FAILED = "insert_failed"
    UPDATE_FAILED = "update_failed"


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a repository or service call.

    Truthiness follows ``ok`` so callers can keep writing ``if repo.insert(...)``
    while the reason and detail stay available for diagnostics.

    Attributes:
        ok: Whether the operation succeeded
        reason: Failure classification (None on success)
        detail: Human-readable diagnostic
        value: Payload on success (record, list, count)
    """

    ok: bool
    reason: Optional[FailureReason] = None
    detail: str = ""
    value: Any = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, value: Any = None, detail: str = "") -> OperationResult:
        return cls(ok=True, value=value, detail=detail)

    @classmethod
    def failure(cls, reason: FailureReason, detail: str) -> OperationResult:
        return cls(ok=False, reason=reason, detail=detail)


class VehicleRow(BaseModel):
    """Validated vehicle input, from a CSV line or a direct call."""

    model_config = ConfigDict(str_strip_whitespace=True)

    plate: str = Field(..., min_length=1, max_length=15)
    make: str = Field(..., min_length=1, max_length=50)
    model: str = Field(..., min_length=1, max_length=50)
    features: str = Field(default="", max_length=500)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)


def validate_vehicle(
    plate: str,
    make: str,
    model: str,
    features: str,
    price: Any,
    line_number: Optional[int] = None,
) -> VehicleRow:
    """Validate vehicle fields.

    Raises:
        ValidationError: If any field is invalid
    """
    try:
        return VehicleRow(plate=plate, make=make, model=model, features=features or "", price=price)
    except PydanticValidationError as exc:
        errors = [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()]
        where = f" on line {line_number}" if line_number is not None else ""
        raise ValidationError(
            f"Invalid vehicle data{where}: {'; '.join(errors)}",
            line_number=line_number,
            errors=errors,
        ) from exc


class TransferAmount(BaseModel):
    """Validated sale amount; same bounds as the DECIMAL(10, 2) columns."""

    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)


def validate_amount(amount: Any) -> Decimal:
    """Validate a transfer amount.

    Raises:
        ValidationError: If the amount is not a non-negative decimal that
            fits DECIMAL(10, 2)
    """
    try:
        return TransferAmount(amount=amount).amount
    except PydanticValidationError as exc:
        errors = [err["msg"] for err in exc.errors()]
        raise ValidationError(
            f"Invalid transfer amount {amount}: {'; '.join(errors)}",
            errors=errors,
        ) from exc


def decimal_param(value: Decimal) -> str:
    """Bind a Decimal as text; both engines coerce it into their DECIMAL columns."""
    return str(value)
