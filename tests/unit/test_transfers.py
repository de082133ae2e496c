"""
Unit tests for OwnershipTransferService.

Tests cover:
- Dealership and owner-to-owner sales
- Buyer and vehicle validation order
- All-or-nothing behavior on every abort path
- Transfer history
"""

from decimal import Decimal

import pytest

from dealerdb.store import (
    FailureReason,
    InventoryRepository,
    OwnerRepository,
    OwnershipTransferService,
)


class TestOwnershipTransferService:
    """Tests for the transfer workflow."""

    @pytest.fixture
    def inventory(self, store):
        inventory = InventoryRepository(store)
        inventory.insert("1234ABC", "Seat", "Ibiza", "GPS|Bluetooth", "10000")
        return inventory

    @pytest.fixture
    def owners(self, store):
        owners = OwnerRepository(store)
        owners.register("12345678A", "Ana", "Garcia")
        owners.register("87654321B", "Luis", "Perez")
        return owners

    @pytest.fixture
    def service(self, store, inventory, owners):
        return OwnershipTransferService(store)

    def owner_id(self, owners, national_id):
        return owners.find_by_national_id(national_id).value.owner_id

    def test_dealership_sale(self, service, inventory, owners, count_rows):
        """Selling from stock records a transfer with no seller."""
        buyer_id = self.owner_id(owners, "12345678A")

        result = service.transfer("12345678A", "1234ABC", 9500)

        assert result
        transfer = result.value
        assert transfer.seller_id is None
        assert transfer.is_dealership_sale
        assert transfer.buyer_id == buyer_id
        assert transfer.amount == Decimal("9500")
        assert isinstance(transfer.transfer_id, int)

        assert inventory.find_by_plate("1234ABC").value.owner_id == buyer_id
        assert count_rows("transfers") == 1

        history = service.history("1234ABC").value
        assert len(history) == 1
        assert history[0].seller_id is None
        assert history[0].buyer_id == buyer_id
        assert history[0].amount == Decimal("9500")
        assert history[0].transferred_at is not None

    def test_owner_to_owner_sale(self, service, inventory, owners):
        first_buyer = self.owner_id(owners, "12345678A")
        second_buyer = self.owner_id(owners, "87654321B")
        service.transfer("12345678A", "1234ABC", "9500")

        result = service.transfer("87654321B", "1234ABC", "8000.50")

        assert result
        assert result.value.seller_id == first_buyer
        assert result.value.buyer_id == second_buyer
        assert inventory.find_by_plate("1234ABC").value.owner_id == second_buyer

        history = service.history("1234ABC").value
        assert [entry.seller_id for entry in history] == [None, first_buyer]
        assert history[1].amount == Decimal("8000.50")

    def test_unknown_buyer_checked_first(self, service, count_rows):
        """With both buyer and plate unknown the buyer is reported."""
        result = service.transfer("99999999Z", "0000ZZZ", 100)

        assert not result
        assert result.reason is FailureReason.UNKNOWN_BUYER
        assert count_rows("transfers") == 0

    def test_unknown_vehicle(self, service, count_rows):
        result = service.transfer("12345678A", "0000ZZZ", 100)

        assert result.reason is FailureReason.UNKNOWN_VEHICLE
        assert count_rows("transfers") == 0

    @pytest.mark.parametrize(
        "amount",
        ["-1", "abc", "NaN", "Infinity", Decimal("-0.01"), "9500.129", "100000000"],
    )
    def test_invalid_amount(self, service, inventory, amount, count_rows):
        result = service.transfer("12345678A", "1234ABC", amount)

        assert result.reason is FailureReason.INVALID_INPUT
        assert count_rows("transfers") == 0
        assert inventory.find_by_plate("1234ABC").value.is_dealership_stock

    def test_zero_amount_allowed(self, service):
        assert service.transfer("12345678A", "1234ABC", 0)

    def test_largest_amount_stored_exactly(self, service):
        result = service.transfer("12345678A", "1234ABC", " 99999999.99 ")

        assert result.value.amount == Decimal("99999999.99")
        assert service.history("1234ABC").value[0].amount == Decimal("99999999.99")

    def test_storage_failure_rolls_back_transfer_row(self, store, service, inventory, count_rows):
        """A failing owner update discards the transfer row already inserted."""
        with store.cursor() as cursor:
            cursor.execute(
                "CREATE TRIGGER block_owner_change BEFORE UPDATE OF owner_id ON vehicles "
                "BEGIN SELECT RAISE(ABORT, 'owner change blocked'); END"
            )

        result = service.transfer("12345678A", "1234ABC", "9500")

        assert result.reason is FailureReason.STORAGE_ERROR
        assert count_rows("transfers") == 0
        assert inventory.find_by_plate("1234ABC").value.is_dealership_stock
        assert not store.current().in_transaction

    def test_update_failed_rolls_back(self, store, service, inventory, count_rows):
        """An owner update that touches no row aborts the transfer."""
        with store.cursor() as cursor:
            cursor.execute(
                "CREATE TRIGGER skip_owner_change BEFORE UPDATE OF owner_id ON vehicles "
                "BEGIN SELECT RAISE(IGNORE); END"
            )

        result = service.transfer("12345678A", "1234ABC", "9500")

        assert result.reason is FailureReason.UPDATE_FAILED
        assert count_rows("transfers") == 0
        assert inventory.find_by_plate("1234ABC").value.is_dealership_stock

    def test_history_empty(self, service):
        result = service.history("1234ABC")

        assert result
        assert result.value == []
