"""
Unit tests for InventoryRepository.

Tests cover:
- Vehicle CRUD and failure classification
- Owned / unowned listings
- Atomic CSV import
"""

import os
from decimal import Decimal

import pytest

from dealerdb.store import (
    FailureReason,
    InventoryRepository,
    OwnerRepository,
    OwnershipTransferService,
)

HEADER = "matricula;marca;modelo;extras;precio\n"


class TestInventoryRepository:
    """Tests for single-vehicle operations."""

    @pytest.fixture
    def inventory(self, store):
        return InventoryRepository(store)

    def test_insert_and_find(self, inventory):
        result = inventory.insert("1234ABC", "Seat", "Ibiza", "GPS|Bluetooth", Decimal("10000.50"))

        assert result
        assert result.value.plate == "1234ABC"

        found = inventory.find_by_plate("1234ABC")
        assert found
        vehicle = found.value
        assert vehicle.make == "Seat"
        assert vehicle.model == "Ibiza"
        assert vehicle.feature_list == ["GPS", "Bluetooth"]
        assert vehicle.price == Decimal("10000.50")
        assert vehicle.is_dealership_stock

    def test_insert_duplicate_plate(self, inventory):
        assert inventory.insert("1234ABC", "Seat", "Ibiza", "", "10000")

        result = inventory.insert("1234ABC", "Ford", "Focus", "", "15000")

        assert not result
        assert result.reason is FailureReason.CONSTRAINT_VIOLATION
        assert inventory.find_by_plate("1234ABC").value.make == "Seat"

    @pytest.mark.parametrize(
        "plate,price",
        [
            ("", "10000"),
            ("1234ABC", "cheap"),
            ("1234ABC", "-1"),
            ("1234ABC", "10000.555"),
        ],
    )
    def test_insert_invalid_input(self, inventory, count_rows, plate, price):
        result = inventory.insert(plate, "Seat", "Ibiza", "", price)

        assert not result
        assert result.reason is FailureReason.INVALID_INPUT
        assert count_rows("vehicles") == 0

    def test_update(self, inventory):
        inventory.insert("1234ABC", "Seat", "Ibiza", "GPS", "10000")

        result = inventory.update("1234ABC", "Seat", "Ibiza FR", "GPS|Leather", "12500")

        assert result
        vehicle = inventory.find_by_plate("1234ABC").value
        assert vehicle.model == "Ibiza FR"
        assert vehicle.features == "GPS|Leather"
        assert vehicle.price == Decimal("12500")

    def test_update_with_same_values(self, inventory):
        """An update that changes nothing still finds the vehicle."""
        inventory.insert("1234ABC", "Seat", "Ibiza", "GPS", "10000")

        assert inventory.update("1234ABC", "Seat", "Ibiza", "GPS", "10000")

    def test_update_not_found(self, inventory):
        result = inventory.update("0000ZZZ", "Seat", "Ibiza", "", "10000")

        assert result.reason is FailureReason.NOT_FOUND

    def test_find_not_found(self, inventory):
        result = inventory.find_by_plate("0000ZZZ")

        assert not result
        assert result.reason is FailureReason.NOT_FOUND

    def test_delete(self, inventory):
        inventory.insert("1234ABC", "Seat", "Ibiza", "", "10000")

        assert inventory.delete("1234ABC")
        assert inventory.find_by_plate("1234ABC").reason is FailureReason.NOT_FOUND

    def test_delete_not_found(self, inventory):
        assert inventory.delete("0000ZZZ").reason is FailureReason.NOT_FOUND

    def test_delete_with_transfer_history(self, store, inventory):
        """Vehicles with recorded transfers cannot be removed."""
        inventory.insert("1234ABC", "Seat", "Ibiza", "", "10000")
        OwnerRepository(store).register("12345678A", "Ana", "Garcia")
        assert OwnershipTransferService(store).transfer("12345678A", "1234ABC", "9500")

        result = inventory.delete("1234ABC")

        assert result.reason is FailureReason.CONSTRAINT_VIOLATION
        assert inventory.find_by_plate("1234ABC")

    def test_listings(self, store, inventory):
        inventory.insert("1234ABC", "Seat", "Ibiza", "", "10000")
        inventory.insert("5678DEF", "Ford", "Focus", "", "15000")
        OwnerRepository(store).register("12345678A", "Ana", "Garcia")
        OwnershipTransferService(store).transfer("12345678A", "5678DEF", "14000")

        unowned = inventory.list_unowned().value
        owned = inventory.list_owned().value

        assert [vehicle.plate for vehicle in unowned] == ["1234ABC"]
        assert len(owned) == 1
        assert owned[0].plate == "5678DEF"
        assert owned[0].national_id == "12345678A"
        assert owned[0].surname == "Garcia"

    def test_listings_empty(self, inventory):
        assert inventory.list_unowned().value == []
        assert inventory.list_owned().value == []

    def test_storage_error_without_tables(self, session):
        result = InventoryRepository(session).insert("1234ABC", "Seat", "Ibiza", "", "10000")

        assert result.reason is FailureReason.STORAGE_ERROR


class TestImportBatch:
    """Tests for the CSV import."""

    @pytest.fixture
    def inventory(self, store):
        return InventoryRepository(store)

    @pytest.fixture
    def write_csv(self, data_dir):
        def write(content, name="vehicles.csv"):
            path = os.path.join(data_dir, name)
            with open(path, "w", encoding="utf-8") as handle:
                handle.write(content)
            return path

        return write

    def test_import(self, inventory, write_csv, count_rows):
        path = write_csv(
            HEADER
            + "1234ABC;Seat;Ibiza;GPS|Bluetooth;10000\n"
            + "5678DEF;Ford;Focus;;15000.50\n"
            + "9012GHI;Toyota;Corolla;Hybrid;22000\n"
        )

        result = inventory.import_batch(path)

        assert result
        assert result.value == 3
        assert count_rows("vehicles") == 3
        focus = inventory.find_by_plate("5678DEF").value
        assert focus.features == ""
        assert focus.price == Decimal("15000.50")
        assert focus.is_dealership_stock

    def test_blank_lines_ignored(self, inventory, write_csv):
        path = write_csv(HEADER + "\n1234ABC;Seat;Ibiza;GPS;10000\n\n5678DEF;Ford;Focus;;15000\n\n")

        result = inventory.import_batch(path)

        assert result.value == 2

    def test_header_only(self, inventory, write_csv):
        result = inventory.import_batch(write_csv(HEADER))

        assert result
        assert result.value == 0

    def test_wrong_field_count_rolls_back(self, store, inventory, write_csv, count_rows):
        path = write_csv(
            HEADER + "1234ABC;Seat;Ibiza;GPS;10000\n" + "5678DEF;Ford;Focus;15000\n"
        )

        result = inventory.import_batch(path)

        assert not result
        assert result.reason is FailureReason.INVALID_ROW
        assert "line 3" in result.detail
        assert count_rows("vehicles") == 0
        assert not store.current().in_transaction

    def test_bad_price_rolls_back(self, inventory, write_csv, count_rows):
        path = write_csv(HEADER + "1234ABC;Seat;Ibiza;GPS;10000\n" + "5678DEF;Ford;Focus;;quince mil\n")

        result = inventory.import_batch(path)

        assert result.reason is FailureReason.INVALID_ROW
        assert count_rows("vehicles") == 0

    def test_duplicate_plate_rolls_back(self, inventory, write_csv, count_rows):
        """A plate already in stock aborts the batch, the existing row stays."""
        inventory.insert("5678DEF", "Ford", "Focus", "", "15000")
        path = write_csv(HEADER + "1234ABC;Seat;Ibiza;GPS;10000\n" + "5678DEF;Ford;Focus;;15000\n")

        result = inventory.import_batch(path)

        assert result.reason is FailureReason.CONSTRAINT_VIOLATION
        assert count_rows("vehicles") == 1
        assert inventory.find_by_plate("1234ABC").reason is FailureReason.NOT_FOUND

    def test_missing_file(self, store, inventory, data_dir):
        result = inventory.import_batch(os.path.join(data_dir, "absent.csv"))

        assert result.reason is FailureReason.FILE_ERROR
        assert not store.current().in_transaction

    def test_import_then_single_insert(self, inventory, write_csv, count_rows):
        """The session is back in auto-commit mode after an import."""
        inventory.import_batch(write_csv(HEADER + "1234ABC;Seat;Ibiza;GPS;10000\n"))

        assert inventory.insert("5678DEF", "Ford", "Focus", "", "15000")
        assert count_rows("vehicles") == 2
