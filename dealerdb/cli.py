"""
dealerdb command line.

Opens a session on the configured engine, runs one command and closes the
session:
- init: Create the tables (idempotent)
- add / edit / show / delete / list: Vehicle inventory
- import: Atomic CSV import
- register-owner: Register an individual owner
- transfer / history: Ownership transfers
- report / make-stats: Statistics

Usage:
    dealerdb init
    dealerdb --engine mysql import vehicles.csv
    dealerdb transfer 12345678A 1234ABC 9500
    dealerdb report --output informe.txt

Configuration is read from environment variables (see config.py); --engine
and --sqlite-path override them.

Invariants:
    - Exit code 0 on success, 1 when an operation fails, 2 when no usable
      session or schema is available
    - Command output goes to stdout, diagnostics and logs to stderr
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from typing import Sequence

import json_log_formatter

from .config import AppConfig, EmbeddedConfig, parse_engine
from .engine import STORAGE_ERRORS, ConnectionSession, SchemaBootstrapper, open_session
from .errors import DealerDbError
from .reports import ReportAggregator, write_summary_report
from .store import (
    FailureReason,
    InventoryRepository,
    OperationResult,
    OwnerRepository,
    OwnershipTransferService,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_UNAVAILABLE = 2

DEFAULT_REPORT_PATH = "informe_concesionario.txt"


def setup_logging(config: AppConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Application configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("pymysql").setLevel(logging.WARNING)


def _fail(result: OperationResult) -> int:
    reason = result.reason.value if result.reason else "error"
    print(f"Error ({reason}): {result.detail}", file=sys.stderr)
    return EXIT_FAILED


class DealerCLI:
    """Command implementations over one open session.

    Example:
        >>> with open_session(config) as session:
        ...     DealerCLI(session).list_vehicles(owned=False)
    """

    def __init__(self, session: ConnectionSession) -> None:
        self.session = session
        self.inventory = InventoryRepository(session)
        self.owners = OwnerRepository(session)
        self.transfers = OwnershipTransferService(session)
        self.aggregator = ReportAggregator(session)

    def init(self) -> int:
        executed = SchemaBootstrapper().bootstrap(self.session)
        print(f"Tables ready for {self.session.classify().value} ({executed} statements)")
        return EXIT_OK

    def add(self, plate: str, make: str, model: str, features: str, price: str) -> int:
        result = self.inventory.insert(plate, make, model, features, price)
        if not result:
            return _fail(result)
        print(f"Vehicle {result.value.plate} added to dealership stock")
        return EXIT_OK

    def show(self, plate: str) -> int:
        result = self.inventory.find_by_plate(plate)
        if not result:
            return _fail(result)
        vehicle = result.value

        owner = "dealership"
        if not vehicle.is_dealership_stock:
            found = self.owners.find_by_id(vehicle.owner_id)
            if not found:
                return _fail(found)
            owner = f"{found.value.national_id} ({found.value.name} {found.value.surname})"

        print(f"Plate:    {vehicle.plate}")
        print(f"Make:     {vehicle.make}")
        print(f"Model:    {vehicle.model}")
        print(f"Features: {vehicle.features}")
        print(f"Price:    {vehicle.price:.2f}€")
        print(f"Owner:    {owner}")
        return EXIT_OK

    def edit(self, plate: str, make: str, model: str, features: str | None, price: str) -> int:
        current = self.inventory.find_by_plate(plate)
        if not current:
            return _fail(current)
        if features is None:
            features = current.value.features

        result = self.inventory.update(plate, make, model, features, price)
        if not result:
            return _fail(result)
        print(f"Vehicle {plate} updated")
        return EXIT_OK

    def delete(self, plate: str) -> int:
        result = self.inventory.delete(plate)
        if not result:
            return _fail(result)
        print(f"Vehicle {plate} deleted")
        return EXIT_OK

    def list_vehicles(self, owned: bool) -> int:
        if owned:
            result = self.inventory.list_owned()
            if not result:
                return _fail(result)
            print(f"{'PLATE':<12} {'MAKE':<15} {'MODEL':<15} {'PRICE':>10} | {'ID':<12} {'NAME':<20} {'SURNAME':<20}")
            for item in result.value:
                print(
                    f"{item.plate:<12} {item.make:<15} {item.model:<15} {item.price:>9.2f}€ | "
                    f"{item.national_id:<12} {item.name:<20} {item.surname:<20}"
                )
            if not result.value:
                print("No vehicles sold to owners")
            return EXIT_OK

        result = self.inventory.list_unowned()
        if not result:
            return _fail(result)
        print(f"{'PLATE':<12} {'MAKE':<15} {'MODEL':<15} {'FEATURES':<35} {'PRICE':>10}")
        for vehicle in result.value:
            print(
                f"{vehicle.plate:<12} {vehicle.make:<15} {vehicle.model:<15} "
                f"{vehicle.features:<35} {vehicle.price:>9.2f}€"
            )
        if not result.value:
            print("No vehicles in dealership stock")
        return EXIT_OK

    def import_csv(self, path: str) -> int:
        result = self.inventory.import_batch(path)
        if not result:
            return _fail(result)
        print(f"Imported {result.value} vehicles")
        return EXIT_OK

    def register_owner(self, national_id: str, name: str, surname: str, phone: str) -> int:
        result = self.owners.register(national_id, name, surname, phone)
        if not result:
            return _fail(result)
        print(f"Owner {result.value.national_id} registered")
        return EXIT_OK

    def transfer(self, national_id: str, plate: str, amount: str) -> int:
        result = self.transfers.transfer(national_id, plate, amount)
        if not result:
            return _fail(result)
        transfer = result.value
        kind = "Dealership sale" if transfer.is_dealership_sale else "Private sale"
        print(f"{kind}: {plate} to {national_id} for {transfer.amount:.2f}€")
        return EXIT_OK

    def history(self, plate: str) -> int:
        result = self.transfers.history(plate)
        if not result:
            return _fail(result)
        for transfer in result.value:
            seller = "dealership" if transfer.is_dealership_sale else transfer.seller_id
            print(
                f"#{transfer.transfer_id} {transfer.transferred_at} "
                f"{seller} -> {transfer.buyer_id} {transfer.amount:.2f}€"
            )
        if not result.value:
            print(f"No transfers recorded for {plate}")
        return EXIT_OK

    def report(self, output: str) -> int:
        result = write_summary_report(self.aggregator, output)
        if not result:
            return _fail(result)
        print(f"Report written to {result.value}")
        return EXIT_OK

    def make_stats(self) -> int:
        try:
            stats = self.aggregator.make_statistics()
        except STORAGE_ERRORS as exc:
            logger.error(f"Cannot collect make statistics: {exc}")
            return _fail(OperationResult.failure(FailureReason.STORAGE_ERROR, str(exc)))

        print(f"{'MAKE':<15} {'TOTAL':>8} {'AVERAGE':>14} {'MINIMUM':>14} {'MAXIMUM':>14}")
        for row in stats:
            print(
                f"{row.make:<15} {row.total:>8} {row.average_price:>13.2f}€ "
                f"{row.minimum_price:>13.2f}€ {row.maximum_price:>13.2f}€"
            )
        if not stats:
            print("No data to show")
        return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dealerdb", description="Dealership inventory tool")
    parser.add_argument("--engine", help="Storage engine: mysql or sqlite (default: DEALERDB_ENGINE)")
    parser.add_argument("--sqlite-path", help="SQLite database file (default: SQLITE_PATH)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init", help="Create the tables")

    add_parser = subparsers.add_parser("add", help="Add a vehicle to dealership stock")
    add_parser.add_argument("plate")
    add_parser.add_argument("make")
    add_parser.add_argument("model")
    add_parser.add_argument("price")
    add_parser.add_argument("--features", default="", help="Features separated by |")

    edit_parser = subparsers.add_parser("edit", help="Change a vehicle's data")
    edit_parser.add_argument("plate")
    edit_parser.add_argument("make")
    edit_parser.add_argument("model")
    edit_parser.add_argument("price")
    edit_parser.add_argument("--features", help="Features separated by | (default: unchanged)")

    show_parser = subparsers.add_parser("show", help="Show a vehicle")
    show_parser.add_argument("plate")

    delete_parser = subparsers.add_parser("delete", help="Delete a vehicle")
    delete_parser.add_argument("plate")

    list_parser = subparsers.add_parser("list", help="List dealership stock")
    list_parser.add_argument("--owned", action="store_true", help="List vehicles sold to owners")

    import_parser = subparsers.add_parser("import", help="Import vehicles from a CSV file")
    import_parser.add_argument("path")

    owner_parser = subparsers.add_parser("register-owner", help="Register an owner")
    owner_parser.add_argument("national_id")
    owner_parser.add_argument("name")
    owner_parser.add_argument("surname")
    owner_parser.add_argument("--phone", default="")

    transfer_parser = subparsers.add_parser("transfer", help="Transfer a vehicle to an owner")
    transfer_parser.add_argument("national_id")
    transfer_parser.add_argument("plate")
    transfer_parser.add_argument("amount")

    history_parser = subparsers.add_parser("history", help="Show a vehicle's transfers")
    history_parser.add_argument("plate")

    report_parser = subparsers.add_parser("report", help="Write the summary report")
    report_parser.add_argument("--output", "-o", default=DEFAULT_REPORT_PATH)

    subparsers.add_parser("make-stats", help="Show price statistics per make")

    return parser


def load_config(args: argparse.Namespace) -> AppConfig:
    """Environment configuration with command line overrides applied."""
    config = AppConfig.from_env()
    if args.engine:
        config = dataclasses.replace(config, engine=parse_engine(args.engine))
    if args.sqlite_path:
        config = dataclasses.replace(config, embedded=EmbeddedConfig(path=args.sqlite_path))
    config.validate()
    return config


def run(cli: DealerCLI, args: argparse.Namespace) -> int:
    if args.command == "init":
        return cli.init()
    elif args.command == "add":
        return cli.add(args.plate, args.make, args.model, args.features, args.price)
    elif args.command == "edit":
        return cli.edit(args.plate, args.make, args.model, args.features, args.price)
    elif args.command == "show":
        return cli.show(args.plate)
    elif args.command == "delete":
        return cli.delete(args.plate)
    elif args.command == "list":
        return cli.list_vehicles(args.owned)
    elif args.command == "import":
        return cli.import_csv(args.path)
    elif args.command == "register-owner":
        return cli.register_owner(args.national_id, args.name, args.surname, args.phone)
    elif args.command == "transfer":
        return cli.transfer(args.national_id, args.plate, args.amount)
    elif args.command == "history":
        return cli.history(args.plate)
    elif args.command == "report":
        return cli.report(args.output)
    elif args.command == "make-stats":
        return cli.make_stats()
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except DealerDbError as exc:
        print(f"Configuration error: {exc.message}", file=sys.stderr)
        return EXIT_UNAVAILABLE

    setup_logging(config)
    config.log_config()

    try:
        with open_session(config) as session:
            return run(DealerCLI(session), args)
    except DealerDbError as exc:
        logger.error(f"{exc.code}: {exc.message}")
        print(f"Error: {exc.message}", file=sys.stderr)
        return EXIT_UNAVAILABLE
