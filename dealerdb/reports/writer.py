"""Plain-text summary report."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from ..engine.session import STORAGE_ERRORS
from ..store.models import FailureReason, OperationResult
from .aggregator import ReportAggregator

logger = logging.getLogger(__name__)

HEAVY_RULE = "═" * 63
LIGHT_RULE = "─" * 63


def render_summary_report(aggregator: ReportAggregator, now: datetime | None = None) -> str:
    """Build the report text from the aggregator's queries."""
    now = now or datetime.now()
    lines = [
        HEAVY_RULE,
        "           DEALERSHIP SUMMARY REPORT",
        HEAVY_RULE,
        f"Generated: {now:%d/%m/%Y %H:%M:%S}",
        HEAVY_RULE,
        "",
        "1. TOTAL VEHICLES",
        LIGHT_RULE,
        f"Vehicles in the database: {aggregator.total_vehicles()}",
        "",
        "2. VEHICLES BY MAKE",
        LIGHT_RULE,
    ]

    by_make = aggregator.count_by_make()
    if by_make:
        lines.extend(f"{make:<20} : {total} vehicles" for make, total in by_make)
    else:
        lines.append("No vehicles registered")
    lines.append("")

    lines.extend(["3. MOST POPULAR FEATURE", LIGHT_RULE])
    feature = aggregator.most_popular_feature()
    if feature:
        lines.append(f"Most requested feature: {feature}")
    else:
        lines.append("No feature data available")
    lines.append("")

    prices = aggregator.price_statistics()
    ownership = aggregator.ownership_counts()
    lines.extend(
        [
            "4. ADDITIONAL STATISTICS",
            LIGHT_RULE,
            f"Average price: {prices.average:.2f}€",
            f"Minimum price: {prices.minimum:.2f}€",
            f"Maximum price: {prices.maximum:.2f}€",
            f"Sold vehicles (with owner): {ownership.owned}",
            f"Vehicles in stock: {ownership.unowned}",
            "",
            HEAVY_RULE,
            "                    END OF REPORT",
            HEAVY_RULE,
        ]
    )
    return "\n".join(lines) + "\n"


def write_summary_report(
    aggregator: ReportAggregator,
    path: str | Path,
    now: datetime | None = None,
) -> OperationResult:
    """Write the summary report to a text file.

    Returns:
        Success with the report path, or FILE_ERROR / STORAGE_ERROR
    """
    try:
        text = render_summary_report(aggregator, now)
    except STORAGE_ERRORS as exc:
        logger.error(f"Cannot collect report data: {exc}")
        return OperationResult.failure(FailureReason.STORAGE_ERROR, str(exc))

    try:
        Path(path).write_text(text, encoding="utf-8")
    except OSError as exc:
        logger.error(f"Cannot write report to {path}: {exc}")
        return OperationResult.failure(FailureReason.FILE_ERROR, str(exc))

    logger.info("Report written", extra={"path": str(path)})
    return OperationResult.success(Path(path))
