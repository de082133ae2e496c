"""
Read-only inventory statistics.

Each method runs one aggregate query on the session's connection; none of
them opens a transaction. Driver errors propagate to the caller (the report
writer turns them into a failed OperationResult).
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from decimal import Decimal

from ..engine.session import ConnectionSession
from ..store.models import FEATURE_DELIMITER, to_decimal

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PriceStatistics:
    """Average, minimum and maximum price; zeros for an empty inventory."""

    average: Decimal
    minimum: Decimal
    maximum: Decimal


@dataclass(frozen=True)
class OwnershipCounts:
    """Vehicles held by individuals vs. dealership stock."""

    owned: int
    unowned: int


@dataclass(frozen=True)
class MakeStatistics:
    """Per-make vehicle count and prices."""

    make: str
    total: int
    average_price: Decimal
    minimum_price: Decimal
    maximum_price: Decimal


class ReportAggregator:
    """Summary queries over the vehicles table."""

    def __init__(self, session: ConnectionSession) -> None:
        self._session = session

    def _fetchall(self, query: str) -> list[tuple]:
        with self._session.cursor() as cursor:
            cursor.execute(query)
            return list(cursor.fetchall())

    def total_vehicles(self) -> int:
        rows = self._fetchall("SELECT COUNT(*) FROM vehicles")
        return int(rows[0][0])

    def count_by_make(self) -> list[tuple[str, int]]:
        """(make, count) pairs, most common make first."""
        rows = self._fetchall(
            "SELECT make, COUNT(*) AS total FROM vehicles GROUP BY make ORDER BY total DESC, make"
        )
        return [(make, int(total)) for make, total in rows]

    def most_popular_feature(self) -> str | None:
        """Most frequent single feature across all vehicles.

        Ties go to the feature encountered first. None when no vehicle
        lists any feature.
        """
        rows = self._fetchall(
            "SELECT features FROM vehicles WHERE features IS NOT NULL AND features <> ''"
        )
        counts: Counter[str] = Counter()
        for (features,) in rows:
            for token in features.split(FEATURE_DELIMITER):
                token = token.strip()
                if token:
                    counts[token] += 1

        if not counts:
            return None
        # most_common keeps insertion order among equal counts
        return counts.most_common(1)[0][0]

    def price_statistics(self) -> PriceStatistics:
        rows = self._fetchall("SELECT AVG(price), MIN(price), MAX(price) FROM vehicles")
        average, minimum, maximum = rows[0]
        return PriceStatistics(
            average=to_decimal(average).quantize(CENTS),
            minimum=to_decimal(minimum),
            maximum=to_decimal(maximum),
        )

    def ownership_counts(self) -> OwnershipCounts:
        rows = self._fetchall("SELECT COUNT(owner_id), COUNT(*) - COUNT(owner_id) FROM vehicles")
        owned, unowned = rows[0]
        return OwnershipCounts(owned=int(owned), unowned=int(unowned))

    def make_statistics(self) -> list[MakeStatistics]:
        """Count and average/min/max price per make, by make name."""
        rows = self._fetchall(
            "SELECT make, COUNT(*), AVG(price), MIN(price), MAX(price) "
            "FROM vehicles GROUP BY make ORDER BY make"
        )
        return [
            MakeStatistics(
                make=make,
                total=int(total),
                average_price=to_decimal(average).quantize(CENTS),
                minimum_price=to_decimal(minimum),
                maximum_price=to_decimal(maximum),
            )
            for make, total, average, minimum, maximum in rows
        ]
