"""
Reports module for dealerdb - read-only statistics and the text summary.
"""

from .aggregator import MakeStatistics, OwnershipCounts, PriceStatistics, ReportAggregator
from .writer import render_summary_report, write_summary_report

__all__ = [
    "ReportAggregator",
    "PriceStatistics",
    "OwnershipCounts",
    "MakeStatistics",
    "render_summary_report",
    "write_summary_report",
]
