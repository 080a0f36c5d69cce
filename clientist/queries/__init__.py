"""Deterministic aggregations over stored records."""

from clientist.queries.dashboard import DashboardOverview, ServiceProviderStats
from clientist.queries.earnings import EarningsSummary, format_amount, month_label

__all__ = [
    "DashboardOverview",
    "EarningsSummary",
    "ServiceProviderStats",
    "format_amount",
    "month_label",
]
