"""
Earnings Aggregation

DESIGN DECISION: Earnings are DETERMINISTIC sums over stored invoices.
Only PAID invoices count. Each one lands in the (year, month) bucket of
its due date, or of "now" when it has no due date.

Months are 1..12 throughout.
"""

import calendar
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Union

from clientist.models import Invoice, InvoiceStatus, utc_now


Number = Union[Decimal, int, float]


class EarningsSummary:
    """
    Paid-invoice totals bucketed by (year, month).

    Built once from a list of invoices, then queried by the dashboard's
    month and year pickers.
    """

    def __init__(self, buckets: dict[tuple[int, int], Decimal]):
        self._buckets = dict(buckets)

    @classmethod
    def from_invoices(
        cls,
        invoices: Iterable[Invoice],
        now: Optional[datetime] = None,
    ) -> "EarningsSummary":
        now = now or utc_now()
        buckets: dict[tuple[int, int], Decimal] = defaultdict(Decimal)

        for invoice in invoices:
            if invoice.status != InvoiceStatus.PAID:
                continue
            when = invoice.due_date or now
            buckets[(when.year, when.month)] += invoice.total_amount or Decimal("0")

        return cls(buckets)

    def amount_for_month(self, year: int, month: int) -> Decimal:
        if not 1 <= month <= 12:
            raise ValueError(f"Month must be 1..12, got {month}")
        return self._buckets.get((year, month), Decimal("0"))

    def total_for_year(self, year: int) -> Decimal:
        return sum(
            (self._buckets.get((year, month), Decimal("0")) for month in range(1, 13)),
            Decimal("0"),
        )

    def available_years(self) -> list[int]:
        """Years with at least one paid invoice, newest first."""
        return sorted({year for year, _ in self._buckets}, reverse=True)

    def available_months(self, year: int) -> list[int]:
        """Months of the given year that have data, newest first."""
        return sorted(
            (month for bucket_year, month in self._buckets if bucket_year == year),
            reverse=True,
        )

    def month_year_pairs(self) -> list[tuple[int, int]]:
        return sorted(self._buckets, reverse=True)


def format_amount(amount: Number, currency_symbol: str = "") -> str:
    """
    Compact display of an amount.

    Thousands and millions are truncated, never rounded:
    1999 -> "1k", 2_500_000 -> "2M". Smaller amounts keep two decimals.
    """
    amount = Decimal(str(amount))
    if amount >= 1_000_000:
        text = f"{int(amount // 1_000_000)}M"
    elif amount >= 1_000:
        text = f"{int(amount // 1_000)}k"
    else:
        text = f"{amount:.2f}"
    return f"{currency_symbol}{text}"


def month_label(year: int, month: int) -> str:
    """E.g. (2024, 1) -> "January 2024"."""
    return f"{calendar.month_name[month]} {year}"
