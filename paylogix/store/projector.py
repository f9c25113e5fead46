"""
View Projector

Pure derivations of what the dashboard shows, computed from the store's
current contents. Nothing here mutates a record or talks to storage.

Display rules:
- Receivables: still-owed first, fully paid last. Inside each group the
  earliest due date comes first; receivables without a due date go to the
  end of their group.
- Revenues: newest first; revenues without a date go last.
- Both sorts are stable: records with equal keys keep store order.
- Summaries cover ALL records, not just what is on screen.

Amounts are whole-unit Rupiah on screen: formatting rounds half up to zero
decimal places and groups thousands with ".".
"""

import datetime as dt
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from paylogix.models.records import (
    DashboardView,
    Receivable,
    ReceivablesSummary,
    Revenue,
    RevenuesSummary,
)


INDONESIAN_MONTHS = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]


def sort_receivables(receivables: Iterable[Receivable]) -> list[Receivable]:
    """Unpaid before paid, then by due date ascending, undated last."""
    return sorted(
        receivables,
        key=lambda r: (
            r.is_paid,
            r.due_date is None,
            r.due_date or dt.date.min,
        ),
    )


def sort_revenues(revenues: Iterable[Revenue]) -> list[Revenue]:
    """Newest date first, undated last."""
    return sorted(
        revenues,
        key=lambda r: (
            r.date is None,
            -r.date.toordinal() if r.date else 0,
        ),
    )


def summarize_receivables(receivables: Iterable[Receivable]) -> ReceivablesSummary:
    summary = ReceivablesSummary()
    for receivable in receivables:
        summary.total += receivable.total_amount
        summary.remaining += receivable.remaining
    return summary


def summarize_revenues(revenues: Iterable[Revenue]) -> RevenuesSummary:
    return RevenuesSummary(total=sum((r.amount for r in revenues), Decimal("0")))


def project(
    receivables: Iterable[Receivable],
    revenues: Iterable[Revenue],
) -> DashboardView:
    """Build the complete dashboard view."""
    receivables = list(receivables)
    revenues = list(revenues)
    return DashboardView(
        receivables=sort_receivables(receivables),
        revenues=sort_revenues(revenues),
        receivables_summary=summarize_receivables(receivables),
        revenues_summary=summarize_revenues(revenues),
    )


def round_amount(amount: Decimal) -> Decimal:
    """Round to whole currency units, half away from zero."""
    return Decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def format_currency(amount: Decimal, symbol: str = "Rp") -> str:
    """
    Format an amount the way id-ID formats IDR.

    >>> format_currency(Decimal("1500000"))
    'Rp\\xa01.500.000'
    """
    rounded = round_amount(amount)
    grouped = f"{abs(rounded):,.0f}".replace(",", ".")
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}\u00a0{grouped}"


def format_date(value: Optional[dt.date]) -> str:
    """'05 Maret 2024', or '-' when there is no date."""
    if value is None:
        return "-"
    return f"{value.day:02d} {INDONESIAN_MONTHS[value.month - 1]} {value.year}"


class ViewProjector:
    """
    Keeps a DashboardView in sync with a RecordStore.

    Subscribes on construction and recomputes on every store change.
    """

    def __init__(self, store):
        self._view = project(store.receivables, store.revenues)
        self._unsubscribe = store.subscribe(self._on_change)

    def _on_change(self, store) -> None:
        self._view = project(store.receivables, store.revenues)

    @property
    def view(self) -> DashboardView:
        return self._view

    def close(self) -> None:
        """Stop following the store."""
        self._unsubscribe()
