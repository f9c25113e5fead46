"""Record store and view projection package."""

from paylogix.store.projector import (
    ViewProjector,
    format_currency,
    format_date,
    project,
    round_amount,
    sort_receivables,
    sort_revenues,
    summarize_receivables,
    summarize_revenues,
)
from paylogix.store.record_store import RecordStore

__all__ = [
    "RecordStore",
    "ViewProjector",
    "format_currency",
    "format_date",
    "project",
    "round_amount",
    "sort_receivables",
    "sort_revenues",
    "summarize_receivables",
    "summarize_revenues",
]
