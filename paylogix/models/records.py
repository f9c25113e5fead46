"""
Core Data Models for PayLogix

These models define the schemas for the two record types we track and for
the messages that move them around:
1. Receivable / Revenue - the records themselves
2. ExternalChange - a change made elsewhere and pushed to us
3. EditingItem - a tagged variant for "the record currently being edited"
4. Summaries / DashboardView - derived, read-only projections

DESIGN DECISION: Amounts are Decimal, never float. They are whole-unit
currency (Rupiah) for display, but we keep whatever precision storage gives
us and only round when formatting.

NOTE: Records coming back from storage are NOT re-validated against the
paid <= total invariant. A record edited outside this app can violate it,
and refusing to load it would hide data from the user.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def utcnow() -> dt.datetime:
    """Timezone-aware current UTC time."""
    return dt.datetime.now(dt.timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class RecordKind(str, Enum):
    """
    The two record types.

    Each kind is persisted in its own table (worksheet or storage key),
    named after the plural of the kind.
    """
    RECEIVABLE = "receivable"
    REVENUE = "revenue"

    @property
    def table(self) -> str:
        """Backing table name (e.g. 'receivables')."""
        return f"{self.value}s"


class ChangeKind(str, Enum):
    """Kind of change carried by an external notification."""
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


# =============================================================================
# RECORD MODELS
# =============================================================================

def _blank_date_to_none(value: Any) -> Any:
    # Storage hands back "" for an empty date cell
    if value == "" or value is None:
        return None
    return value


class Receivable(BaseModel):
    """
    An amount owed to us, paid off in one or more instalments.

    `paid_amount` only moves up, through RecordStore.record_payment.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique identifier assigned by storage"
    )
    description: str = Field(
        ...,
        max_length=500,
        description="What the receivable is for"
    )
    total_amount: Decimal = Field(
        ...,
        ge=0,
        description="Total amount owed"
    )
    paid_amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Amount paid so far"
    )
    due_date: Optional[dt.date] = Field(
        default=None,
        description="Payment due date"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the record (remote storage only)"
    )
    created_at: Optional[dt.datetime] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def blank_due_date_is_none(cls, v: Any) -> Any:
        return _blank_date_to_none(v)

    @property
    def remaining(self) -> Decimal:
        """Amount still owed."""
        return self.total_amount - self.paid_amount

    @property
    def is_paid(self) -> bool:
        """Fully paid once nothing remains."""
        return self.remaining <= 0


class Revenue(BaseModel):
    """An income entry. Fully realized when recorded, no partial state."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique identifier assigned by storage"
    )
    description: str = Field(
        ...,
        max_length=500,
        description="Source of the income"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount received"
    )
    date: Optional[dt.date] = Field(
        default=None,
        description="Date the income was received"
    )
    user_id: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    @field_validator("date", mode="before")
    @classmethod
    def blank_date_is_none(cls, v: Any) -> Any:
        return _blank_date_to_none(v)


Record = Union[Receivable, Revenue]

RECORD_MODELS: dict[RecordKind, type] = {
    RecordKind.RECEIVABLE: Receivable,
    RecordKind.REVENUE: Revenue,
}


def parse_record(kind: RecordKind, data: dict[str, Any]) -> Record:
    """Build the right record model for a kind from a storage payload."""
    return RECORD_MODELS[kind].model_validate(data)


# =============================================================================
# CHANGE NOTIFICATIONS
# =============================================================================

class ExternalChange(BaseModel):
    """
    A change performed against shared storage, possibly by another session.

    CRITICAL: These are applied only through RecordStore.apply_change,
    never by mutating records directly.

    For inserts and updates the payload is in `new_record`; for deletes
    only `old_record` is guaranteed and it may contain nothing but the id.
    """

    table: RecordKind
    change_kind: ChangeKind
    new_record: Optional[dict[str, Any]] = None
    old_record: Optional[dict[str, Any]] = None
    received_at: dt.datetime = Field(default_factory=utcnow)

    @property
    def record(self) -> dict[str, Any]:
        """The payload relevant to this change kind."""
        if self.change_kind == ChangeKind.DELETE:
            return self.old_record or {}
        return self.new_record or {}

    @property
    def record_id(self) -> Optional[str]:
        return self.record.get("id")


# =============================================================================
# EDITING - tagged variant
# =============================================================================

class ReceivableEdit(BaseModel):
    """A receivable opened in the edit form."""
    kind: Literal["receivable"] = "receivable"
    data: Receivable


class RevenueEdit(BaseModel):
    """A revenue opened in the edit form."""
    kind: Literal["revenue"] = "revenue"
    data: Revenue


EditingItem = Annotated[
    Union[ReceivableEdit, RevenueEdit],
    Field(discriminator="kind"),
]


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found in user input."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'negative', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Outcome of validating one add/edit/pay request."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]

    @property
    def is_valid(self) -> bool:
        """Warnings never block; errors always do."""
        return not self.errors


# =============================================================================
# VIEW MODELS - derived, never stored
# =============================================================================

class ReceivablesSummary(BaseModel):
    """Totals over ALL receivables, not just the visible ones."""
    total: Decimal = Decimal("0")
    remaining: Decimal = Decimal("0")


class RevenuesSummary(BaseModel):
    """Total over all revenues."""
    total: Decimal = Decimal("0")


class DashboardView(BaseModel):
    """Everything the dashboard renders, derived from the store."""

    receivables: list[Receivable] = Field(default_factory=list)
    revenues: list[Revenue] = Field(default_factory=list)
    receivables_summary: ReceivablesSummary = Field(
        default_factory=ReceivablesSummary
    )
    revenues_summary: RevenuesSummary = Field(default_factory=RevenuesSummary)
