"""
Record Store

The in-memory, authoritative list of receivables and revenues for the
current session.

CRITICAL BOUNDARIES:
1. Local actions are CONFIRMATION-GATED. Input is validated, the change
   is sent to the repository, and only the record the repository hands
   back is applied here. If validation or storage fails, the store is
   exactly as it was before the call.
2. Changes made elsewhere enter ONLY through apply_external_change.
   It is idempotent, because our own changes come back as echoes.
3. Subscribers (the view projector) are notified after every change.

All mutations run on one event loop. There is no locking: ordering and
idempotence are what matter, not mutual exclusion.
"""

from typing import Any, Callable, Optional, Union
from uuid import UUID

import pydantic
import structlog

from paylogix.audit import AuditLogger
from paylogix.errors import NoSessionError, NotFoundError, PersistenceError
from paylogix.models.records import (
    ChangeKind,
    ExternalChange,
    Receivable,
    Record,
    RecordKind,
    Revenue,
    ValidationResult,
    parse_record,
)
from paylogix.services.storage import RecordRepository
from paylogix.validation import RecordValidator, to_amount


logger = structlog.get_logger(__name__)

Listener = Callable[["RecordStore"], None]


class RecordStore:
    """
    Holds the session's records and the only API that changes them.

    Usage:
        store = RecordStore(repository)
        await store.load()
        receivable = await store.add_receivable("Invoice #12", 1_500_000, due)
        await store.record_payment(receivable.id, 500_000)
    """

    def __init__(
        self,
        repository: RecordRepository,
        validator: Optional[RecordValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._repository = repository
        self._validator = validator or RecordValidator()
        self._audit = audit_logger or AuditLogger()
        self._records: dict[RecordKind, list[Record]] = {
            kind: [] for kind in RecordKind
        }
        self._listeners: list[Listener] = []

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def receivables(self) -> tuple[Receivable, ...]:
        """Receivables in store order (not display order)."""
        return tuple(self._records[RecordKind.RECEIVABLE])

    @property
    def revenues(self) -> tuple[Revenue, ...]:
        """Revenues in store order (not display order)."""
        return tuple(self._records[RecordKind.REVENUE])

    def get(self, kind: RecordKind, record_id: str) -> Optional[Record]:
        index = self._index(kind, record_id)
        return None if index is None else self._records[kind][index]

    def get_receivable(self, record_id: str) -> Optional[Receivable]:
        return self.get(RecordKind.RECEIVABLE, record_id)

    def get_revenue(self, record_id: str) -> Optional[Revenue]:
        return self.get(RecordKind.REVENUE, record_id)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call listener(store) after every change.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                # The change is already applied; a failing view must not
                # turn a successful save into an error for the caller
                logger.exception("store_listener_failed")

    # -------------------------------------------------------------------------
    # In-memory list operations
    # -------------------------------------------------------------------------

    def _index(self, kind: RecordKind, record_id: str) -> Optional[int]:
        for index, record in enumerate(self._records[kind]):
            if record.id == record_id:
                return index
        return None

    def _upsert(self, kind: RecordKind, record: Record) -> None:
        """Replace the record with the same id, or append it."""
        index = self._index(kind, record.id)
        if index is None:
            self._records[kind].append(record)
        else:
            self._records[kind][index] = record

    def _replace(self, kind: RecordKind, record: Record) -> bool:
        """Replace the record with the same id. False if there is none."""
        index = self._index(kind, record.id)
        if index is None:
            return False
        self._records[kind][index] = record
        return True

    def _remove(self, kind: RecordKind, record_id: str) -> bool:
        index = self._index(kind, record_id)
        if index is None:
            return False
        del self._records[kind][index]
        return True

    # -------------------------------------------------------------------------
    # Shared steps of every local mutation
    # -------------------------------------------------------------------------

    async def _ensure_valid(
        self,
        kind: RecordKind,
        action: str,
        result: ValidationResult,
        correlation_id: Optional[UUID],
    ) -> None:
        if not result.is_valid:
            await self._audit.log_validation_failed(
                kind=kind.value,
                action=action,
                issues=[issue.model_dump() for issue in result.issues],
                correlation_id=correlation_id,
            )
        self._validator.ensure_valid(result, action)

    async def _persist(
        self,
        kind: RecordKind,
        action: str,
        call,
        record_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Any:
        """Await a repository call, auditing failures before re-raising."""
        try:
            return await call
        except NoSessionError:
            await self._audit.log_session_missing(action)
            raise
        except PersistenceError as e:
            await self._audit.log_persistence_failed(
                kind=kind.value,
                action=action,
                error_message=str(e),
                record_id=record_id,
                correlation_id=correlation_id,
            )
            raise

    def _parse_confirmed(self, kind: RecordKind, data: dict[str, Any]) -> Record:
        try:
            return parse_record(kind, data)
        except pydantic.ValidationError as e:
            raise PersistenceError(f"Storage returned an invalid {kind.value}: {e}")

    def _apply_confirmed_update(self, kind: RecordKind, record: Record) -> None:
        if self._replace(kind, record):
            self._notify()
        else:
            # Deleted by another session while our update was in flight.
            # Storage already has the delete queued for us; don't resurrect.
            logger.warning(
                "confirmed_update_for_missing_record",
                kind=kind.value,
                record_id=record.id,
            )

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def load(self, correlation_id: Optional[UUID] = None) -> None:
        """
        Replace store contents with what storage holds.

        Receivables arrive ordered by due date, revenues newest first.
        Nothing is replaced unless BOTH tables load.
        """
        rows = {}
        for kind, column, descending in (
            (RecordKind.RECEIVABLE, "due_date", False),
            (RecordKind.REVENUE, "date", True),
        ):
            rows[kind] = await self._persist(
                kind,
                f"load {kind.table}",
                self._repository.query(kind, column, descending),
                correlation_id=correlation_id,
            )

        loaded: dict[RecordKind, list[Record]] = {}
        for kind, data in rows.items():
            loaded[kind] = []
            for row in data:
                try:
                    loaded[kind].append(parse_record(kind, row))
                except pydantic.ValidationError as e:
                    logger.warning(
                        "skipped_malformed_record",
                        kind=kind.value,
                        record_id=row.get("id"),
                        error=str(e),
                    )

        self._records = loaded
        self._notify()

        for kind, records in loaded.items():
            await self._audit.log_records_loaded(
                kind=kind.value,
                count=len(records),
                correlation_id=correlation_id,
            )

    # -------------------------------------------------------------------------
    # Receivables
    # -------------------------------------------------------------------------

    async def add_receivable(
        self,
        description: Optional[str],
        total_amount: Any,
        due_date,
        correlation_id: Optional[UUID] = None,
    ) -> Receivable:
        """
        Create a receivable with nothing paid yet.

        Raises:
            ValidationError: negative or missing amount, blank description,
                             missing due date (unless allowed by settings)
            PersistenceError: storage did not confirm
        """
        kind = RecordKind.RECEIVABLE
        await self._ensure_valid(
            kind,
            "add receivable",
            self._validator.check_receivable(description, total_amount, due_date),
            correlation_id,
        )

        payload = {
            "description": description.strip(),
            "total_amount": str(to_amount(total_amount)),
            "paid_amount": "0",
            "due_date": due_date.isoformat() if due_date else None,
        }
        stored = await self._persist(
            kind,
            "add receivable",
            self._repository.insert(kind, payload),
            correlation_id=correlation_id,
        )
        record = self._parse_confirmed(kind, stored)

        # The feed may have delivered this insert already
        self._upsert(kind, record)
        self._notify()

        await self._audit.log_record_created(
            kind=kind.value,
            record_id=record.id,
            description=record.description,
            amount=str(record.total_amount),
            correlation_id=correlation_id,
        )
        return record

    async def record_payment(
        self,
        receivable_id: str,
        payment_amount: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Receivable:
        """
        Add a payment to a receivable.

        The new paid amount is clamped to the total: paying 10,000 on a
        receivable with 200 remaining pays exactly 200. The paid amount
        never goes down.

        Raises:
            ValidationError: negative or missing payment amount
            NotFoundError: no receivable with this id
            PersistenceError: storage did not confirm
        """
        kind = RecordKind.RECEIVABLE
        await self._ensure_valid(
            kind,
            "record payment",
            self._validator.check_payment(payment_amount),
            correlation_id,
        )

        current = self.get_receivable(receivable_id)
        if current is None:
            raise NotFoundError(kind.value, receivable_id)

        payment = to_amount(payment_amount)
        new_paid = max(
            current.paid_amount,
            min(current.total_amount, current.paid_amount + payment),
        )

        stored = await self._persist(
            kind,
            "record payment",
            self._repository.update(kind, receivable_id, {"paid_amount": str(new_paid)}),
            record_id=receivable_id,
            correlation_id=correlation_id,
        )
        record = self._parse_confirmed(kind, stored)
        self._apply_confirmed_update(kind, record)

        await self._audit.log_payment_recorded(
            receivable_id=record.id,
            payment_amount=str(payment),
            paid_amount=str(record.paid_amount),
            total_amount=str(record.total_amount),
            correlation_id=correlation_id,
        )
        return record

    async def update_receivable(
        self,
        receivable_id: str,
        description: Optional[str],
        total_amount: Any,
        due_date,
        correlation_id: Optional[UUID] = None,
    ) -> Receivable:
        """
        Replace a receivable's description, total and due date.

        The paid amount is left untouched, and the total may not drop
        below it.

        Raises:
            NotFoundError: no receivable with this id
            ValidationError: bad fields or total below the paid amount
            PersistenceError: storage did not confirm
        """
        kind = RecordKind.RECEIVABLE
        current = self.get_receivable(receivable_id)
        if current is None:
            raise NotFoundError(kind.value, receivable_id)

        await self._ensure_valid(
            kind,
            "update receivable",
            self._validator.check_receivable(
                description,
                total_amount,
                due_date,
                paid_amount=current.paid_amount,
            ),
            correlation_id,
        )

        patch = {
            "description": description.strip(),
            "total_amount": str(to_amount(total_amount)),
            "due_date": due_date.isoformat() if due_date else None,
        }
        stored = await self._persist(
            kind,
            "update receivable",
            self._repository.update(kind, receivable_id, patch),
            record_id=receivable_id,
            correlation_id=correlation_id,
        )
        record = self._parse_confirmed(kind, stored)
        self._apply_confirmed_update(kind, record)

        await self._audit.log_record_updated(
            kind=kind.value,
            record_id=record.id,
            changes=patch,
            correlation_id=correlation_id,
        )
        return record

    async def delete_receivable(
        self,
        receivable_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Delete a receivable. Deleting a missing receivable is not an error."""
        await self._delete(RecordKind.RECEIVABLE, receivable_id, correlation_id)

    # -------------------------------------------------------------------------
    # Revenues
    # -------------------------------------------------------------------------

    async def add_revenue(
        self,
        description: Optional[str],
        amount: Any,
        revenue_date,
        correlation_id: Optional[UUID] = None,
    ) -> Revenue:
        """
        Record an income entry.

        Raises:
            ValidationError: negative or missing amount, blank description,
                             missing date
            PersistenceError: storage did not confirm
        """
        kind = RecordKind.REVENUE
        await self._ensure_valid(
            kind,
            "add revenue",
            self._validator.check_revenue(description, amount, revenue_date),
            correlation_id,
        )

        payload = {
            "description": description.strip(),
            "amount": str(to_amount(amount)),
            "date": revenue_date.isoformat(),
        }
        stored = await self._persist(
            kind,
            "add revenue",
            self._repository.insert(kind, payload),
            correlation_id=correlation_id,
        )
        record = self._parse_confirmed(kind, stored)
        self._upsert(kind, record)
        self._notify()

        await self._audit.log_record_created(
            kind=kind.value,
            record_id=record.id,
            description=record.description,
            amount=str(record.amount),
            correlation_id=correlation_id,
        )
        return record

    async def update_revenue(
        self,
        revenue_id: str,
        description: Optional[str],
        amount: Any,
        revenue_date,
        correlation_id: Optional[UUID] = None,
    ) -> Revenue:
        """
        Replace a revenue's description, amount and date.

        Raises:
            NotFoundError: no revenue with this id
            ValidationError: bad fields
            PersistenceError: storage did not confirm
        """
        kind = RecordKind.REVENUE
        if self.get_revenue(revenue_id) is None:
            raise NotFoundError(kind.value, revenue_id)

        await self._ensure_valid(
            kind,
            "update revenue",
            self._validator.check_revenue(description, amount, revenue_date),
            correlation_id,
        )

        patch = {
            "description": description.strip(),
            "amount": str(to_amount(amount)),
            "date": revenue_date.isoformat(),
        }
        stored = await self._persist(
            kind,
            "update revenue",
            self._repository.update(kind, revenue_id, patch),
            record_id=revenue_id,
            correlation_id=correlation_id,
        )
        record = self._parse_confirmed(kind, stored)
        self._apply_confirmed_update(kind, record)

        await self._audit.log_record_updated(
            kind=kind.value,
            record_id=record.id,
            changes=patch,
            correlation_id=correlation_id,
        )
        return record

    async def delete_revenue(
        self,
        revenue_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Delete a revenue. Deleting a missing revenue is not an error."""
        await self._delete(RecordKind.REVENUE, revenue_id, correlation_id)

    async def _delete(
        self,
        kind: RecordKind,
        record_id: str,
        correlation_id: Optional[UUID],
    ) -> None:
        # Always ask storage, even if we don't hold the record: our copy
        # may be stale
        try:
            existed = await self._persist(
                kind,
                f"delete {kind.value}",
                self._repository.delete(kind, record_id),
                record_id=record_id,
                correlation_id=correlation_id,
            )
        except NotFoundError:
            existed = False

        if not existed:
            logger.info("delete_of_missing_record", kind=kind.value, record_id=record_id)

        if self._remove(kind, record_id):
            self._notify()

        await self._audit.log_record_deleted(
            kind=kind.value,
            record_id=record_id,
            existed_in_storage=existed,
            correlation_id=correlation_id,
        )

    # -------------------------------------------------------------------------
    # External changes
    # -------------------------------------------------------------------------

    def apply_external_change(
        self,
        kind: Union[RecordKind, str],
        change_kind: Union[ChangeKind, str],
        record: Optional[dict[str, Any]],
    ) -> bool:
        """
        Merge a change made elsewhere.

        - insert: ignored if the id is already present (usually our own echo)
        - update: last writer wins; keys missing from the payload keep their
                  current value, keys present with None are set to None.
                  Ignored if the id is not present.
        - delete: removes by id, ignored if absent

        Returns:
            True if the store changed
        """
        kind = RecordKind(kind)
        change_kind = ChangeKind(change_kind)
        record = record or {}
        record_id = record.get("id")

        applied = False
        if not record_id:
            logger.warning("external_change_without_id", kind=kind.value)
        elif change_kind == ChangeKind.INSERT:
            if self._index(kind, record_id) is None:
                parsed = self._parse_external(kind, record)
                if parsed is not None:
                    self._records[kind].append(parsed)
                    applied = True
        elif change_kind == ChangeKind.UPDATE:
            current = self.get(kind, record_id)
            if current is not None:
                parsed = self._parse_external(kind, {**current.model_dump(), **record})
                if parsed is not None:
                    applied = self._replace(kind, parsed)
        elif change_kind == ChangeKind.DELETE:
            applied = self._remove(kind, record_id)

        self._audit.log_external_change(
            kind=kind.value,
            change_kind=change_kind.value,
            record_id=record_id,
            applied=applied,
        )
        if applied:
            self._notify()
        return applied

    def apply_change(self, change: ExternalChange) -> bool:
        """Apply a change-feed message. Suitable as a feed handler."""
        return self.apply_external_change(change.table, change.change_kind, change.record)

    def _parse_external(self, kind: RecordKind, data: dict[str, Any]) -> Optional[Record]:
        try:
            return parse_record(kind, data)
        except pydantic.ValidationError as e:
            logger.warning(
                "external_change_malformed",
                kind=kind.value,
                record_id=data.get("id"),
                error=str(e),
            )
            return None
