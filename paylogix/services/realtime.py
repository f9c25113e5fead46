"""
Change Feed

Delivers changes made to shared storage by ANY session (including this one)
as ExternalChange messages.

Google Sheets has no push channel, so PollingChangeFeed reads each table at
a fixed interval and diffs it against the previous snapshot:
- id present now but not before  -> insert
- id present before but not now  -> delete
- id present in both, row differs -> update

The first poll only records a baseline and emits nothing. Take the baseline
BEFORE the initial load of the record store: anything that changes in
between is then both loaded and replayed, and replays are harmless because
the store applies external changes idempotently.

Our own mutations come back as echoes on the next poll. That is expected.
"""

import asyncio
from abc import ABC, abstractmethod
from contextlib import suppress
from typing import Any, Callable, Iterable, Optional

import structlog

from paylogix.models.records import ChangeKind, ExternalChange, RecordKind
from paylogix.services.storage.interface import PersistenceError, RecordRepository


logger = structlog.get_logger(__name__)

ChangeHandler = Callable[[ExternalChange], None]


class ChangeFeed(ABC):
    """Source of ExternalChange messages, delivered one at a time."""

    def __init__(self):
        self._handlers: list[ChangeHandler] = []

    def subscribe(self, handler: ChangeHandler) -> Callable[[], None]:
        """Register a handler. Returns a function that unregisters it."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def _publish(self, change: ExternalChange) -> None:
        for handler in list(self._handlers):
            try:
                handler(change)
            except Exception:
                # One broken handler must not starve the others
                logger.exception(
                    "change_handler_failed",
                    table=change.table.table,
                    change_kind=change.change_kind.value,
                    record_id=change.record_id,
                )

    @abstractmethod
    async def poll_once(self) -> list[ExternalChange]:
        """Fetch and publish pending changes. Returns what was published."""
        pass

    @abstractmethod
    async def start(self) -> None:
        """Begin delivering changes in the background."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stop background delivery."""
        pass


class PollingChangeFeed(ChangeFeed):
    """Change feed that diffs periodic snapshots of a repository."""

    def __init__(
        self,
        repository: RecordRepository,
        interval_seconds: float = 5.0,
        kinds: Iterable[RecordKind] = tuple(RecordKind),
    ):
        super().__init__()
        self._repository = repository
        self._interval = interval_seconds
        self._kinds = tuple(kinds)
        self._snapshots: dict[RecordKind, dict[str, dict[str, Any]]] = {}
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _diff(
        self,
        kind: RecordKind,
        previous: dict[str, dict[str, Any]],
        current: dict[str, dict[str, Any]],
    ) -> list[ExternalChange]:
        changes = []
        for record_id, row in current.items():
            if record_id not in previous:
                changes.append(ExternalChange(
                    table=kind,
                    change_kind=ChangeKind.INSERT,
                    new_record=row,
                ))
            elif previous[record_id] != row:
                changes.append(ExternalChange(
                    table=kind,
                    change_kind=ChangeKind.UPDATE,
                    new_record=row,
                    old_record=previous[record_id],
                ))
        for record_id, row in previous.items():
            if record_id not in current:
                changes.append(ExternalChange(
                    table=kind,
                    change_kind=ChangeKind.DELETE,
                    old_record=row,
                ))
        return changes

    async def poll_once(self) -> list[ExternalChange]:
        published = []
        for kind in self._kinds:
            rows = await self._repository.query(kind, order_column="id")
            current = {row["id"]: row for row in rows if row.get("id")}
            previous = self._snapshots.get(kind)
            self._snapshots[kind] = current

            if previous is None:
                logger.debug("change_feed_baseline", table=kind.table, rows=len(current))
                continue

            for change in self._diff(kind, previous, current):
                self._publish(change)
                published.append(change)

        return published

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except PersistenceError as e:
                # Storage hiccup: keep the old snapshot and try again next tick
                logger.warning("change_feed_poll_failed", error=str(e))
            await asyncio.sleep(self._interval)

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info("change_feed_started", interval_seconds=self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("change_feed_stopped")
