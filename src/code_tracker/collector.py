"""Activity collector: records edits and flushes them into daily snapshots."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

from .aggregation import aggregate
from .config import TrackerSettings
from .diff import DiffExtractor
from .merge import SnapshotMerger
from .models import ChangeRecord, PeriodSnapshot, snapshot_date
from .recorder import ChangeRecorder, Notifier, TrackerState
from .reporting import EMPTY_SUMMARY, build_flush_summary
from .store import SnapshotStore, SnapshotStoreError

logger = logging.getLogger(__name__)

Publisher = Callable[[str], Union[None, Awaitable[None]]]


@dataclass(slots=True)
class FlushResult:
    records_flushed: int = 0
    persisted: list[PeriodSnapshot] = field(default_factory=list)
    summary: str = EMPTY_SUMMARY


class ActivityCollector:
    """Buffers change records and periodically merges them into the store."""

    def __init__(
        self,
        store: SnapshotStore,
        settings: Optional[TrackerSettings] = None,
        *,
        state: Optional[TrackerState] = None,
        extractor: Optional[DiffExtractor] = None,
        project_name: Optional[str] = None,
        workspace_root: Optional[Path] = None,
        publisher: Optional[Publisher] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self.store = store
        self.settings = settings or TrackerSettings()
        self.state = state or TrackerState.from_settings(self.settings)
        self.recorder = ChangeRecorder(
            self.state,
            extractor,
            project_name=project_name,
            workspace_root=workspace_root,
            notifier=notifier,
        )
        self.merger = SnapshotMerger(store, top_n=self.settings.top_n)
        self._publisher = publisher
        self._flush_lock = asyncio.Lock()
        self.last_flush_time: Optional[datetime] = None

    @property
    def pending_records(self) -> int:
        return len(self.state.records)

    async def observe(
        self, file_path: Path, timestamp: Optional[datetime] = None
    ) -> Optional[ChangeRecord]:
        return await self.recorder.observe(file_path, timestamp)

    def summary(self) -> str:
        """Summarize what is buffered but not yet flushed."""
        return build_flush_summary(self._fresh_snapshots(list(self.state.records)))

    async def flush(self) -> FlushResult:
        """Aggregate buffered records, merge them into the store, then release them.

        Records are released per date only after that date has been written, so
        a failing write leaves them buffered for the next flush.
        """
        async with self._flush_lock:
            pending = list(self.state.records)
            if not pending:
                return FlushResult()

            by_day = _partition_by_day(pending)
            fresh_snapshots = self._fresh_snapshots(pending, by_day)
            result = FlushResult(summary=build_flush_summary(fresh_snapshots))

            for fresh in fresh_snapshots:
                merged = await self.merger.merge_and_persist(fresh)
                if merged is not None:
                    result.persisted.append(merged)
                records = by_day[fresh.date]
                self.state.release(records)
                result.records_flushed += len(records)

            self.last_flush_time = datetime.now()
            logger.info("Flushed %d change records.", result.records_flushed)

        if result.persisted:
            await self._publish(result.summary)
        return result

    async def total_active_minutes(self, day: Optional[str] = None) -> int:
        """Persisted active time for ``day`` plus minutes not yet flushed."""
        key = day or snapshot_date()
        persisted = await asyncio.to_thread(self.store.get, key)
        total = persisted.total_active_time if persisted else 0
        if key == snapshot_date():
            total += self.state.pending_minutes
        return total

    async def run_until_stopped(self, stop_event: asyncio.Event) -> None:
        """Flush on every interval until ``stop_event`` is set, then flush once more."""
        interval = self.settings.flush_interval.total_seconds()
        logger.info("Starting collector; flushing every %.0f seconds.", interval)
        try:
            while not stop_event.is_set():
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=interval)
                except asyncio.TimeoutError:
                    await self._flush_logged()
        finally:
            await self._shutdown()

    async def _flush_logged(self) -> None:
        try:
            await self.flush()
        except SnapshotStoreError as exc:
            logger.warning("Flush failed; keeping %d records for retry: %s", self.pending_records, exc)

    async def _shutdown(self) -> None:
        try:
            await self._flush_logged()
        finally:
            logger.info("Collector stopped.")

    async def _publish(self, summary: str) -> None:
        if self._publisher is None:
            logger.info(summary)
            return
        try:
            outcome = self._publisher(summary)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception("Publishing the flush summary failed.")

    def _fresh_snapshots(
        self,
        records: list[ChangeRecord],
        by_day: Optional[dict[str, list[ChangeRecord]]] = None,
    ) -> list[PeriodSnapshot]:
        by_day = by_day if by_day is not None else _partition_by_day(records)
        return [
            aggregate(day_records, day, self.settings.top_n)
            for day, day_records in sorted(by_day.items())
        ]


def _partition_by_day(records: list[ChangeRecord]) -> dict[str, list[ChangeRecord]]:
    by_day: defaultdict[str, list[ChangeRecord]] = defaultdict(list)
    for record in records:
        by_day[snapshot_date(record.timestamp)].append(record)
    return dict(by_day)
