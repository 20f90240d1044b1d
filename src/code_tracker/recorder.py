"""Turns file-change notifications into buffered change records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

from .config import TrackerSettings
from .diff import DiffExtractor
from .models import ChangeRecord
from .normalization import is_documentation, resolve_project_name
from .session_clock import SessionClock

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]


@dataclass(slots=True)
class TrackerState:
    """Unflushed change records plus the session clock that timed them."""

    records: list[ChangeRecord] = field(default_factory=list)
    clock: SessionClock = field(default_factory=SessionClock)

    @classmethod
    def from_settings(cls, settings: TrackerSettings) -> "TrackerState":
        return cls(
            clock=SessionClock(
                idle_threshold=settings.idle_threshold,
                max_credit=settings.max_credit,
            )
        )

    @property
    def pending_minutes(self) -> int:
        return self.clock.total_active_minutes

    def release(self, records: Iterable[ChangeRecord]) -> None:
        """Remove persisted records from the buffer and their minutes from the clock."""
        released = {id(record) for record in records}
        if not released:
            return
        kept: list[ChangeRecord] = []
        minutes = 0
        for record in self.records:
            if id(record) in released:
                minutes += record.duration_minutes
            else:
                kept.append(record)
        self.records[:] = kept
        self.clock.release(minutes)


class ChangeRecorder:
    """Observes edited files and appends non-trivial changes to the buffer."""

    def __init__(
        self,
        state: TrackerState,
        extractor: Optional[DiffExtractor] = None,
        *,
        project_name: Optional[str] = None,
        workspace_root: Optional[Path] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self.state = state
        self.extractor = extractor or DiffExtractor()
        self.project_name = project_name
        self.workspace_root = Path(workspace_root) if workspace_root else None
        self._notifier = notifier

    async def observe(
        self, file_path: Path, now: Optional[datetime] = None
    ) -> Optional[ChangeRecord]:
        path = Path(file_path)
        try:
            return await self._observe(path, now)
        except Exception as exc:
            logger.exception("Failed to track changes for %s", path)
            if self._notifier is not None:
                self._notifier(f"Failed to track changes for file: {path}. Error: {exc}")
            return None

    async def _observe(self, path: Path, now: Optional[datetime]) -> Optional[ChangeRecord]:
        if not path.is_file():
            logger.debug("Skipping %s; file does not exist.", path)
            return None

        change = await self.extractor.extract_change(path)
        if change.is_empty:
            if is_documentation(path):
                logger.debug("Skipping unchanged documentation file %s", path)
            return None

        timestamp = now or datetime.now()
        duration = self.state.clock.accumulate(timestamp)
        record = ChangeRecord(
            timestamp=timestamp,
            file_path=str(path),
            file_extension=path.suffix,
            project_name=resolve_project_name(
                path,
                project_name=self.project_name,
                workspace_root=self.workspace_root,
            ),
            lines_added=change.lines_added,
            lines_removed=change.lines_removed,
            added_content=change.added_content,
            removed_content=change.removed_content,
            duration_minutes=duration,
        )
        self.state.records.append(record)
        logger.debug(
            "Recorded %s: +%d/-%d (%d min)",
            path,
            record.lines_added,
            record.lines_removed,
            record.duration_minutes,
        )
        return record
