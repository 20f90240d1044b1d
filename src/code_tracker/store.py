"""Snapshot persistence keyed by calendar date."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import date, timedelta
from pathlib import Path
from typing import Optional, Protocol

from .config import DATE_FMT
from .models import PeriodSnapshot, SnapshotFormatError

logger = logging.getLogger(__name__)

SNAPSHOT_FILENAME = "activity.json"


class SnapshotStoreError(RuntimeError):
    """A snapshot could not be persisted."""


class StoreUnavailableError(SnapshotStoreError):
    """The store location itself cannot be created or opened."""


class SnapshotStore(Protocol):
    def get(self, date: str) -> Optional[PeriodSnapshot]:
        ...

    def put(self, snapshot: PeriodSnapshot) -> None:
        ...

    def local_paths(self) -> tuple[Path, ...]:
        """Files and directories the store writes to, if it lives on disk."""
        ...


class JsonSnapshotStore:
    """Stores each day as ``<root>/<date>/activity.json``.

    Documents are rewritten in full. Missing or unreadable documents read back
    as ``None`` so a damaged day starts over instead of blocking every flush.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, date: str) -> Path:
        return self.root / date / SNAPSHOT_FILENAME

    def local_paths(self) -> tuple[Path, ...]:
        return (self.root,)

    def get(self, date: str) -> Optional[PeriodSnapshot]:
        path = self.path_for(date)
        if not path.exists():
            logger.debug("No snapshot found at %s", path)
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return PeriodSnapshot.from_dict(data)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, SnapshotFormatError) as exc:
            logger.warning("Ignoring unreadable snapshot %s: %s", path, exc)
            return None

    def put(self, snapshot: PeriodSnapshot) -> None:
        path = self.path_for(snapshot.date)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreUnavailableError(
                f"Failed to create daily directory {path.parent}: {exc}"
            ) from exc

        payload = json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False)
        tmp_name: Optional[str] = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=".activity-", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise SnapshotStoreError(f"Failed to write {path}: {exc}") from exc
        logger.debug("Wrote snapshot for %s to %s", snapshot.date, path)


def read_range(store: SnapshotStore, start: date, end: date) -> list[PeriodSnapshot]:
    """Load every stored snapshot between ``start`` and ``end`` inclusive."""
    if start > end:
        logger.warning("Invalid date range: %s is after %s", start, end)
        return []

    snapshots: list[PeriodSnapshot] = []
    current = start
    while current <= end:
        key = current.strftime(DATE_FMT)
        snapshot = store.get(key)
        if snapshot is not None:
            snapshots.append(snapshot)
        else:
            logger.debug("No stats found for date: %s", key)
        current += timedelta(days=1)

    return sorted(snapshots, key=lambda snapshot: snapshot.date)
