"""Reconcile fresh snapshots with the ones already persisted."""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Optional

from .aggregation import TOP_N, refresh_derived
from .models import PeriodSnapshot, ProjectStats
from .store import SnapshotStore

logger = logging.getLogger(__name__)


def merge_snapshots(
    persisted: Optional[PeriodSnapshot],
    fresh: PeriodSnapshot,
    top_n: int = TOP_N,
) -> PeriodSnapshot:
    """Fold ``fresh`` into ``persisted`` without mutating either.

    Snapshots for different dates never merge; the fresh one wins outright.
    Counters are summed, per-file record lists are concatenated old-then-new,
    and derived fields are recomputed from the merged data.
    """
    if persisted is None or persisted.date != fresh.date:
        return copy.deepcopy(fresh)

    merged = copy.deepcopy(persisted)
    for name, project in fresh.projects.items():
        existing = merged.projects.get(name)
        if existing is None:
            merged.projects[name] = copy.deepcopy(project)
        else:
            _merge_project(existing, project)
    return refresh_derived(merged, top_n)


def _merge_project(target: ProjectStats, incoming: ProjectStats) -> None:
    target.total_lines_added += incoming.total_lines_added
    target.total_lines_removed += incoming.total_lines_removed
    target.total_active_time += incoming.total_active_time

    for path, records in incoming.files.items():
        target.files.setdefault(path, []).extend(records)
    for language, minutes in incoming.language_stats.items():
        target.language_stats[language] = target.language_stats.get(language, 0) + minutes
    for hour, minutes in incoming.change_frequency.items():
        target.change_frequency[hour] = target.change_frequency.get(hour, 0) + minutes


class SnapshotMerger:
    """Loads, merges and writes back the snapshot for a fresh snapshot's date.

    Caller state (the record buffer, the session clock) is left alone; the
    caller releases it once this returns.
    """

    def __init__(self, store: SnapshotStore, top_n: int = TOP_N) -> None:
        self.store = store
        self.top_n = top_n

    async def merge_and_persist(self, fresh: PeriodSnapshot) -> Optional[PeriodSnapshot]:
        """Return the persisted snapshot, or ``None`` when there was nothing to write."""
        persisted = await asyncio.to_thread(self.store.get, fresh.date)
        merged = merge_snapshots(persisted, fresh, self.top_n)
        if merged.is_empty:
            logger.debug("Snapshot for %s is empty; nothing to persist.", merged.date)
            return None

        await asyncio.to_thread(self.store.put, merged)
        logger.info(
            "Persisted snapshot for %s (%d projects, %d files, %d min).",
            merged.date,
            merged.total_projects,
            merged.total_files,
            merged.total_active_time,
        )
        return merged
