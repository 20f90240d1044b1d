"""Simple reporting utilities for CLI output and flush summaries."""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from pathlib import Path
from typing import Iterable

from .aggregation import top_keys
from .config import DATE_FMT
from .models import PeriodSnapshot
from .store import SnapshotStore, read_range

EMPTY_SUMMARY = "No changes in the last period."


def build_flush_summary(snapshots: Iterable[PeriodSnapshot]) -> str:
    """One-line description of what a flush is about to publish."""
    snapshots = [snapshot for snapshot in snapshots if not snapshot.is_empty]
    if not snapshots:
        return EMPTY_SUMMARY

    files: set[str] = set()
    projects: set[str] = set()
    added = removed = minutes = 0
    for snapshot in snapshots:
        files.update(snapshot.file_paths())
        projects.update(snapshot.projects)
        added += snapshot.total_lines_added
        removed += snapshot.total_lines_removed
        minutes += snapshot.total_active_time

    return (
        f"Changed {len(files)} files across {len(projects)} projects. "
        f"Added {added} lines, removed {removed} lines. "
        f"Active coding time: {minutes} {_plural(minutes, 'minute')}."
    )


def format_active_time(minutes: int) -> str:
    hours, remaining = divmod(int(minutes), 60)
    if hours > 0:
        return f"{hours}h {remaining}m"
    return f"{remaining}m"


def _plural(count: int, word: str) -> str:
    return word if count == 1 else f"{word}s"


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def __init__(self, store: SnapshotStore) -> None:
        self.store = store

    def print_daily_summary(self, day: date) -> None:
        snapshot = self.store.get(day.strftime(DATE_FMT))
        if snapshot is None or snapshot.is_empty:
            print("No activity recorded for the selected day.")
            return

        print(f"Summary for {snapshot.date}")
        print("-" * 40)
        print(f"Active time:   {format_active_time(snapshot.total_active_time)}")
        print(f"Lines added:   {snapshot.total_lines_added}")
        print(f"Lines removed: {snapshot.total_lines_removed}")
        print(f"Files:         {snapshot.total_files}")
        print()

        print("Projects:")
        for name, project in snapshot.projects.items():
            print(
                f"  {name[:30]:<30} +{project.total_lines_added:<6} "
                f"-{project.total_lines_removed:<6} "
                f"{format_active_time(project.total_active_time)}"
            )
            for path in project.top_files:
                print(f"      {Path(path).name[:40]:<40} {len(project.files[path])} changes")

        if snapshot.most_used_languages:
            print()
            print("Languages: " + ", ".join(snapshot.most_used_languages))
        if snapshot.most_active_hours:
            print("Busiest hours: " + ", ".join(f"{h:02d}h" for h in snapshot.most_active_hours))

    def print_range_summary(self, start: date, end: date) -> None:
        snapshots = read_range(self.store, start, end)
        if not snapshots:
            print("No activity recorded for the selected range.")
            return

        for snapshot in snapshots:
            print(
                f"{snapshot.date}  {format_active_time(snapshot.total_active_time):>8}  "
                f"+{snapshot.total_lines_added:<6} -{snapshot.total_lines_removed:<6} "
                f"{snapshot.total_projects} projects, {snapshot.total_files} files"
            )

        top_projects = aggregate_by_project(snapshots)
        if top_projects:
            print()
            print("Top projects:")
            for name, minutes in top_projects[:5]:
                print(f"  {name[:30]:<30} {format_active_time(minutes)}")


def aggregate_by_project(snapshots: Iterable[PeriodSnapshot]) -> list[tuple[str, int]]:
    totals: defaultdict[str, int] = defaultdict(int)
    for snapshot in snapshots:
        for name, project in snapshot.projects.items():
            totals[name] += project.total_active_time
    return [(name, totals[name]) for name in top_keys(totals, len(totals))]
