"""Roll change records up into per-day snapshots."""

from __future__ import annotations

from collections import defaultdict
from datetime import date as date_type
from typing import Hashable, Iterable, Mapping, TypeVar, Union

from .config import DATE_FMT
from .models import ChangeRecord, PeriodSnapshot, ProjectStats

TOP_N = 5

K = TypeVar("K", bound=Hashable)


def aggregate(
    records: Iterable[ChangeRecord],
    day: Union[str, date_type],
    top_n: int = TOP_N,
) -> PeriodSnapshot:
    """Build a fresh snapshot for ``day`` from buffered records.

    The input is only read. Records are attributed as given; callers decide
    which records belong to ``day``.
    """
    key = day if isinstance(day, str) else day.strftime(DATE_FMT)
    snapshot = PeriodSnapshot(date=key)
    for record in records:
        project = snapshot.projects.get(record.project_name)
        if project is None:
            project = snapshot.projects[record.project_name] = ProjectStats()
        _fold_record(project, record)
    return refresh_derived(snapshot, top_n)


def _fold_record(project: ProjectStats, record: ChangeRecord) -> None:
    minutes = record.duration_minutes
    hour = record.timestamp.hour
    language = record.language

    project.total_lines_added += record.lines_added
    project.total_lines_removed += record.lines_removed
    project.total_active_time += minutes
    project.language_stats[language] = project.language_stats.get(language, 0) + minutes
    project.change_frequency[hour] = project.change_frequency.get(hour, 0) + minutes
    project.files.setdefault(record.file_path, []).append(record)


def refresh_project(project: ProjectStats, top_n: int = TOP_N) -> ProjectStats:
    """Recompute the fields derived from a project's raw counters."""
    changes = project.change_count
    project.average_change_size = (
        (project.total_lines_added + project.total_lines_removed) / changes
        if changes
        else 0
    )
    project.top_files = top_keys(
        {path: len(records) for path, records in project.files.items()}, top_n
    )
    return project


def refresh_derived(snapshot: PeriodSnapshot, top_n: int = TOP_N) -> PeriodSnapshot:
    """Recompute every derived field of a snapshot from its projects."""
    hours: defaultdict[int, int] = defaultdict(int)
    languages: defaultdict[str, int] = defaultdict(int)
    for project in snapshot.projects.values():
        refresh_project(project, top_n)
        for hour, minutes in project.change_frequency.items():
            hours[hour] += minutes
        for language, minutes in project.language_stats.items():
            languages[language] += minutes

    snapshot.total_active_time = sum(
        project.total_active_time for project in snapshot.projects.values()
    )
    snapshot.total_projects = len(snapshot.projects)
    snapshot.total_files = len(snapshot.file_paths())
    snapshot.most_active_hours = top_keys(hours, top_n)
    snapshot.most_used_languages = top_keys(languages, top_n)
    return snapshot


def top_keys(totals: Mapping[K, float], limit: int = TOP_N) -> list[K]:
    """Keys with the largest totals; ties keep first-encountered order."""
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [key for key, _ in ranked[:limit]]
