"""Domain models for recorded coding activity."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .config import DATE_FMT, MAX_DURATION_MINUTES
from .normalization import language_for_extension


class SnapshotFormatError(ValueError):
    """Raised when a persisted snapshot document cannot be decoded."""


@dataclass(frozen=True, slots=True)
class ExtractedChange:
    """Line-level delta reported by the diff extractor for one file."""

    lines_added: int = 0
    lines_removed: int = 0
    added_content: tuple[str, ...] = ()
    removed_content: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.lines_added == 0 and self.lines_removed == 0


@dataclass(frozen=True, slots=True)
class ChangeRecord:
    """One observed, non-trivial edit to a single file."""

    timestamp: datetime
    file_path: str
    file_extension: str
    project_name: str
    lines_added: int
    lines_removed: int
    added_content: tuple[str, ...] = ()
    removed_content: tuple[str, ...] = ()
    duration_minutes: int = 0

    def __post_init__(self) -> None:
        if self.lines_added < 0 or self.lines_removed < 0:
            raise ValueError("line counts must be non-negative")
        if not 0 <= self.duration_minutes <= MAX_DURATION_MINUTES:
            raise ValueError(
                f"duration_minutes must be between 0 and {MAX_DURATION_MINUTES}"
            )

    @property
    def language(self) -> str:
        return language_for_extension(self.file_extension)

    @property
    def change_type(self) -> str:
        if self.lines_added > 0 and self.lines_removed == 0:
            return "create"
        if self.lines_added == 0 and self.lines_removed > 0:
            return "delete"
        return "modify"

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "fileName": self.file_path,
            "fileType": self.file_extension,
            "projectName": self.project_name,
            "linesAdded": self.lines_added,
            "linesRemoved": self.lines_removed,
            "content": {
                "added": list(self.added_content),
                "removed": list(self.removed_content),
            },
            "duration": self.duration_minutes,
            "language": self.language,
            "changeType": self.change_type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChangeRecord":
        content = data.get("content") or {}
        return cls(
            timestamp=_parse_timestamp(data["timestamp"]),
            file_path=data["fileName"],
            file_extension=data.get("fileType") or "",
            project_name=data["projectName"],
            lines_added=int(data["linesAdded"]),
            lines_removed=int(data["linesRemoved"]),
            added_content=tuple(content.get("added") or ()),
            removed_content=tuple(content.get("removed") or ()),
            duration_minutes=int(data.get("duration") or 0),
        )


@dataclass(slots=True)
class ProjectStats:
    """Rollup of every change recorded for one project during a day."""

    total_lines_added: int = 0
    total_lines_removed: int = 0
    total_active_time: int = 0
    files: dict[str, list[ChangeRecord]] = field(default_factory=dict)
    language_stats: dict[str, int] = field(default_factory=dict)
    change_frequency: dict[int, int] = field(default_factory=dict)
    top_files: list[str] = field(default_factory=list)
    average_change_size: float = 0.0

    @property
    def change_count(self) -> int:
        return sum(len(records) for records in self.files.values())

    @property
    def is_empty(self) -> bool:
        return (
            self.total_lines_added == 0
            and self.total_lines_removed == 0
            and self.total_active_time == 0
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalLinesAdded": self.total_lines_added,
            "totalLinesRemoved": self.total_lines_removed,
            "totalActiveTime": self.total_active_time,
            "files": {
                path: [record.to_dict() for record in records]
                for path, records in self.files.items()
            },
            "languageStats": dict(self.language_stats),
            "changeFrequency": {
                str(hour): minutes for hour, minutes in self.change_frequency.items()
            },
            "topFiles": list(self.top_files),
            "averageChangeSize": self.average_change_size,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectStats":
        return cls(
            total_lines_added=_count(data["totalLinesAdded"]),
            total_lines_removed=_count(data["totalLinesRemoved"]),
            total_active_time=_count(data["totalActiveTime"]),
            files={
                path: [ChangeRecord.from_dict(item) for item in records]
                for path, records in (data.get("files") or {}).items()
            },
            language_stats={
                str(language): _count(minutes)
                for language, minutes in (data.get("languageStats") or {}).items()
            },
            change_frequency={
                int(hour): _count(minutes)
                for hour, minutes in (data.get("changeFrequency") or {}).items()
            },
            top_files=[str(path) for path in data.get("topFiles") or []],
            average_change_size=float(data.get("averageChangeSize") or 0.0),
        )


@dataclass(slots=True)
class PeriodSnapshot:
    """Aggregate of all change records for one calendar date."""

    date: str
    projects: dict[str, ProjectStats] = field(default_factory=dict)
    total_active_time: int = 0
    total_projects: int = 0
    total_files: int = 0
    most_active_hours: list[int] = field(default_factory=list)
    most_used_languages: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        if not self.projects:
            return True
        return all(project.is_empty for project in self.projects.values())

    @property
    def total_lines_added(self) -> int:
        return sum(p.total_lines_added for p in self.projects.values())

    @property
    def total_lines_removed(self) -> int:
        return sum(p.total_lines_removed for p in self.projects.values())

    def file_paths(self) -> set[str]:
        paths: set[str] = set()
        for project in self.projects.values():
            paths.update(project.files)
        return paths

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "projects": {
                name: project.to_dict() for name, project in self.projects.items()
            },
            "totalActiveTime": self.total_active_time,
            "totalProjects": self.total_projects,
            "totalFiles": self.total_files,
            "mostActiveHours": list(self.most_active_hours),
            "mostUsedLanguages": list(self.most_used_languages),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "PeriodSnapshot":
        """Decode a persisted document, raising SnapshotFormatError when malformed."""
        try:
            if not data.get("date") or not isinstance(data.get("projects"), dict):
                raise SnapshotFormatError("snapshot document lacks date or projects")
            return cls(
                date=str(data["date"]),
                projects={
                    name: ProjectStats.from_dict(project)
                    for name, project in data["projects"].items()
                },
                total_active_time=_count(data.get("totalActiveTime") or 0),
                total_projects=_count(data.get("totalProjects") or 0),
                total_files=_count(data.get("totalFiles") or 0),
                most_active_hours=[int(h) for h in data.get("mostActiveHours") or []],
                most_used_languages=list(data.get("mostUsedLanguages") or []),
            )
        except SnapshotFormatError:
            raise
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise SnapshotFormatError(f"malformed snapshot document: {exc}") from exc


def _count(value: Any) -> int:
    count = int(value)
    if count < 0:
        raise ValueError(f"negative count in snapshot document: {value!r}")
    return count


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        # Documents written by other tools may carry UTC offsets; keep local wall time.
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def snapshot_date(value: Optional[datetime] = None) -> str:
    """Canonical date key for a timestamp (today when omitted)."""
    return (value or datetime.now()).strftime(DATE_FMT)
