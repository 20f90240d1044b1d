"""Line-level change extraction backed by git, with a line-count fallback."""

from __future__ import annotations

import asyncio
import enum
import logging
from pathlib import Path
from typing import Iterable, Optional

from .models import ExtractedChange

logger = logging.getLogger(__name__)


class DiffLineKind(enum.Enum):
    ADDED = "added"
    REMOVED = "removed"
    IGNORED = "ignored"


class DiffUnavailableError(RuntimeError):
    """git could not produce a diff for the file (untracked, no repo, no git)."""


def classify_diff_line(line: str) -> DiffLineKind:
    if line.startswith("+") and not line.startswith("+++"):
        return DiffLineKind.ADDED
    if line.startswith("-") and not line.startswith("---"):
        return DiffLineKind.REMOVED
    return DiffLineKind.IGNORED


def parse_unified_diff(diff_text: str) -> ExtractedChange:
    """Count added and removed lines in unified diff output.

    Hunk headers, context lines and file headers are ignored. Moves are not
    detected: a line removed in one hunk and re-added in another is counted in
    both buckets.
    """
    added: list[str] = []
    removed: list[str] = []
    for line in diff_text.splitlines():
        kind = classify_diff_line(line)
        if kind is DiffLineKind.ADDED:
            added.append(line[1:].strip())
        elif kind is DiffLineKind.REMOVED:
            removed.append(line[1:].strip())
    return ExtractedChange(
        lines_added=len(added),
        lines_removed=len(removed),
        added_content=tuple(added),
        removed_content=tuple(removed),
    )


class DiffExtractor:
    """Reports lines added/removed for a file since its last committed state.

    Files git cannot diff are compared by line count against the count seen on
    the previous observation. That fallback cannot see edits which keep the
    line count unchanged.
    """

    def __init__(self, git_executable: str = "git") -> None:
        self._git = git_executable
        self._line_counts: dict[str, int] = {}

    async def extract_change(self, file_path: Path) -> ExtractedChange:
        path = Path(file_path)
        try:
            diff_text = await self._git_diff(path)
        except DiffUnavailableError as exc:
            logger.debug("git diff unavailable for %s (%s); using line counts.", path, exc)
            return await self._fallback_change(path)
        return parse_unified_diff(diff_text)

    async def _git_diff(self, path: Path) -> str:
        cwd = path.parent
        await self._run_git(cwd, ["ls-files", "--error-unmatch", "--", path.name])
        return await self._run_git(cwd, ["diff", "HEAD", "--", path.name])

    async def _run_git(self, cwd: Path, args: Iterable[str]) -> str:
        try:
            proc = await asyncio.create_subprocess_exec(
                self._git,
                *args,
                cwd=str(cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise DiffUnavailableError(str(exc)) from exc
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise DiffUnavailableError(message or f"git exited with {proc.returncode}")
        return stdout.decode("utf-8", errors="replace")

    async def _fallback_change(self, path: Path) -> ExtractedChange:
        new_count = await self._count_lines(path)
        if new_count is None:
            return ExtractedChange()

        key = str(path)
        old_count = self._line_counts.get(key, 0)
        self._line_counts[key] = new_count
        return ExtractedChange(
            lines_added=max(0, new_count - old_count),
            lines_removed=max(0, old_count - new_count),
        )

    @staticmethod
    async def _count_lines(path: Path) -> Optional[int]:
        try:
            text = await asyncio.to_thread(
                path.read_text, encoding="utf-8", errors="replace"
            )
        except OSError:
            logger.warning("Unable to read %s; reporting no change.", path, exc_info=True)
            return None
        return len(text.splitlines())
