"""File system monitoring that feeds edits to the collector."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[Path, datetime], Awaitable[object]]

DEFAULT_IGNORED_DIRS = frozenset(
    {".git", ".hg", ".svn", "node_modules", "__pycache__", ".venv", "venv", ".mypy_cache", ".pytest_cache"}
)


class _ForwardingHandler(FileSystemEventHandler):
    """Runs in the watchdog thread; only hands paths over to the event loop."""

    def __init__(self, watcher: "WorkspaceWatcher") -> None:
        super().__init__()
        self._watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        self._forward(event, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._forward(event, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._forward(event, getattr(event, "dest_path", event.src_path))

    def _forward(self, event: FileSystemEvent, raw_path: object) -> None:
        if event.is_directory:
            return
        if isinstance(raw_path, bytes):
            raw_path = raw_path.decode("utf-8", errors="replace")
        self._watcher.notify_threadsafe(Path(str(raw_path)))


class WorkspaceWatcher:
    """Watches a directory tree and reports edited files, debounced per path.

    Usage:
        watcher = WorkspaceWatcher(root, collector.observe, loop)
        watcher.start()
        # ... later
        watcher.stop()
    """

    def __init__(
        self,
        root: Path,
        on_change: ChangeCallback,
        loop: asyncio.AbstractEventLoop,
        *,
        debounce: timedelta = timedelta(milliseconds=500),
        ignored_dirs: Iterable[str] = DEFAULT_IGNORED_DIRS,
        excluded_paths: Iterable[Path] = (),
    ) -> None:
        self.root = Path(root).resolve()
        self._on_change = on_change
        self._loop = loop
        self._debounce = debounce.total_seconds()
        self._ignored_dirs = frozenset(ignored_dirs)
        self._excluded = [Path(p).resolve() for p in excluded_paths]
        self._observer: Optional[Observer] = None
        self._timers: dict[Path, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Task] = set()

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = Observer()
        observer.schedule(_ForwardingHandler(self), str(self.root), recursive=True)
        observer.start()
        self._observer = observer
        logger.info("Watching %s for changes.", self.root)

    def stop(self) -> None:
        observer = self._observer
        self._observer = None
        if observer is not None:
            observer.stop()
            observer.join(timeout=5)
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

    def is_running(self) -> bool:
        return self._observer is not None

    def should_track(self, path: Path) -> bool:
        try:
            relative = path.resolve().relative_to(self.root)
        except ValueError:
            return False
        if any(part in self._ignored_dirs for part in relative.parts[:-1]):
            return False
        resolved = path.resolve()
        return not any(
            resolved == excluded or excluded in resolved.parents
            for excluded in self._excluded
        )

    def notify_threadsafe(self, path: Path) -> None:
        if self.should_track(path):
            self._loop.call_soon_threadsafe(self._schedule, path)

    def _schedule(self, path: Path) -> None:
        # Rapid saves of one file collapse into a single observation.
        existing = self._timers.pop(path, None)
        if existing is not None:
            existing.cancel()
        self._timers[path] = self._loop.call_later(self._debounce, self._fire, path)

    def _fire(self, path: Path) -> None:
        self._timers.pop(path, None)
        task = self._loop.create_task(self._on_change(path, datetime.now()))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
