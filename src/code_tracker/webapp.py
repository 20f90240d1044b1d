"""FastAPI application that exposes a local API over the tracked activity."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from .collector import ActivityCollector
from .config import DATE_FMT, TrackerSettings
from .paths import get_snapshot_dir
from .reporting import format_active_time
from .store import JsonSnapshotStore, SnapshotStore, SnapshotStoreError, read_range
from .watcher import WorkspaceWatcher

logger = logging.getLogger(__name__)


class CollectorRunner:
    """Manage the collector timer (and optional workspace watcher) on the app's loop."""

    def __init__(
        self,
        collector: ActivityCollector,
        workspace: Optional[Path] = None,
        excluded_paths: tuple[Path, ...] = (),
    ) -> None:
        self.collector = collector
        self._workspace = Path(workspace) if workspace else None
        self._excluded = excluded_paths
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._watcher: Optional[WorkspaceWatcher] = None

    def start(self) -> None:
        if self._task and not self._task.done():
            return
        loop = asyncio.get_running_loop()
        stop_event = asyncio.Event()
        self._stop_event = stop_event
        self._task = loop.create_task(self.collector.run_until_stopped(stop_event))
        if self._workspace is not None:
            self._watcher = WorkspaceWatcher(
                self._workspace,
                self.collector.observe,
                loop,
                debounce=self.collector.settings.debounce,
                excluded_paths=self._excluded,
            )
            self._watcher.start()
        logger.info("Collector background task started.")

    async def stop(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        task, stop_event = self._task, self._stop_event
        self._task = None
        self._stop_event = None
        if task and stop_event:
            stop_event.set()
            await asyncio.wait_for(task, timeout=30)
            logger.info("Collector background task stopped.")

    def is_running(self) -> bool:
        return bool(self._task and not self._task.done())

    @property
    def workspace(self) -> Optional[Path]:
        return self._workspace


class ObservePayload(BaseModel):
    file_path: str
    timestamp: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    store: Optional[SnapshotStore] = None,
    settings: Optional[TrackerSettings] = None,
    workspace: Optional[Path] = None,
    project_name: Optional[str] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_store = store or JsonSnapshotStore(get_snapshot_dir())
    resolved_settings = settings or TrackerSettings()
    collector = ActivityCollector(
        resolved_store,
        resolved_settings,
        project_name=project_name,
        workspace_root=workspace,
    )
    excluded = tuple(Path(p) for p in resolved_store.local_paths())
    runner = CollectorRunner(collector, workspace, excluded)

    app = FastAPI(title="Code Tracker", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.store = resolved_store
    app.state.collector = collector
    app.state.collector_runner = runner

    @app.on_event("startup")
    async def _startup() -> None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        runner.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await runner.stop()

    @app.get("/api/status")
    async def status(request: Request) -> Dict[str, Any]:
        current: ActivityCollector = request.app.state.collector
        minutes = await current.total_active_minutes()
        return {
            "collector_running": request.app.state.collector_runner.is_running(),
            "workspace": str(runner.workspace) if runner.workspace else None,
            "flush_minutes": resolved_settings.flush_interval.total_seconds() / 60.0,
            "idle_minutes": resolved_settings.idle_threshold.total_seconds() / 60.0,
            "pending_records": current.pending_records,
            "active_minutes_today": minutes,
            "active_time_today": format_active_time(minutes),
            "last_flush": current.last_flush_time.isoformat() if current.last_flush_time else None,
        }

    @app.get("/api/snapshots")
    def snapshots(
        request: Request,
        start: Optional[str] = Query(
            default=None,
            description="Start date in YYYY-MM-DD format (inclusive).",
        ),
        end: Optional[str] = Query(
            default=None,
            description="End date in YYYY-MM-DD format (inclusive).",
        ),
    ) -> Dict[str, Any]:
        start_day = _parse_date(start)
        end_day = _parse_date(end) if end else start_day
        if end_day < start_day:
            raise HTTPException(
                status_code=400, detail="end date must be on or after start date"
            )
        found = read_range(request.app.state.store, start_day, end_day)
        return {
            "start": start_day.strftime(DATE_FMT),
            "end": end_day.strftime(DATE_FMT),
            "snapshots": [snapshot.to_dict() for snapshot in found],
        }

    @app.get("/api/snapshots/{day}")
    def snapshot_for_day(day: str, request: Request) -> Dict[str, Any]:
        key = _parse_date(day).strftime(DATE_FMT)
        snapshot = request.app.state.store.get(key)
        if snapshot is None:
            raise HTTPException(status_code=404, detail="No activity for that date")
        return snapshot.to_dict()

    @app.get("/api/summary")
    def summary(request: Request) -> Dict[str, Any]:
        current: ActivityCollector = request.app.state.collector
        return {
            "pending_records": current.pending_records,
            "summary": current.summary(),
        }

    @app.post("/api/observe")
    async def observe(payload: ObservePayload, request: Request) -> Dict[str, Any]:
        current: ActivityCollector = request.app.state.collector
        record = await current.observe(Path(payload.file_path), payload.timestamp)
        return {
            "recorded": record is not None,
            "record": record.to_dict() if record else None,
            "pending_records": current.pending_records,
        }

    @app.post("/api/flush")
    async def flush(request: Request) -> Dict[str, Any]:
        current: ActivityCollector = request.app.state.collector
        try:
            result = await current.flush()
        except SnapshotStoreError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return {
            "records_flushed": result.records_flushed,
            "persisted_dates": [snapshot.date for snapshot in result.persisted],
            "summary": result.summary,
        }

    return app


def _parse_date(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return datetime.strptime(value, DATE_FMT).date()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid date format") from exc
