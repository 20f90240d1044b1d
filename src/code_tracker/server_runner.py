"""Helpers to launch the local API server."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import uvicorn

from .config import TrackerSettings
from .store import SnapshotStore
from .webapp import create_app


def run_server(
    *,
    host: str = "127.0.0.1",
    port: int = 8765,
    store: Optional[SnapshotStore] = None,
    settings: Optional[TrackerSettings] = None,
    workspace: Optional[Path] = None,
    project_name: Optional[str] = None,
    log_level: str = "info",
) -> None:
    """Start the FastAPI server with the collector running in the background."""
    app = create_app(
        store=store,
        settings=settings or TrackerSettings(),
        workspace=workspace,
        project_name=project_name,
    )

    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(app, host=host, port=port, log_level=log_level)
