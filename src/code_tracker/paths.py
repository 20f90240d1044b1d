"""Helpers for locating application directories."""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import PlatformDirs


APP_NAME = "CodeTracker"
APP_AUTHOR = "CodeTracker"
DATA_DIR_ENV = "CODE_TRACKER_DATA_DIR"


def get_data_dir() -> Path:
    """Return the base directory for persistent data.

    ``CODE_TRACKER_DATA_DIR`` replaces the per-user platform directory when set.
    """
    override = os.environ.get(DATA_DIR_ENV, "").strip()
    if override:
        path = Path(override).expanduser()
    else:
        dirs = PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=True)
        path = Path(dirs.user_data_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_snapshot_dir() -> Path:
    """Directory holding one ``<date>/activity.json`` document per day."""
    return get_data_dir() / "activity"
