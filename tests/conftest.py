"""Pytest configuration and shared fixtures."""

import shutil
import subprocess
from datetime import datetime
from pathlib import Path

import pytest

from code_tracker.models import ChangeRecord
from code_tracker.store import JsonSnapshotStore


@pytest.fixture
def make_record():
    """Factory for change records with sensible defaults."""

    def _make(
        file_path="a.ts",
        project="demo",
        added=1,
        removed=0,
        minutes=1,
        timestamp=datetime(2024, 1, 1, 9, 0),
    ):
        return ChangeRecord(
            timestamp=timestamp,
            file_path=file_path,
            file_extension=Path(file_path).suffix,
            project_name=project,
            lines_added=added,
            lines_removed=removed,
            duration_minutes=minutes,
        )

    return _make


@pytest.fixture
def snapshot_store(tmp_path):
    return JsonSnapshotStore(tmp_path / "activity")


def _git(cwd, *args):
    subprocess.run(["git", *args], cwd=cwd, capture_output=True, check=True)


@pytest.fixture
def git_repo(tmp_path):
    """A real git repository with one committed ten-line file."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init")
    _git(repo, "config", "user.email", "test@test.com")
    _git(repo, "config", "user.name", "Test User")
    _git(repo, "config", "commit.gpgsign", "false")

    source = repo / "main.py"
    source.write_text("".join(f"line {i}\n" for i in range(10)))
    _git(repo, "add", "main.py")
    _git(repo, "commit", "-m", "Initial commit")
    return repo
