"""Tests for path normalization and change record helpers."""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from code_tracker.config import TrackerSettings
from code_tracker.models import ChangeRecord, snapshot_date
from code_tracker.normalization import (
    is_documentation,
    language_for_extension,
    resolve_project_name,
)


@pytest.mark.parametrize(
    "extension, language",
    [(".ts", "ts"), (".PY", "py"), ("rs", "rs"), ("", "unknown"), (None, "unknown"), (".", "unknown")],
)
def test_language_for_extension(extension, language):
    assert language_for_extension(extension) == language


@pytest.mark.parametrize(
    "name, expected",
    [("README.md", True), ("readme.txt", True), ("NOTES.MD", True), ("main.py", False), ("mdfile.rs", False)],
)
def test_is_documentation(name, expected):
    assert is_documentation(Path("/w") / name) is expected


def test_project_name_resolution_order():
    path = Path("/work/tracker/src/app.py")

    assert resolve_project_name(path, project_name=" tracker-x ") == "tracker-x"
    assert resolve_project_name(path, workspace_root=Path("/work/tracker")) == "tracker"
    assert resolve_project_name(path, workspace_root=Path("/elsewhere")) == "src"
    assert resolve_project_name(path) == "src"


@pytest.mark.parametrize(
    "added, removed, change_type",
    [(3, 0, "create"), (0, 2, "delete"), (1, 1, "modify"), (0, 0, "modify")],
)
def test_change_type(make_record, added, removed, change_type):
    assert make_record(added=added, removed=removed).change_type == change_type


def test_negative_counts_rejected():
    with pytest.raises(ValueError):
        ChangeRecord(datetime(2024, 1, 1), "a.py", ".py", "demo", -1, 0)


def test_record_dict_uses_document_keys(make_record):
    document = make_record("src/a.TS", added=2, minutes=3).to_dict()

    assert document["fileName"] == "src/a.TS"
    assert document["fileType"] == ".TS"
    assert document["language"] == "ts"
    assert document["duration"] == 3
    assert ChangeRecord.from_dict(document) == make_record("src/a.TS", added=2, minutes=3)


def test_snapshot_date_formats_calendar_day():
    assert snapshot_date(datetime(2024, 3, 9, 23, 59)) == "2024-03-09"


@pytest.mark.parametrize("minutes", [-1, 6])
def test_out_of_range_duration_rejected(minutes):
    with pytest.raises(ValueError):
        ChangeRecord(datetime(2024, 1, 1), "a.py", ".py", "demo", 1, 0, duration_minutes=minutes)


def test_settings_reject_credit_above_record_limit():
    with pytest.raises(ValueError):
        TrackerSettings(max_credit=timedelta(minutes=6))
