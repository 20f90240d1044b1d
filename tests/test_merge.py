"""Tests for merging fresh snapshots into persisted ones."""

import json
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from code_tracker.aggregation import aggregate
from code_tracker.merge import SnapshotMerger, merge_snapshots
from code_tracker.models import PeriodSnapshot, ProjectStats


def _day(make_record, day, *specs):
    records = [
        make_record(path, project=project, added=added, minutes=minutes, timestamp=datetime(2024, 1, day, hour))
        for path, project, added, minutes, hour in specs
    ]
    return aggregate(records, f"2024-01-{day:02d}")


def test_different_dates_replace_not_merge(make_record):
    persisted = _day(make_record, 1, ("a.ts", "demo", 5, 3, 9))
    fresh = _day(make_record, 2, ("b.ts", "demo", 1, 1, 10))

    merged = merge_snapshots(persisted, fresh)

    assert merged == fresh
    assert merged is not fresh


def test_no_persisted_snapshot_returns_fresh_copy(make_record):
    fresh = _day(make_record, 1, ("a.ts", "demo", 5, 3, 9))

    assert merge_snapshots(None, fresh) == fresh


def test_shared_project_sums_and_concatenates(make_record):
    persisted = _day(make_record, 1, ("a.ts", "X", 5, 5, 9))
    fresh = _day(make_record, 1, ("a.ts", "X", 2, 4, 15), ("c.py", "X", 1, 0, 15))

    merged = merge_snapshots(persisted, fresh)
    project = merged.projects["X"]

    assert project.total_active_time == 9
    assert project.total_lines_added == 8
    assert [r.lines_added for r in project.files["a.ts"]] == [5, 2]
    assert list(project.files) == ["a.ts", "c.py"]
    assert project.language_stats == {"ts": 9, "py": 0}
    assert project.change_frequency == {9: 5, 15: 4}


def test_derived_fields_recomputed_after_merge(make_record):
    persisted = _day(make_record, 1, ("a.ts", "X", 4, 2, 9))
    fresh = _day(make_record, 1, ("b.ts", "X", 1, 1, 11), ("b.ts", "X", 1, 1, 11))

    merged = merge_snapshots(persisted, fresh)
    project = merged.projects["X"]

    assert project.top_files == ["b.ts", "a.ts"]
    assert project.average_change_size == 6 / 3
    assert merged.total_files == 2
    assert merged.total_active_time == 4
    assert merged.most_active_hours == [9, 11]


def test_new_project_copied_in(make_record):
    persisted = _day(make_record, 1, ("a.ts", "old", 1, 1, 9))
    fresh = _day(make_record, 1, ("b.go", "new", 2, 2, 10))

    merged = merge_snapshots(persisted, fresh)

    assert list(merged.projects) == ["old", "new"]
    assert merged.total_projects == 2
    assert merged.projects["new"].total_lines_added == 2


def test_inputs_are_not_mutated(make_record):
    persisted = _day(make_record, 1, ("a.ts", "X", 5, 5, 9))
    fresh = _day(make_record, 1, ("a.ts", "X", 2, 4, 15))

    merge_snapshots(persisted, fresh)

    assert persisted.projects["X"].total_active_time == 5
    assert len(persisted.projects["X"].files["a.ts"]) == 1
    assert fresh.projects["X"].total_active_time == 4


def test_self_merge_doubles_counters(make_record):
    snapshot = _day(make_record, 1, ("a.ts", "X", 3, 2, 9))

    merged = merge_snapshots(snapshot, snapshot)
    project = merged.projects["X"]

    assert project.total_lines_added == 6
    assert project.total_active_time == 4
    assert len(project.files["a.ts"]) == 2


def test_scalar_only_snapshots_merge():
    persisted = PeriodSnapshot("2024-01-01", {"X": ProjectStats(total_active_time=10)})
    fresh = PeriodSnapshot("2024-01-01", {"X": ProjectStats(total_active_time=4)})

    assert merge_snapshots(persisted, fresh).projects["X"].total_active_time == 14


class TestSnapshotMerger:
    @pytest.mark.asyncio
    async def test_persists_merged_snapshot(self, make_record, snapshot_store):
        snapshot_store.put(_day(make_record, 1, ("a.ts", "X", 5, 5, 9)))
        merger = SnapshotMerger(snapshot_store)

        result = await merger.merge_and_persist(_day(make_record, 1, ("a.ts", "X", 2, 4, 15)))

        assert result.projects["X"].total_active_time == 9
        assert snapshot_store.get("2024-01-01") == result

    @pytest.mark.asyncio
    async def test_empty_result_is_not_written(self):
        store = MagicMock()
        store.get.return_value = None
        merger = SnapshotMerger(store)

        assert await merger.merge_and_persist(PeriodSnapshot("2024-01-01")) is None
        store.put.assert_not_called()

    @pytest.mark.asyncio
    async def test_zero_valued_projects_are_not_written(self, make_record):
        store = MagicMock()
        store.get.return_value = None
        fresh = _day(make_record, 1, ("a.ts", "X", 0, 0, 9))

        assert await SnapshotMerger(store).merge_and_persist(fresh) is None
        store.put.assert_not_called()

    @pytest.mark.asyncio
    async def test_corrupt_document_treated_as_missing(self, make_record, snapshot_store):
        path = snapshot_store.path_for("2024-01-01")
        path.parent.mkdir(parents=True)
        path.write_text("{not json")

        fresh = _day(make_record, 1, ("a.ts", "X", 2, 4, 15))
        result = await SnapshotMerger(snapshot_store).merge_and_persist(fresh)

        assert result == fresh
        assert snapshot_store.get("2024-01-01") == fresh

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            b'{"date": "2024-01-01", "projects": {}, "x": "\xff\xfe"}',
            json.dumps(
                {
                    "date": "2024-01-01",
                    "projects": {"X": {"totalLinesAdded": None, "totalLinesRemoved": 0, "totalActiveTime": 3}},
                }
            ).encode(),
        ],
    )
    async def test_undecodable_document_does_not_block_merge(self, make_record, snapshot_store, payload):
        path = snapshot_store.path_for("2024-01-01")
        path.parent.mkdir(parents=True)
        path.write_bytes(payload)

        fresh = _day(make_record, 1, ("a.ts", "X", 2, 4, 15))
        result = await SnapshotMerger(snapshot_store).merge_and_persist(fresh)

        assert result == fresh
        assert snapshot_store.get("2024-01-01") == fresh
