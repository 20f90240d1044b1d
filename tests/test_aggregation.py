"""Tests for rolling change records up into daily snapshots."""

from datetime import date, datetime

from code_tracker.aggregation import aggregate, top_keys


def _at(hour, minute=0):
    return datetime(2024, 1, 1, hour, minute)


def test_end_to_end_scenario(make_record):
    records = [
        make_record("a.ts", added=10, removed=2, minutes=3, timestamp=_at(9)),
        make_record("b.py", added=3, removed=0, minutes=2, timestamp=_at(9, 5)),
        make_record("a.ts", added=1, removed=1, minutes=4, timestamp=_at(14)),
    ]

    snapshot = aggregate(records, "2024-01-01")
    demo = snapshot.projects["demo"]

    assert demo.total_lines_added == 14
    assert demo.total_lines_removed == 3
    assert demo.total_active_time == 9
    assert demo.language_stats == {"ts": 7, "py": 2}
    assert demo.change_frequency == {9: 5, 14: 4}
    assert demo.top_files == ["a.ts", "b.py"]
    assert demo.average_change_size == 17 / 3
    assert [r.lines_added for r in demo.files["a.ts"]] == [10, 1]

    assert snapshot.date == "2024-01-01"
    assert snapshot.total_projects == 1
    assert snapshot.total_files == 2
    assert snapshot.total_active_time == 9
    assert snapshot.most_active_hours == [9, 14]
    assert snapshot.most_used_languages == ["ts", "py"]


def test_does_not_mutate_buffer(make_record):
    records = [make_record("a.ts"), make_record("b.ts")]
    before = list(records)

    aggregate(records, "2024-01-01")

    assert records == before


def test_empty_buffer_gives_empty_snapshot():
    snapshot = aggregate([], date(2024, 1, 1))

    assert snapshot.date == "2024-01-01"
    assert snapshot.projects == {}
    assert snapshot.total_active_time == 0
    assert snapshot.total_projects == 0
    assert snapshot.total_files == 0
    assert snapshot.most_active_hours == []
    assert snapshot.most_used_languages == []
    assert snapshot.is_empty


def test_zero_line_records_produce_empty_snapshot(make_record):
    records = [make_record(added=0, removed=0, minutes=0) for _ in range(3)]

    assert aggregate(records, "2024-01-01").is_empty


def test_groups_by_project_and_counts_distinct_files(make_record):
    records = [
        make_record("/w/api/main.py", project="api"),
        make_record("/w/web/main.py", project="web"),
        make_record("/w/web/main.py", project="web"),
        make_record("/w/web/app.js", project="web"),
    ]

    snapshot = aggregate(records, "2024-01-01")

    assert list(snapshot.projects) == ["api", "web"]
    assert snapshot.total_projects == 2
    assert snapshot.total_files == 3
    assert snapshot.projects["web"].top_files == ["/w/web/main.py", "/w/web/app.js"]


def test_extensionless_files_are_unknown_language(make_record):
    snapshot = aggregate([make_record("Makefile", minutes=2)], "2024-01-01")

    assert snapshot.projects["demo"].language_stats == {"unknown": 2}
    assert snapshot.most_used_languages == ["unknown"]


def test_top_files_limited_and_ties_keep_first_seen_order(make_record):
    names = [f"f{i}.py" for i in range(7)]
    records = [make_record(name) for name in names] + [make_record("f6.py")]

    project = aggregate(records, "2024-01-01").projects["demo"]

    assert project.top_files == ["f6.py", "f0.py", "f1.py", "f2.py", "f3.py"]


def test_top_keys_stable_descending():
    totals = {"go": 2, "rs": 5, "py": 2, "ts": 5, "c": 1, "h": 0}

    assert top_keys(totals, 5) == ["rs", "ts", "go", "py", "c"]
