"""Tests for idle-timeout active time accounting."""

from datetime import datetime, timedelta

import pytest

from code_tracker.session_clock import SessionClock

START = datetime(2024, 1, 1, 9, 0, 0)


def test_first_call_contributes_nothing():
    clock = SessionClock()

    assert clock.accumulate(START) == 0
    assert clock.last_activity == START
    assert clock.total_active_minutes == 0


@pytest.mark.parametrize(
    "gap, expected",
    [
        (timedelta(0), 0),
        (timedelta(seconds=10), 1),
        (timedelta(minutes=1), 1),
        (timedelta(minutes=2, seconds=1), 3),
        (timedelta(minutes=5), 5),
        (timedelta(minutes=5, seconds=30), 0),
        (timedelta(minutes=10), 0),
    ],
)
def test_gap_contribution(gap, expected):
    clock = SessionClock()
    clock.accumulate(START)

    assert clock.accumulate(START + gap) == expected
    assert clock.total_active_minutes == expected
    assert clock.last_activity == START + gap


def test_idle_gap_resets_reference_point():
    clock = SessionClock()
    clock.accumulate(START)
    clock.accumulate(START + timedelta(minutes=30))

    assert clock.accumulate(START + timedelta(minutes=32)) == 2
    assert clock.total_active_minutes == 2


def test_contribution_is_capped_by_max_credit():
    clock = SessionClock(idle_threshold=timedelta(minutes=10), max_credit=timedelta(minutes=5))
    clock.accumulate(START)

    assert clock.accumulate(START + timedelta(minutes=8)) == 5


def test_out_of_order_event_does_not_rewind():
    clock = SessionClock()
    clock.accumulate(START)

    assert clock.accumulate(START - timedelta(minutes=1)) == 0
    assert clock.last_activity == START


def test_release_never_goes_negative():
    clock = SessionClock(total_active_minutes=3)

    clock.release(2)
    assert clock.total_active_minutes == 1
    clock.release(5)
    assert clock.total_active_minutes == 0
