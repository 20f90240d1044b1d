"""Configuration models and helpers for the code tracker."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


DATE_FMT = "%Y-%m-%d"
MAX_DURATION_MINUTES = 5


@dataclass(slots=True)
class TrackerSettings:
    """Runtime configuration for the activity collector."""

    flush_interval: timedelta = timedelta(minutes=5)
    idle_threshold: timedelta = timedelta(minutes=5)
    max_credit: timedelta = timedelta(minutes=5)
    debounce: timedelta = timedelta(milliseconds=500)
    top_n: int = 5

    def __post_init__(self) -> None:
        if self.max_credit > timedelta(minutes=MAX_DURATION_MINUTES):
            raise ValueError(
                f"max_credit cannot exceed {MAX_DURATION_MINUTES} minutes per change"
            )

    @classmethod
    def from_intervals(
        cls,
        flush_minutes: float,
        idle_minutes: float = 5.0,
        debounce_seconds: float | None = None,
    ) -> "TrackerSettings":
        debounce = debounce_seconds if debounce_seconds is not None else 0.5
        return cls(
            flush_interval=timedelta(minutes=flush_minutes),
            idle_threshold=timedelta(minutes=idle_minutes),
            debounce=timedelta(seconds=debounce),
        )
