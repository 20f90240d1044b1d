"""Idle-timeout based active time accounting."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional


@dataclass(slots=True)
class SessionClock:
    """Converts gaps between activity events into bounded active minutes.

    Gaps up to ``idle_threshold`` count as continuous work, rounded up to the
    minute and capped at ``max_credit``. Longer gaps are idle and contribute
    nothing. The result is a lower bound on real working time.
    """

    idle_threshold: timedelta = timedelta(minutes=5)
    max_credit: timedelta = timedelta(minutes=5)
    last_activity: Optional[datetime] = None
    total_active_minutes: int = 0

    def accumulate(self, now: datetime) -> int:
        """Advance the clock to ``now`` and return the minutes credited."""
        previous = self.last_activity
        if previous is None:
            self.last_activity = now
            return 0
        if now < previous:
            # Out-of-order completion; the clock never moves backwards.
            return 0

        self.last_activity = now
        gap = now - previous
        if gap > self.idle_threshold:
            return 0

        cap = math.floor(self.max_credit.total_seconds() / 60)
        minutes = min(cap, math.ceil(gap.total_seconds() / 60))
        self.total_active_minutes += minutes
        return minutes

    def release(self, minutes: int) -> None:
        """Drop minutes that have been persisted elsewhere."""
        self.total_active_minutes = max(0, self.total_active_minutes - minutes)
