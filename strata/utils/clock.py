"""Injectable time source so time-windowed state can be tested deterministically."""

import time
from datetime import date, datetime, timedelta
from typing import Optional


class Clock:
    """Wall clock. ``time()`` is epoch seconds, ``now()`` is naive local time."""

    def time(self) -> float:
        return time.time()

    def now(self) -> datetime:
        return datetime.fromtimestamp(self.time())

    def today(self) -> date:
        return self.now().date()


class FakeClock(Clock):
    """Manually advanced clock for tests."""

    def __init__(self, start: Optional[datetime] = None):
        start = start or datetime(2025, 1, 6, 9, 0, 0)
        self._now = start.timestamp()

    def time(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds

    def set(self, when: datetime) -> None:
        self._now = when.timestamp()

    def advance_to_next_day(self) -> None:
        tomorrow = datetime.combine(self.today() + timedelta(days=1), datetime.min.time())
        self._now = tomorrow.timestamp() + 1


SYSTEM_CLOCK = Clock()
