"""
Clock -- injectable time source.

Responsibility:
    Lets services stamp tracking entries, processing dates and completion
    dates without calling ``datetime.now()`` themselves, so tests can pin
    and advance time.

Architecture position:
    Kernel > Domain.  SystemClock is the only place that reads wall time.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

# Monday of a regular office week
DEFAULT_TEST_TIME = datetime(2025, 6, 2, 9, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of the current instant, always timezone-aware UTC."""

    @abstractmethod
    def now(self) -> datetime: ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Pinned clock for tests.

    Contract:
        ``now()`` returns the same instant until ``advance()`` or
        ``set_time()`` moves it.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = DEFAULT_TEST_TIME
        if fixed_time is not None:
            self.set_time(fixed_time)

    def now(self) -> datetime:
        return self._current

    def set_time(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware datetime")
        self._current = instant.astimezone(timezone.utc)

    def advance(self, seconds: int = 0, minutes: int = 0, days: int = 0) -> None:
        self._current += timedelta(days=days, minutes=minutes, seconds=seconds)
