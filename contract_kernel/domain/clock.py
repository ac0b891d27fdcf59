"""
Clock -- injectable time source.

Responsibility:
    Every ``completed_at``, ``performed_at`` and expiry calculation reads
    time through a Clock passed to the service constructor, never through
    ``datetime.now()`` or ``date.today()``.

Architecture position:
    Kernel > Domain.  SystemClock is the only place that reads the wall
    clock.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of timezone-aware UTC timestamps."""

    @abstractmethod
    def now(self) -> datetime: ...

    def today(self) -> date:
        """UTC calendar date of ``now()``."""
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    ``now()`` is stable across calls; ``advance()`` moves it forward.
    Activity trails are ordered by ``performed_at``, so tests that read
    the trail back advance the clock between actions.
    """

    def __init__(self, start: datetime | None = None):
        self._current = (start or DEFAULT_TEST_TIME).astimezone(timezone.utc)

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def set_time(self, time: datetime) -> None:
        self._current = time.astimezone(timezone.utc)
