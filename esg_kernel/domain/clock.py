"""
Clock -- injectable time source.

Responsibility:
    The only place the kernel learns the current time.  Services take a
    ``Clock`` in their constructor; rollover timestamps, gap-status
    ``transitioned_at`` values, rule history and audit ``occurred_at`` all
    come from it.

Architecture position:
    Kernel > Domain.  ``SystemClock`` is the single wall-clock read.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone

# Fixed start of the test clock: mid-January, inside the FY2025 period the
# rollover tests create.
DEFAULT_TEST_TIME = datetime(2025, 1, 15, 9, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Timezone-aware UTC time source."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen clock for tests.

    ``now()`` returns the same instant until ``advance()`` moves it, so
    ordering assertions on history rows are exact.
    """

    def __init__(self, start: datetime | None = None):
        self._current = start or DEFAULT_TEST_TIME

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float = 1) -> datetime:
        self._current += timedelta(seconds=seconds)
        return self._current
