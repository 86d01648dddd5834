"""
Clock -- injectable time source.

Responsibility:
    Domain and service code never call ``datetime.now()`` directly.  Queue
    ageing (days since created, date-range cutoffs) and transition
    timestamps read time through a ``Clock`` passed in at construction.

Architecture position:
    Kernel > Domain -- pure.  ``SystemClock`` is the one place wall-clock
    time enters the system.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """
    Source of the current time.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
    """

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock frozen at a given instant until moved explicitly.

    Used by tests and replays so that priorities, age filters and
    transition timestamps are reproducible.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )
        self._offset = timedelta(0)

    def now(self) -> datetime:
        return self._fixed_time + self._offset

    def set_time(self, time: datetime) -> None:
        self._fixed_time = time
        self._offset = timedelta(0)

    def advance(self, seconds: int = 1) -> None:
        self._offset += timedelta(seconds=seconds)

    def advance_days(self, days: int) -> None:
        """Move forward by whole days (ages every order by ``days``)."""
        self._offset += timedelta(days=days)


def start_of_day(moment: datetime) -> datetime:
    """Midnight of ``moment``'s calendar day, in ``moment``'s timezone."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)
