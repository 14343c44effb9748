"""Time sources for the availability engine."""

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta, tzinfo


class Clock(ABC):
    """Abstract source of the current instant."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current timezone-aware instant."""
        pass


class SystemClock(Clock):
    """Wall clock."""

    def __init__(self, tz: tzinfo = UTC) -> None:
        self.tz = tz

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock(Clock):
    """Clock that only moves when told to.

    Naive instants are taken as UTC.
    """

    def __init__(self, instant: datetime) -> None:
        self._instant = self._aware(instant)

    @staticmethod
    def _aware(instant: datetime) -> datetime:
        if instant.tzinfo is None:
            return instant.replace(tzinfo=UTC)
        return instant

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = self._aware(instant)

    def advance(self, delta: timedelta) -> datetime:
        self._instant = self._instant + delta
        return self._instant
