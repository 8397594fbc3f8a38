"""
Half-open time intervals.

Every temporal comparison in the scheduler goes through ``overlaps``: an
interval ``[start, end)`` includes its start and excludes its end, so two
back-to-back appointments never collide.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from .exceptions import BookingValidationError


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start is None or self.end is None:
            raise BookingValidationError("Start and end times are required.")
        if self.start >= self.end:
            raise BookingValidationError("Start time must be before end time.")

    @classmethod
    def from_duration(cls, start, duration_minutes):
        """Build an interval of ``duration_minutes`` beginning at ``start``."""
        if duration_minutes is None or duration_minutes <= 0:
            raise BookingValidationError("Duration must be a positive number of minutes.")
        return cls(start, start + timedelta(minutes=duration_minutes))

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_minutes(self) -> int:
        return int(self.duration.total_seconds() // 60)

    def shifted(self, delta: timedelta) -> "Interval":
        return Interval(self.start + delta, self.end + delta)

    def starting_at(self, start: datetime) -> "Interval":
        """Same length, new start."""
        return Interval(start, start + self.duration)

    def overlaps(self, other: "Interval") -> bool:
        return overlaps(self, other)

    def __str__(self):
        return f"{self.start.isoformat()} - {self.end.isoformat()}"


def overlaps(a, b) -> bool:
    """True iff ``a`` and ``b`` share at least one instant."""
    return a.start < b.end and b.start < a.end
