"""
Alternative slot search.

When a requested slot is taken, nearby substitutes are tried in a fixed
order: up to three slots earlier (nearest first), up to three slots later
(nearest first), then the opening of the next day if fewer than three
candidates fit inside the operating window. Each is checked against the
store and the first five free ones are returned.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from .conflicts import find_conflicts
from .exceptions import BookingValidationError, OutOfHours
from .intervals import Interval

logger = logging.getLogger(__name__)


def parse_clock(value) -> time:
    if isinstance(value, time):
        return value
    try:
        return datetime.strptime(str(value), "%H:%M").time()
    except ValueError:
        raise BookingValidationError(f"Invalid time of day: {value!r}. Use HH:MM.")


@dataclass(frozen=True)
class OperatingHours:
    """Daily ``[day_start, day_end)`` window of a clinic."""

    day_start: time
    day_end: time

    def __post_init__(self):
        object.__setattr__(self, "day_start", parse_clock(self.day_start))
        object.__setattr__(self, "day_end", parse_clock(self.day_end))
        if self.day_start >= self.day_end:
            raise BookingValidationError("Opening time must be before closing time.")

    def window_for(self, moment: datetime, tz=None) -> Interval:
        """The operating window on the clinic-local date of ``moment``."""
        if tz is not None and moment.tzinfo is not None:
            moment = moment.astimezone(tz)
        return self._window(moment.date(), moment.tzinfo)

    def next_day_window(self, window: Interval) -> Interval:
        return self._window(window.start.date() + timedelta(days=1), window.start.tzinfo)

    def _window(self, day, tzinfo) -> Interval:
        return Interval(
            datetime.combine(day, self.day_start, tzinfo=tzinfo),
            datetime.combine(day, self.day_end, tzinfo=tzinfo),
        )


class AlternativeSlotFinder:
    def __init__(
        self,
        store,
        max_results: int = 5,
        search_steps: int = 3,
        min_candidates: int = 3,
    ) -> None:
        self._store = store
        self._max_results = max_results
        self._search_steps = search_steps
        self._min_candidates = min_candidates

    def validate_hours(self, candidate, hours: OperatingHours, tz=None) -> Interval:
        """Return the day's window, or raise ``OutOfHours``."""
        window = hours.window_for(candidate.start, tz)
        if candidate.start < window.start or candidate.start >= window.end:
            raise OutOfHours(
                f"Appointments must be between {hours.day_start:%H:%M} "
                f"and {hours.day_end:%H:%M}."
            )
        if candidate.interval.end > window.end:
            raise OutOfHours("Appointment duration exceeds clinic hours.")
        return window

    def generate(self, candidate, hours: OperatingHours, window: Interval, not_before=None):
        """Substitute intervals in the order they will be checked."""
        requested = candidate.interval
        step = requested.duration
        slots = []

        for i in range(1, self._search_steps + 1):
            slot = requested.shifted(-step * i)
            if slot.start < window.start:
                continue
            if not_before is not None and slot.start < not_before:
                continue
            slots.append(slot)

        for i in range(1, self._search_steps + 1):
            slot = requested.shifted(step * i)
            if slot.end <= window.end:
                slots.append(slot)

        if len(slots) < self._min_candidates:
            next_day = hours.next_day_window(window)
            slots.append(requested.starting_at(next_day.start))

        return slots

    def find(self, candidate, hours: OperatingHours, tz=None, not_before=None):
        """Up to ``max_results`` conflict-free intervals near the candidate."""
        window = self.validate_hours(candidate, hours, tz)
        alternatives = []
        for slot in self.generate(candidate, hours, window, not_before):
            if find_conflicts(self._store, candidate.with_interval(slot)):
                continue
            alternatives.append(slot)
            if len(alternatives) >= self._max_results:
                break

        logger.info(
            "Found %d alternative slot(s) for clinic=%s vet=%s near %s",
            len(alternatives),
            candidate.clinic_id,
            candidate.vet,
            candidate.start.isoformat(),
        )
        return alternatives
