from dataclasses import dataclass, replace
from datetime import datetime

from .exceptions import BookingValidationError
from .intervals import Interval
from .resources import ResourceSet

SCHEDULED = "scheduled"
CONFIRMED = "confirmed"
CHECKED_IN = "checked_in"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
CANCELLED = "cancelled"
NO_SHOW = "no_show"

STATUS_CHOICES = [
    (SCHEDULED, "Scheduled"),
    (CONFIRMED, "Confirmed"),
    (CHECKED_IN, "Checked In"),
    (IN_PROGRESS, "In Progress"),
    (COMPLETED, "Completed"),
    (CANCELLED, "Cancelled"),
    (NO_SHOW, "No Show"),
]
STATUSES = frozenset(value for value, _ in STATUS_CHOICES)


def validate_status(status):
    if status not in STATUSES:
        raise BookingValidationError(f"Unknown appointment status: {status!r}.")
    return status


@dataclass(frozen=True)
class AppointmentRecord:
    """A persisted appointment as seen by the scheduling core.

    Records are immutable; the store swaps in a new record on every write.
    """

    id: str
    clinic_id: object
    start_time: datetime
    end_time: datetime
    assigned_vet: str
    room_number: str | None = None
    status: str = SCHEDULED
    appointment_type_id: object = None
    patient_id: str = ""
    patient_name: str = ""
    notes: str = ""
    reason_for_visit: str = ""
    checkin_time: datetime | None = None
    checkout_time: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self):
        Interval(self.start_time, self.end_time)
        validate_status(self.status)
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "room_number", self.room_number or None)

    @property
    def interval(self) -> Interval:
        return Interval(self.start_time, self.end_time)

    @property
    def resources(self) -> ResourceSet:
        return ResourceSet(self.assigned_vet, self.room_number)

    @property
    def is_active(self) -> bool:
        """Cancelled appointments no longer hold their slot."""
        return self.status != CANCELLED

    def evolve(self, **changes) -> "AppointmentRecord":
        return replace(self, **changes)
