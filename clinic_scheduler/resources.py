"""Contended resources and candidate bookings."""

from dataclasses import dataclass, replace

from .exceptions import BookingValidationError
from .intervals import Interval


def _clean_identifier(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class ResourceSet:
    """The clinician and optional room a booking would occupy.

    A missing room means there is no room contention to check, not "any room".
    """

    vet: str
    room: str | None = None

    def __post_init__(self):
        vet = _clean_identifier(self.vet)
        if vet is None:
            raise BookingValidationError("Assigned vet is required.")
        object.__setattr__(self, "vet", vet)
        object.__setattr__(self, "room", _clean_identifier(self.room))

    def contends_with(self, vet, room=None) -> bool:
        """Clinician collision or room collision; either one is enough."""
        if self.vet == _clean_identifier(vet):
            return True
        return self.room is not None and self.room == _clean_identifier(room)


@dataclass(frozen=True)
class Candidate:
    """A proposed, not yet committed booking inside one clinic."""

    clinic_id: object
    interval: Interval
    resources: ResourceSet
    appointment_type_id: object = None
    patient_id: str = ""
    patient_name: str = ""
    notes: str = ""
    reason_for_visit: str = ""

    def __post_init__(self):
        if self.clinic_id is None or str(self.clinic_id).strip() == "":
            raise BookingValidationError("Clinic ID is required.")

    @classmethod
    def build(cls, clinic_id, start, end, vet, room=None, **details):
        return cls(
            clinic_id=clinic_id,
            interval=Interval(start, end),
            resources=ResourceSet(vet, room),
            **details,
        )

    @property
    def start(self):
        return self.interval.start

    @property
    def end(self):
        return self.interval.end

    @property
    def vet(self):
        return self.resources.vet

    @property
    def room(self):
        return self.resources.room

    def with_interval(self, interval: Interval) -> "Candidate":
        return replace(self, interval=interval)
