"""
Appointment booking engine.

Handles every write to a clinic's schedule:
1. Validate the request before touching the store
2. Take the clinic's writer lock and open a store transaction
3. Re-read the clinic's appointments and run the conflict check
4. Write only when the check comes back empty

Holding one lock per clinic across steps 3-4 means two requests for the
same clinician, room and time can never both pass the check. Reads
(conflict checks, alternative slots, listings) take no lock and are
snapshots.
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone

from .alternatives import AlternativeSlotFinder, OperatingHours
from .conflicts import check_conflicts, find_conflicts
from .exceptions import AppointmentNotFound, BookingValidationError, SlotUnavailable
from .intervals import Interval
from .records import (
    CANCELLED,
    CHECKED_IN,
    COMPLETED,
    SCHEDULED,
    AppointmentRecord,
    validate_status,
)
from .resources import Candidate, ResourceSet

logger = logging.getLogger(__name__)

# Fields ``update`` may change without going through reschedule.
DETAIL_FIELDS = frozenset(
    {
        "patient_id",
        "patient_name",
        "notes",
        "reason_for_visit",
        "appointment_type_id",
    }
)
RESOURCE_FIELDS = frozenset({"assigned_vet", "room_number"})


def _utcnow():
    return datetime.now(timezone.utc)


def _require_clinic(clinic_id):
    if clinic_id is None or str(clinic_id).strip() == "":
        raise BookingValidationError("Clinic ID is required.")
    return clinic_id


@dataclass(frozen=True)
class AppointmentFilters:
    start_date: datetime | None = None
    end_date: datetime | None = None
    status: str | None = None
    vet_id: str | None = None
    patient_id: str | None = None

    def __post_init__(self):
        if self.status is not None:
            validate_status(self.status)
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise BookingValidationError("start_date must not be after end_date.")

    def matches(self, appointment: AppointmentRecord) -> bool:
        if self.start_date is not None and appointment.start_time < self.start_date:
            return False
        if self.end_date is not None and appointment.start_time > self.end_date:
            return False
        if self.status is not None and appointment.status != self.status:
            return False
        if self.vet_id is not None and appointment.assigned_vet != self.vet_id:
            return False
        if self.patient_id is not None and appointment.patient_id != self.patient_id:
            return False
        return True


@dataclass(frozen=True)
class SlotSuggestion:
    """Outcome of the interactive scheduling path."""

    requested: Interval
    available: bool
    conflicts: list
    alternatives: list


class BookingEngine:
    def __init__(
        self,
        store,
        clock=None,
        id_factory=None,
        finder: AlternativeSlotFinder | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or _utcnow
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))
        self._finder = finder or AlternativeSlotFinder(store)
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def store(self):
        return self._store

    def _clinic_lock(self, clinic_id) -> threading.Lock:
        key = str(clinic_id)
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def _writer(self, clinic_id):
        with self._clinic_lock(clinic_id):
            with self._store.transaction(clinic_id):
                yield

    def _load(self, clinic_id, appointment_id) -> AppointmentRecord:
        if appointment_id is None or str(appointment_id).strip() == "":
            raise BookingValidationError("Appointment ID is required.")
        appointment = self._store.get(clinic_id, appointment_id)
        if appointment is None:
            raise AppointmentNotFound(appointment_id)
        return appointment

    def _refuse_on_conflict(self, candidate, exclude_appointment_id=None):
        conflicts = find_conflicts(self._store, candidate, exclude_appointment_id)
        if conflicts:
            logger.warning(
                "Slot unavailable for clinic=%s vet=%s room=%s %s; conflicts=%s",
                candidate.clinic_id,
                candidate.vet,
                candidate.room,
                candidate.interval,
                [appointment.id for appointment in conflicts],
            )
            first = conflicts[0]
            raise SlotUnavailable(
                conflicts,
                message=(
                    "This appointment overlaps with an existing appointment "
                    f"from {first.start_time.isoformat()} to {first.end_time.isoformat()}."
                ),
            )

    @staticmethod
    def _candidate_for(appointment: AppointmentRecord, interval=None) -> Candidate:
        return Candidate(
            clinic_id=appointment.clinic_id,
            interval=interval or appointment.interval,
            resources=appointment.resources,
        )

    # Queries

    def get(self, clinic_id, appointment_id) -> AppointmentRecord:
        return self._load(_require_clinic(clinic_id), appointment_id)

    def check_conflicts(self, candidate: Candidate, exclude_appointment_id=None):
        return check_conflicts(self._store, candidate, exclude_appointment_id)

    def list_appointments(self, clinic_id, filters: AppointmentFilters | None = None):
        _require_clinic(clinic_id)
        filters = filters or AppointmentFilters()
        appointments = [
            appointment
            for appointment in self._store.list_for_clinic(clinic_id)
            if filters.matches(appointment)
        ]
        return sorted(appointments, key=lambda a: (a.start_time, a.id))

    def find_alternative_slots(
        self,
        clinic_id,
        start: datetime,
        vet_id,
        duration_minutes,
        hours: OperatingHours,
        room=None,
        tz=None,
    ):
        candidate = Candidate(
            clinic_id=_require_clinic(clinic_id),
            interval=Interval.from_duration(start, duration_minutes),
            resources=ResourceSet(vet_id, room),
        )
        return self.alternatives_for(candidate, hours, tz)

    def alternatives_for(self, candidate: Candidate, hours: OperatingHours, tz=None, not_before=None):
        """Free substitutes for ``candidate``, keeping its exact length."""
        return self._finder.find(candidate, hours, tz, not_before)

    def suggest(self, candidate: Candidate, hours: OperatingHours, tz=None, not_before=None):
        """Check a requested slot and, if it is taken, propose substitutes."""
        if not_before is not None and candidate.start < not_before:
            raise BookingValidationError("Cannot schedule appointments in the past.")
        self._finder.validate_hours(candidate, hours, tz)
        report = self.check_conflicts(candidate)
        if not report.has_conflicts:
            return SlotSuggestion(candidate.interval, True, [], [])
        alternatives = self.alternatives_for(candidate, hours, tz, not_before)
        return SlotSuggestion(candidate.interval, False, report.conflicts, alternatives)

    # Writes

    def create(self, candidate: Candidate) -> AppointmentRecord:
        with self._writer(candidate.clinic_id):
            self._refuse_on_conflict(candidate)
            now = self._clock()
            appointment = AppointmentRecord(
                id=self._new_id(),
                clinic_id=candidate.clinic_id,
                start_time=candidate.start,
                end_time=candidate.end,
                assigned_vet=candidate.vet,
                room_number=candidate.room,
                status=SCHEDULED,
                appointment_type_id=candidate.appointment_type_id,
                patient_id=candidate.patient_id,
                patient_name=candidate.patient_name,
                notes=candidate.notes,
                reason_for_visit=candidate.reason_for_visit,
                created_at=now,
                updated_at=now,
            )
            appointment = self._store.insert(appointment)
        logger.info(
            "Created appointment %s for clinic=%s vet=%s %s",
            appointment.id,
            appointment.clinic_id,
            appointment.assigned_vet,
            appointment.interval,
        )
        return appointment

    def reschedule(self, clinic_id, appointment_id, new_start, new_end) -> AppointmentRecord:
        _require_clinic(clinic_id)
        interval = Interval(new_start, new_end)
        with self._writer(clinic_id):
            appointment = self._load(clinic_id, appointment_id)
            self._refuse_on_conflict(
                self._candidate_for(appointment, interval), exclude_appointment_id=appointment.id
            )
            appointment = self._store.update(
                appointment.evolve(
                    start_time=interval.start,
                    end_time=interval.end,
                    updated_at=self._clock(),
                )
            )
        logger.info("Rescheduled appointment %s to %s", appointment.id, interval)
        return appointment

    def move(self, clinic_id, appointment_id, new_start) -> AppointmentRecord:
        """Reschedule keeping the appointment's current length."""
        appointment = self.get(clinic_id, appointment_id)
        interval = appointment.interval.starting_at(new_start)
        return self.reschedule(clinic_id, appointment_id, interval.start, interval.end)

    def update_status(self, clinic_id, appointment_id, new_status) -> AppointmentRecord:
        _require_clinic(clinic_id)
        validate_status(new_status)
        with self._writer(clinic_id):
            appointment = self._load(clinic_id, appointment_id)
            if appointment.status == CANCELLED and new_status != CANCELLED:
                # The slot may have been rebooked while this one was cancelled.
                self._refuse_on_conflict(
                    self._candidate_for(appointment), exclude_appointment_id=appointment.id
                )
            now = self._clock()
            changes = {"status": new_status, "updated_at": now}
            if new_status == CHECKED_IN and appointment.status != CHECKED_IN:
                changes["checkin_time"] = now
            if new_status == COMPLETED and appointment.status != COMPLETED:
                changes["checkout_time"] = now
            appointment = self._store.update(appointment.evolve(**changes))
        logger.info("Appointment %s status -> %s", appointment.id, new_status)
        return appointment

    def update(self, clinic_id, appointment_id, **changes) -> AppointmentRecord:
        """Change descriptive fields and/or the assigned vet and room."""
        _require_clinic(clinic_id)
        unknown = set(changes) - DETAIL_FIELDS - RESOURCE_FIELDS
        if unknown:
            raise BookingValidationError(
                f"Cannot update field(s): {', '.join(sorted(unknown))}."
            )
        with self._writer(clinic_id):
            appointment = self._load(clinic_id, appointment_id)
            if RESOURCE_FIELDS & set(changes):
                resources = ResourceSet(
                    changes.get("assigned_vet", appointment.assigned_vet),
                    changes.get("room_number", appointment.room_number),
                )
                changes["assigned_vet"] = resources.vet
                changes["room_number"] = resources.room
                if appointment.is_active:
                    self._refuse_on_conflict(
                        Candidate(appointment.clinic_id, appointment.interval, resources),
                        exclude_appointment_id=appointment.id,
                    )
            appointment = self._store.update(
                appointment.evolve(updated_at=self._clock(), **changes)
            )
        logger.info("Updated appointment %s: %s", appointment.id, sorted(changes))
        return appointment
