"""
Conflict detection.

An existing appointment collides with a candidate when it is still active,
its interval overlaps the candidate's, and it holds the same clinician or
(when the candidate names one) the same room.
"""

import logging
from dataclasses import dataclass

from .intervals import overlaps

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConflictReport:
    conflicts: list

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


def collides(appointment, candidate, exclude_appointment_id=None) -> bool:
    if exclude_appointment_id is not None and appointment.id == str(exclude_appointment_id):
        return False
    if not appointment.is_active:
        return False
    if not overlaps(appointment.interval, candidate.interval):
        return False
    return candidate.resources.contends_with(
        appointment.assigned_vet, appointment.room_number
    )


def find_conflicts(store, candidate, exclude_appointment_id=None):
    """Appointments in the candidate's clinic that block it. Pure read."""
    conflicts = [
        appointment
        for appointment in store.list_for_clinic(candidate.clinic_id)
        if collides(appointment, candidate, exclude_appointment_id)
    ]
    if conflicts:
        logger.debug(
            "Conflicts for clinic=%s vet=%s room=%s %s: %s",
            candidate.clinic_id,
            candidate.vet,
            candidate.room,
            candidate.interval,
            [appointment.id for appointment in conflicts],
        )
    return conflicts


def check_conflicts(store, candidate, exclude_appointment_id=None) -> ConflictReport:
    return ConflictReport(find_conflicts(store, candidate, exclude_appointment_id))
