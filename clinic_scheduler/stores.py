"""
Appointment stores.

The booking engine never caches appointments; it re-reads the store on every
conflict check. Stores are keyed by clinic, and ``transaction`` brackets each
check-then-write so a backend can add its own isolation on top of the
engine's per-clinic lock.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager

from .exceptions import AppointmentNotFound, BookingValidationError
from .records import AppointmentRecord


def clinic_key(clinic_id) -> str:
    return str(clinic_id)


class AppointmentStore(ABC):
    @abstractmethod
    def list_for_clinic(self, clinic_id) -> list[AppointmentRecord]:
        """Return every appointment of the clinic, cancelled ones included."""
        raise NotImplementedError

    @abstractmethod
    def get(self, clinic_id, appointment_id) -> AppointmentRecord | None:
        raise NotImplementedError

    @abstractmethod
    def insert(self, record: AppointmentRecord) -> AppointmentRecord:
        raise NotImplementedError

    @abstractmethod
    def update(self, record: AppointmentRecord) -> AppointmentRecord:
        """Replace the stored appointment that has ``record.id``."""
        raise NotImplementedError

    @contextmanager
    def transaction(self, clinic_id):
        yield


class InMemoryAppointmentStore(AppointmentStore):
    def __init__(self) -> None:
        self._appointments: dict[str, dict[str, AppointmentRecord]] = {}
        self._guard = threading.Lock()

    def list_for_clinic(self, clinic_id) -> list[AppointmentRecord]:
        with self._guard:
            return list(self._appointments.get(clinic_key(clinic_id), {}).values())

    def get(self, clinic_id, appointment_id) -> AppointmentRecord | None:
        with self._guard:
            return self._appointments.get(clinic_key(clinic_id), {}).get(
                str(appointment_id)
            )

    def insert(self, record: AppointmentRecord) -> AppointmentRecord:
        with self._guard:
            clinic_appointments = self._appointments.setdefault(
                clinic_key(record.clinic_id), {}
            )
            if record.id in clinic_appointments:
                raise BookingValidationError(f"Appointment {record.id} already exists.")
            clinic_appointments[record.id] = record
        return record

    def update(self, record: AppointmentRecord) -> AppointmentRecord:
        with self._guard:
            clinic_appointments = self._appointments.get(clinic_key(record.clinic_id), {})
            if record.id not in clinic_appointments:
                raise AppointmentNotFound(record.id)
            clinic_appointments[record.id] = record
        return record
