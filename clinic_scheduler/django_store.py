"""Appointment store backed by the Django ORM."""

import uuid
from contextlib import contextmanager

from django.core.exceptions import ValidationError
from django.db import transaction

from .exceptions import AppointmentNotFound, BookingValidationError
from .models import Appointment, Clinic
from .records import AppointmentRecord
from .stores import AppointmentStore

RECORD_FIELDS = (
    "start_time",
    "end_time",
    "assigned_vet",
    "status",
    "appointment_type_id",
    "patient_id",
    "patient_name",
    "notes",
    "reason_for_visit",
    "checkin_time",
    "checkout_time",
)


def to_record(appointment: Appointment) -> AppointmentRecord:
    return AppointmentRecord(
        id=str(appointment.pk),
        clinic_id=appointment.clinic_id,
        room_number=appointment.room_number or None,
        created_at=appointment.created_at,
        updated_at=appointment.updated_at,
        **{name: getattr(appointment, name) for name in RECORD_FIELDS},
    )


def _as_uuid(appointment_id):
    try:
        return uuid.UUID(str(appointment_id))
    except ValueError:
        return None


class DjangoAppointmentStore(AppointmentStore):
    def list_for_clinic(self, clinic_id) -> list[AppointmentRecord]:
        return [to_record(a) for a in Appointment.objects.filter(clinic_id=clinic_id)]

    def get(self, clinic_id, appointment_id) -> AppointmentRecord | None:
        pk = _as_uuid(appointment_id)
        if pk is None:
            return None
        appointment = Appointment.objects.filter(clinic_id=clinic_id, pk=pk).first()
        return to_record(appointment) if appointment else None

    def insert(self, record: AppointmentRecord) -> AppointmentRecord:
        appointment = Appointment(id=_as_uuid(record.id), clinic_id=record.clinic_id)
        self._save(appointment, record, force_insert=True)
        return to_record(appointment)

    def update(self, record: AppointmentRecord) -> AppointmentRecord:
        appointment = Appointment.objects.filter(
            clinic_id=record.clinic_id, pk=_as_uuid(record.id)
        ).first()
        if appointment is None:
            raise AppointmentNotFound(record.id)
        self._save(appointment, record)
        return to_record(appointment)

    @contextmanager
    def transaction(self, clinic_id):
        with transaction.atomic():
            # Row lock on the clinic serialises writers across processes.
            list(
                Clinic.objects.select_for_update()
                .filter(pk=clinic_id)
                .values_list("pk", flat=True)
            )
            yield

    @staticmethod
    def _save(appointment, record, **kwargs):
        for name in RECORD_FIELDS:
            setattr(appointment, name, getattr(record, name))
        appointment.room_number = record.room_number or ""
        try:
            appointment.save(**kwargs)
        except ValidationError as e:
            raise BookingValidationError("; ".join(e.messages))
