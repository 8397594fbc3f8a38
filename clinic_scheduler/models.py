import uuid
from datetime import timedelta

from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator
from django.core.exceptions import ValidationError

from .conflicts import find_conflicts
from .records import CANCELLED, SCHEDULED, STATUS_CHOICES
from .resources import Candidate

DEFAULT_APPOINTMENT_TYPES = [
    {
        "name": "Regular Checkup",
        "duration_minutes": 30,
        "description": "Routine health examination",
        "preparation_instructions": "No special preparation needed",
    },
    {
        "name": "Vaccination",
        "duration_minutes": 15,
        "description": "Pet vaccination appointment",
        "preparation_instructions": "Bring vaccination history",
    },
    {
        "name": "Surgery",
        "duration_minutes": 120,
        "description": "Surgical procedure",
        "preparation_instructions": "No food 12 hours before surgery",
    },
    {
        "name": "Dental Cleaning",
        "duration_minutes": 60,
        "description": "Dental cleaning and examination",
        "preparation_instructions": "No food 8 hours before procedure",
    },
]


class Clinic(models.Model):
    name = models.CharField(max_length=200)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    # Blank hours fall back to CLINIC_SCHEDULER defaults.
    operating_hours_start = models.TimeField(null=True, blank=True)
    operating_hours_end = models.TimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    def clean(self):
        super().clean()
        if (
            self.operating_hours_start
            and self.operating_hours_end
            and self.operating_hours_start >= self.operating_hours_end
        ):
            raise ValidationError("Opening time must be before closing time.")

    def seed_appointment_types(self):
        """Create the default appointment type catalogue for this clinic"""
        return [
            AppointmentType.objects.get_or_create(
                clinic=self, name=entry["name"], defaults=entry
            )[0]
            for entry in DEFAULT_APPOINTMENT_TYPES
        ]


class AppointmentType(models.Model):
    name = models.CharField(max_length=100)
    duration_minutes = models.PositiveIntegerField(
        validators=[MinValueValidator(15), MaxValueValidator(480)]
    )
    clinic = models.ForeignKey(
        Clinic, on_delete=models.CASCADE, related_name="appointment_types"
    )
    description = models.TextField(blank=True)
    preparation_instructions = models.TextField(blank=True)

    class Meta:
        unique_together = ["clinic", "name"]

    def __str__(self):
        return f"{self.name} ({self.duration_minutes} mins)"


class Appointment(models.Model):
    STATUS_CHOICES = STATUS_CHOICES

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(
        Clinic, on_delete=models.CASCADE, related_name="appointments"
    )
    appointment_type = models.ForeignKey(
        AppointmentType, on_delete=models.SET_NULL, null=True, blank=True
    )
    patient_id = models.CharField(max_length=64, blank=True)
    patient_name = models.CharField(max_length=200, blank=True)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField(null=True, blank=True)
    assigned_vet = models.CharField(max_length=100)
    room_number = models.CharField(max_length=50, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=SCHEDULED)
    notes = models.TextField(blank=True)
    reason_for_visit = models.TextField(blank=True)
    checkin_time = models.DateTimeField(null=True, blank=True)
    checkout_time = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["start_time"]
        indexes = [models.Index(fields=["clinic", "start_time"])]

    def __str__(self):
        return f"{self.patient_name or self.patient_id} with {self.assigned_vet} at {self.start_time}"

    def save(self, *args, **kwargs):
        self.calculate_end_time()
        self.full_clean()
        super().save(*args, **kwargs)

    def calculate_end_time(self):
        """Calculate end_time based on appointment type duration"""
        if self.appointment_type_id and self.start_time and not self.end_time:
            self.end_time = self.start_time + timedelta(
                minutes=self.appointment_type.duration_minutes
            )

    def clean(self):
        super().clean()
        self.calculate_end_time()

        if self.start_time and not self.end_time:
            raise ValidationError("End time or appointment type is required.")
        if self.start_time and self.end_time and self.start_time >= self.end_time:
            raise ValidationError("Start time must be before end time.")
        if (
            self.appointment_type_id
            and self.clinic_id
            and self.appointment_type.clinic_id != self.clinic_id
        ):
            raise ValidationError("Appointment type belongs to a different clinic.")

        if (
            self.status != CANCELLED
            and self.clinic_id
            and self.assigned_vet
            and self.start_time
            and self.end_time
        ):
            self.check_overlaps()

    def check_overlaps(self):
        """Validate that appointment doesn't overlap with existing appointments"""
        from .django_store import DjangoAppointmentStore

        candidate = Candidate.build(
            self.clinic_id,
            self.start_time,
            self.end_time,
            self.assigned_vet,
            self.room_number or None,
        )
        overlapping = find_conflicts(
            DjangoAppointmentStore(), candidate, exclude_appointment_id=self.pk
        )
        if overlapping:
            raise ValidationError(
                f"This appointment overlaps with an existing appointment "
                f"from {overlapping[0].start_time} to {overlapping[0].end_time}."
            )
