from datetime import timedelta

from rest_framework import serializers

from .models import Clinic, AppointmentType
from .records import STATUS_CHOICES
from .resources import Candidate


class ClinicSerializer(serializers.ModelSerializer):
    class Meta:
        model = Clinic
        fields = "__all__"

    def validate(self, data):
        start = data.get(
            "operating_hours_start", getattr(self.instance, "operating_hours_start", None)
        )
        end = data.get(
            "operating_hours_end", getattr(self.instance, "operating_hours_end", None)
        )
        if start and end and start >= end:
            raise serializers.ValidationError("Opening time must be before closing time.")
        return data


class AppointmentTypeSerializer(serializers.ModelSerializer):
    class Meta:
        model = AppointmentType
        fields = "__all__"
        read_only_fields = ["clinic"]


class AppointmentSerializer(serializers.Serializer):
    """Read-only view of an appointment record."""

    id = serializers.CharField(read_only=True)
    clinic = serializers.IntegerField(source="clinic_id", read_only=True)
    appointment_type = serializers.IntegerField(
        source="appointment_type_id", read_only=True, allow_null=True
    )
    patient_id = serializers.CharField(read_only=True)
    patient_name = serializers.CharField(read_only=True)
    start_time = serializers.DateTimeField(read_only=True)
    end_time = serializers.DateTimeField(read_only=True)
    assigned_vet = serializers.CharField(read_only=True)
    room_number = serializers.CharField(read_only=True, allow_null=True)
    status = serializers.CharField(read_only=True)
    notes = serializers.CharField(read_only=True)
    reason_for_visit = serializers.CharField(read_only=True)
    checkin_time = serializers.DateTimeField(read_only=True)
    checkout_time = serializers.DateTimeField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True)
    updated_at = serializers.DateTimeField(read_only=True)


class IntervalSerializer(serializers.Serializer):
    start = serializers.DateTimeField(read_only=True)
    end = serializers.DateTimeField(read_only=True)


class ClinicScopedSerializer(serializers.Serializer):
    """Base for request serializers that need the clinic from the URL."""

    @property
    def clinic(self):
        return self.context["clinic"]

    def validate_appointment_type(self, value):
        if value is not None and value.clinic_id != self.clinic.pk:
            raise serializers.ValidationError("Appointment type belongs to a different clinic.")
        return value


class SlotRequestSerializer(ClinicScopedSerializer):
    """A time slot given as start plus end, duration or appointment type."""

    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField(required=False)
    duration_minutes = serializers.IntegerField(required=False, min_value=1)
    appointment_type = serializers.PrimaryKeyRelatedField(
        queryset=AppointmentType.objects.all(), required=False, allow_null=True
    )
    assigned_vet = serializers.CharField(max_length=100)
    room_number = serializers.CharField(max_length=50, required=False, allow_blank=True)

    def validate(self, data):
        if not data.get("end_time"):
            duration = data.get("duration_minutes")
            if duration is None and data.get("appointment_type") is not None:
                duration = data["appointment_type"].duration_minutes
            if duration is None:
                raise serializers.ValidationError(
                    "Provide end_time, duration_minutes or appointment_type."
                )
            data["end_time"] = data["start_time"] + timedelta(minutes=duration)
        if data["start_time"] >= data["end_time"]:
            raise serializers.ValidationError("Start time must be before end time.")
        return data

    def to_candidate(self, **details):
        data = self.validated_data
        appointment_type = data.get("appointment_type")
        return Candidate.build(
            clinic_id=self.clinic.pk,
            start=data["start_time"],
            end=data["end_time"],
            vet=data["assigned_vet"],
            room=data.get("room_number"),
            appointment_type_id=appointment_type.pk if appointment_type else None,
            **details,
        )


class AppointmentCreateSerializer(SlotRequestSerializer):
    patient_id = serializers.CharField(max_length=64, required=False, allow_blank=True)
    patient_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    reason_for_visit = serializers.CharField(required=False, allow_blank=True)

    def to_candidate(self):
        data = self.validated_data
        return super().to_candidate(
            patient_id=data.get("patient_id", ""),
            patient_name=data.get("patient_name", ""),
            notes=data.get("notes", ""),
            reason_for_visit=data.get("reason_for_visit", ""),
        )


class ConflictCheckSerializer(SlotRequestSerializer):
    exclude_appointment_id = serializers.CharField(required=False, allow_blank=True)


class AlternativeSlotsSerializer(SlotRequestSerializer):
    pass


class AppointmentUpdateSerializer(ClinicScopedSerializer):
    patient_id = serializers.CharField(max_length=64, required=False, allow_blank=True)
    patient_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    reason_for_visit = serializers.CharField(required=False, allow_blank=True)
    appointment_type = serializers.PrimaryKeyRelatedField(
        queryset=AppointmentType.objects.all(), required=False, allow_null=True
    )
    assigned_vet = serializers.CharField(max_length=100, required=False)
    room_number = serializers.CharField(max_length=50, required=False, allow_blank=True)

    def validate(self, data):
        if not data:
            raise serializers.ValidationError("No fields to update.")
        return data

    def changes(self):
        changes = dict(self.validated_data)
        if "appointment_type" in changes:
            appointment_type = changes.pop("appointment_type")
            changes["appointment_type_id"] = appointment_type.pk if appointment_type else None
        return changes


class RescheduleSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField(required=False)

    def validate(self, data):
        if data.get("end_time") and data["start_time"] >= data["end_time"]:
            raise serializers.ValidationError("Start time must be before end time.")
        return data


class StatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=STATUS_CHOICES)


class AppointmentFilterSerializer(serializers.Serializer):
    start_date = serializers.DateTimeField(required=False)
    end_date = serializers.DateTimeField(required=False)
    status = serializers.ChoiceField(choices=STATUS_CHOICES, required=False)
    vet_id = serializers.CharField(required=False)
    patient_id = serializers.CharField(required=False)

    def validate(self, data):
        if data.get("start_date") and data.get("end_date") and data["start_date"] > data["end_date"]:
            raise serializers.ValidationError("start_date must not be after end_date.")
        return data
