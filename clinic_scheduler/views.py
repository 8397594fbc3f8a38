import logging

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import generics, status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from .booking import AppointmentFilters
from .exceptions import (
    AppointmentNotFound,
    BookingValidationError,
    OutOfHours,
    SchedulingError,
    SlotUnavailable,
)
from .models import Clinic, AppointmentType
from .serializers import (
    ClinicSerializer,
    AppointmentTypeSerializer,
    AppointmentSerializer,
    IntervalSerializer,
    AppointmentCreateSerializer,
    AppointmentUpdateSerializer,
    ConflictCheckSerializer,
    AlternativeSlotsSerializer,
    RescheduleSerializer,
    StatusSerializer,
    AppointmentFilterSerializer,
)
from .services import get_booking_engine, operating_hours_for, earliest_bookable_time

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    BookingValidationError: status.HTTP_400_BAD_REQUEST,
    OutOfHours: status.HTTP_400_BAD_REQUEST,
    AppointmentNotFound: status.HTTP_404_NOT_FOUND,
    SlotUnavailable: status.HTTP_409_CONFLICT,
}


def scheduling_error_response(error: SchedulingError):
    body = {"error": error.message, "code": error.code}
    if isinstance(error, SlotUnavailable):
        body["conflicts"] = AppointmentSerializer(error.conflicts, many=True).data
    return Response(
        body, status=ERROR_STATUS.get(type(error), status.HTTP_400_BAD_REQUEST)
    )


def _validated(serializer_class, request, clinic=None, data=None):
    serializer = serializer_class(
        data=request.data if data is None else data, context={"clinic": clinic}
    )
    serializer.is_valid(raise_exception=True)
    return serializer


# Clinic Views
class ClinicListCreateView(generics.ListCreateAPIView):
    queryset = Clinic.objects.all()
    serializer_class = ClinicSerializer


class ClinicDetailView(generics.RetrieveUpdateDestroyAPIView):
    queryset = Clinic.objects.all()
    serializer_class = ClinicSerializer


# Appointment Type Views
class AppointmentTypeListCreateView(generics.ListCreateAPIView):
    serializer_class = AppointmentTypeSerializer

    def get_clinic(self):
        return get_object_or_404(Clinic, pk=self.kwargs["clinic_id"])

    def get_queryset(self):
        return AppointmentType.objects.filter(clinic=self.get_clinic())

    def perform_create(self, serializer):
        serializer.save(clinic=self.get_clinic())


class AppointmentTypeDetailView(generics.RetrieveUpdateDestroyAPIView):
    serializer_class = AppointmentTypeSerializer

    def get_queryset(self):
        return AppointmentType.objects.filter(clinic_id=self.kwargs["clinic_id"])


@api_view(["POST"])
def seed_appointment_types(request, clinic_id):
    """Create the default appointment type catalogue for a clinic"""
    clinic = get_object_or_404(Clinic, pk=clinic_id)
    appointment_types = clinic.seed_appointment_types()
    return Response(
        AppointmentTypeSerializer(appointment_types, many=True).data,
        status=status.HTTP_201_CREATED,
    )


# Appointment Views
@api_view(["GET", "POST"])
def appointment_list(request, clinic_id):
    clinic = get_object_or_404(Clinic, pk=clinic_id)
    engine = get_booking_engine()

    if request.method == "GET":
        filters = _validated(
            AppointmentFilterSerializer, request, data=request.query_params
        ).validated_data
        try:
            appointments = engine.list_appointments(
                clinic.pk, AppointmentFilters(**filters)
            )
        except SchedulingError as e:
            return scheduling_error_response(e)
        return Response(AppointmentSerializer(appointments, many=True).data)

    serializer = _validated(AppointmentCreateSerializer, request, clinic)
    try:
        appointment = engine.create(serializer.to_candidate())
    except SchedulingError as e:
        return scheduling_error_response(e)
    return Response(
        AppointmentSerializer(appointment).data, status=status.HTTP_201_CREATED
    )


@api_view(["GET", "PATCH"])
def appointment_detail(request, clinic_id, pk):
    clinic = get_object_or_404(Clinic, pk=clinic_id)
    engine = get_booking_engine()
    try:
        if request.method == "GET":
            appointment = engine.get(clinic.pk, pk)
        else:
            serializer = _validated(AppointmentUpdateSerializer, request, clinic)
            appointment = engine.update(clinic.pk, pk, **serializer.changes())
    except SchedulingError as e:
        return scheduling_error_response(e)
    return Response(AppointmentSerializer(appointment).data)


@api_view(["POST"])
def reschedule_appointment(request, clinic_id, pk):
    """Move an appointment; without end_time the current length is kept"""
    clinic = get_object_or_404(Clinic, pk=clinic_id)
    data = _validated(RescheduleSerializer, request, clinic).validated_data
    engine = get_booking_engine()
    try:
        if data.get("end_time"):
            appointment = engine.reschedule(
                clinic.pk, pk, data["start_time"], data["end_time"]
            )
        else:
            appointment = engine.move(clinic.pk, pk, data["start_time"])
    except SchedulingError as e:
        return scheduling_error_response(e)
    return Response(AppointmentSerializer(appointment).data)


@api_view(["POST"])
def update_appointment_status(request, clinic_id, pk):
    clinic = get_object_or_404(Clinic, pk=clinic_id)
    data = _validated(StatusSerializer, request, clinic).validated_data
    try:
        appointment = get_booking_engine().update_status(clinic.pk, pk, data["status"])
    except SchedulingError as e:
        return scheduling_error_response(e)
    return Response(AppointmentSerializer(appointment).data)


# Scheduling Views
@api_view(["POST"])
def check_conflicts(request, clinic_id):
    clinic = get_object_or_404(Clinic, pk=clinic_id)
    serializer = _validated(ConflictCheckSerializer, request, clinic)
    try:
        report = get_booking_engine().check_conflicts(
            serializer.to_candidate(),
            exclude_appointment_id=serializer.validated_data.get("exclude_appointment_id")
            or None,
        )
    except SchedulingError as e:
        return scheduling_error_response(e)
    return Response(
        {
            "has_conflicts": report.has_conflicts,
            "conflicts": AppointmentSerializer(report.conflicts, many=True).data,
        }
    )


@api_view(["POST"])
def alternative_slots(request, clinic_id):
    clinic = get_object_or_404(Clinic, pk=clinic_id)
    serializer = _validated(AlternativeSlotsSerializer, request, clinic)
    try:
        slots = get_booking_engine().alternatives_for(
            serializer.to_candidate(),
            operating_hours_for(clinic),
            tz=timezone.get_current_timezone(),
        )
    except SchedulingError as e:
        return scheduling_error_response(e)
    return Response({"alternatives": IntervalSerializer(slots, many=True).data})


@api_view(["POST"])
def smart_schedule(request, clinic_id):
    """Check a requested slot and suggest alternatives when it is taken"""
    clinic = get_object_or_404(Clinic, pk=clinic_id)
    serializer = _validated(AlternativeSlotsSerializer, request, clinic)
    try:
        suggestion = get_booking_engine().suggest(
            serializer.to_candidate(),
            operating_hours_for(clinic),
            tz=timezone.get_current_timezone(),
            not_before=earliest_bookable_time(),
        )
    except SchedulingError as e:
        return scheduling_error_response(e)

    if not suggestion.available:
        logger.info(
            "Requested slot %s unavailable for clinic %s, offering %d alternative(s)",
            suggestion.requested,
            clinic.pk,
            len(suggestion.alternatives),
        )
    return Response(
        {
            "available": suggestion.available,
            "requested": IntervalSerializer(suggestion.requested).data,
            "conflicts": AppointmentSerializer(suggestion.conflicts, many=True).data,
            "alternatives": IntervalSerializer(suggestion.alternatives, many=True).data,
        }
    )
