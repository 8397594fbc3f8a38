from django.contrib import admin
from .models import Clinic, AppointmentType, Appointment


class AppointmentTypeInline(admin.TabularInline):
    model = AppointmentType
    extra = 1
    fields = ["name", "duration_minutes", "description"]


@admin.register(Clinic)
class ClinicAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "phone",
        "email",
        "operating_hours_start",
        "operating_hours_end",
    ]
    search_fields = ["name", "email"]
    inlines = [AppointmentTypeInline]


@admin.register(AppointmentType)
class AppointmentTypeAdmin(admin.ModelAdmin):
    list_display = ["name", "duration_minutes", "clinic"]
    list_filter = ["clinic"]
    search_fields = ["name"]


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = [
        "patient_name",
        "assigned_vet",
        "room_number",
        "clinic",
        "start_time",
        "end_time",
        "status",
        "appointment_type",
    ]
    list_filter = ["status", "clinic", "start_time", "assigned_vet"]
    search_fields = ["patient_name", "patient_id", "assigned_vet", "room_number"]
    readonly_fields = ["checkin_time", "checkout_time", "created_at", "updated_at"]
    date_hierarchy = "start_time"
