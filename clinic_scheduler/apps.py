from django.apps import AppConfig


class ClinicSchedulerConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "clinic_scheduler"
    verbose_name = "Clinic scheduling"
