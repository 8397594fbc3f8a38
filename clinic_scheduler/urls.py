from django.urls import path
from . import views

urlpatterns = [
    # Clinics and appointment types
    path('clinics/', views.ClinicListCreateView.as_view(), name='clinic-list'),
    path('clinics/<int:pk>/', views.ClinicDetailView.as_view(), name='clinic-detail'),
    path('clinics/<int:clinic_id>/appointment-types/', views.AppointmentTypeListCreateView.as_view(), name='appointment-type-list'),
    path('clinics/<int:clinic_id>/appointment-types/defaults/', views.seed_appointment_types, name='appointment-type-defaults'),
    path('clinics/<int:clinic_id>/appointment-types/<int:pk>/', views.AppointmentTypeDetailView.as_view(), name='appointment-type-detail'),

    # Appointments
    path('clinics/<int:clinic_id>/appointments/', views.appointment_list, name='appointment-list'),
    path('clinics/<int:clinic_id>/appointments/<str:pk>/', views.appointment_detail, name='appointment-detail'),
    path('clinics/<int:clinic_id>/appointments/<str:pk>/reschedule/', views.reschedule_appointment, name='appointment-reschedule'),
    path('clinics/<int:clinic_id>/appointments/<str:pk>/status/', views.update_appointment_status, name='appointment-status'),

    # Scheduling
    path('clinics/<int:clinic_id>/conflicts/', views.check_conflicts, name='check-conflicts'),
    path('clinics/<int:clinic_id>/alternative-slots/', views.alternative_slots, name='alternative-slots'),
    path('clinics/<int:clinic_id>/smart-schedule/', views.smart_schedule, name='smart-schedule'),
]
