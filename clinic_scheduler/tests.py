import uuid
from datetime import time

from django.test import override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from .models import Clinic, AppointmentType, Appointment


@override_settings(TIME_ZONE="UTC")
class AppointmentSchedulingTests(APITestCase):
    def setUp(self):
        # Create clinic
        self.clinic = Clinic.objects.create(
            name="Test Clinic",
            address="123 Test St",
            phone="555-1234",
            email="test@clinic.com",
            operating_hours_start=time(9, 0),
            operating_hours_end=time(17, 0),
        )

        # Create appointment type
        self.consultation = AppointmentType.objects.create(
            name="Consultation", duration_minutes=30, clinic=self.clinic
        )

        self.appointments_url = f"/api/clinics/{self.clinic.id}/appointments/"

    def book(self, start, vet="Dr. Smith", room="", **extra):
        data = {
            "start_time": start,
            "appointment_type": self.consultation.id,
            "assigned_vet": vet,
            "room_number": room,
        }
        data.update(extra)
        return self.client.post(self.appointments_url, data, format="json")

    def test_appointment_creation(self):
        """Test creating an appointment derives end time from its type"""
        response = self.book(
            "2035-01-08T10:00:00Z", room="1", patient_name="Rex", notes="Test appointment"
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["end_time"], "2035-01-08T10:30:00Z")
        self.assertEqual(response.data["status"], "scheduled")
        self.assertEqual(response.data["clinic"], self.clinic.id)
        self.assertEqual(response.data["room_number"], "1")

        appointment = Appointment.objects.get()
        self.assertEqual(str(appointment.pk), response.data["id"])
        self.assertEqual(appointment.patient_name, "Rex")

    def test_appointment_creation_with_explicit_end(self):
        response = self.client.post(
            self.appointments_url,
            {
                "start_time": "2035-01-08T10:00:00Z",
                "end_time": "2035-01-08T10:45:00Z",
                "assigned_vet": "Dr. Smith",
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data["appointment_type"])
        self.assertIsNone(response.data["room_number"])

    def test_overlapping_appointment_is_refused(self):
        """Test that a double booking returns 409 with the conflicting appointment"""
        first = self.book("2035-01-08T10:00:00Z")

        response = self.book("2035-01-08T10:15:00Z")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "slot_unavailable")
        self.assertIn("overlap", response.data["error"])
        self.assertEqual(
            [c["id"] for c in response.data["conflicts"]], [first.data["id"]]
        )
        self.assertEqual(Appointment.objects.count(), 1)

    def test_back_to_back_appointments(self):
        self.assertEqual(self.book("2035-01-08T10:00:00Z").status_code, status.HTTP_201_CREATED)
        self.assertEqual(self.book("2035-01-08T10:30:00Z").status_code, status.HTTP_201_CREATED)

    def test_room_conflict_between_vets(self):
        self.book("2035-01-08T10:00:00Z", vet="Dr. Smith", room="3")

        response = self.book("2035-01-08T10:00:00Z", vet="Dr. Jones", room="3")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.book("2035-01-08T10:00:00Z", vet="Dr. Jones", room="4")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_invalid_booking_requests(self):
        other_clinic = Clinic.objects.create(name="Other Clinic")
        other_type = AppointmentType.objects.create(
            name="Consultation", duration_minutes=30, clinic=other_clinic
        )

        missing_vet = self.client.post(
            self.appointments_url,
            {"start_time": "2035-01-08T10:00:00Z", "appointment_type": self.consultation.id},
            format="json",
        )
        missing_length = self.client.post(
            self.appointments_url,
            {"start_time": "2035-01-08T10:00:00Z", "assigned_vet": "Dr. Smith"},
            format="json",
        )
        inverted = self.client.post(
            self.appointments_url,
            {
                "start_time": "2035-01-08T10:00:00Z",
                "end_time": "2035-01-08T09:00:00Z",
                "assigned_vet": "Dr. Smith",
            },
            format="json",
        )
        foreign_type = self.book("2035-01-08T10:00:00Z", appointment_type=other_type.id)

        for response in (missing_vet, missing_length, inverted, foreign_type):
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Appointment.objects.count(), 0)

    def test_unknown_clinic_and_appointment(self):
        response = self.client.get("/api/clinics/9999/appointments/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        for pk in (uuid.uuid4(), "not-an-id"):
            response = self.client.get(f"{self.appointments_url}{pk}/")
            self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
            self.assertEqual(response.data["code"], "not_found")

    def test_appointment_from_other_clinic_is_not_found(self):
        appointment = self.book("2035-01-08T10:00:00Z").data
        other_clinic = Clinic.objects.create(name="Other Clinic")

        response = self.client.get(
            f"/api/clinics/{other_clinic.id}/appointments/{appointment['id']}/"
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_cancel_then_rebook(self):
        """Test that cancelling an appointment frees its slot"""
        appointment = self.book("2035-01-08T10:00:00Z").data

        response = self.client.post(
            f"{self.appointments_url}{appointment['id']}/status/",
            {"status": "cancelled"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "cancelled")

        response = self.book("2035-01-08T10:00:00Z")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_status_updates(self):
        appointment = self.book("2035-01-08T10:00:00Z").data
        url = f"{self.appointments_url}{appointment['id']}/status/"

        response = self.client.post(url, {"status": "checked_in"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data["checkin_time"])

        response = self.client.post(url, {"status": "completed"}, format="json")
        self.assertIsNotNone(response.data["checkout_time"])

        response = self.client.post(url, {"status": "archived"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reschedule(self):
        appointment = self.book("2035-01-08T10:00:00Z").data
        url = f"{self.appointments_url}{appointment['id']}/reschedule/"

        response = self.client.post(
            url,
            {"start_time": "2035-01-08T10:15:00Z", "end_time": "2035-01-08T11:00:00Z"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["end_time"], "2035-01-08T11:00:00Z")

        # Without an end time the current length is kept
        response = self.client.post(url, {"start_time": "2035-01-08T14:00:00Z"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["end_time"], "2035-01-08T14:45:00Z")

    def test_reschedule_into_taken_slot(self):
        self.book("2035-01-08T10:00:00Z")
        other = self.book("2035-01-08T11:00:00Z").data

        response = self.client.post(
            f"{self.appointments_url}{other['id']}/reschedule/",
            {"start_time": "2035-01-08T10:15:00Z"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(
            Appointment.objects.get(pk=other["id"]).start_time.isoformat(),
            "2035-01-08T11:00:00+00:00",
        )

    def test_update_details_and_vet(self):
        self.book("2035-01-08T10:00:00Z", vet="Dr. Jones")
        appointment = self.book("2035-01-08T10:00:00Z", vet="Dr. Smith").data
        url = f"{self.appointments_url}{appointment['id']}/"

        response = self.client.patch(url, {"notes": "Limping"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["notes"], "Limping")

        response = self.client.patch(url, {"assigned_vet": "Dr. Jones"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.client.patch(url, {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_appointments(self):
        self.book("2035-01-08T11:00:00Z", vet="Dr. Smith", patient_id="P1")
        self.book("2035-01-08T10:00:00Z", vet="Dr. Jones", patient_id="P2")
        self.book("2035-01-09T10:00:00Z", vet="Dr. Jones", patient_id="P1")

        response = self.client.get(self.appointments_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [a["start_time"] for a in response.data],
            ["2035-01-08T10:00:00Z", "2035-01-08T11:00:00Z", "2035-01-09T10:00:00Z"],
        )

        response = self.client.get(self.appointments_url, {"vet_id": "Dr. Jones"})
        self.assertEqual(len(response.data), 2)

        response = self.client.get(
            self.appointments_url,
            {"patient_id": "P1", "start_date": "2035-01-09T00:00:00Z"},
        )
        self.assertEqual(len(response.data), 1)

        response = self.client.get(self.appointments_url, {"status": "archived"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


@override_settings(TIME_ZONE="UTC")
class SlotSearchTests(APITestCase):
    def setUp(self):
        self.clinic = Clinic.objects.create(
            name="Test Clinic",
            operating_hours_start=time(9, 0),
            operating_hours_end=time(17, 0),
        )
        self.base_url = f"/api/clinics/{self.clinic.id}"
        self.client.post(
            f"{self.base_url}/appointments/",
            {
                "start_time": "2035-01-08T12:00:00Z",
                "duration_minutes": 30,
                "assigned_vet": "Dr. Smith",
                "room_number": "2",
            },
            format="json",
        )

    def slot(self, start, vet="Dr. Smith", **extra):
        data = {"start_time": start, "duration_minutes": 30, "assigned_vet": vet}
        data.update(extra)
        return data

    def test_check_conflicts(self):
        url = f"{self.base_url}/conflicts/"

        response = self.client.post(url, self.slot("2035-01-08T12:15:00Z"), format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["has_conflicts"])
        self.assertEqual(len(response.data["conflicts"]), 1)

        response = self.client.post(
            url, self.slot("2035-01-08T12:15:00Z", vet="Dr. Jones", room_number="2"), format="json"
        )
        self.assertTrue(response.data["has_conflicts"])

        response = self.client.post(
            url, self.slot("2035-01-08T12:15:00Z", vet="Dr. Jones"), format="json"
        )
        self.assertFalse(response.data["has_conflicts"])

    def test_check_conflicts_excluding_appointment(self):
        appointment = Appointment.objects.get()

        response = self.client.post(
            f"{self.base_url}/conflicts/",
            self.slot("2035-01-08T12:15:00Z", exclude_appointment_id=str(appointment.pk)),
            format="json",
        )

        self.assertFalse(response.data["has_conflicts"])

    def test_alternative_slots(self):
        response = self.client.post(
            f"{self.base_url}/alternative-slots/", self.slot("2035-01-08T12:00:00Z"), format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [slot["start"] for slot in response.data["alternatives"]],
            [
                "2035-01-08T11:30:00Z",
                "2035-01-08T11:00:00Z",
                "2035-01-08T10:30:00Z",
                "2035-01-08T12:30:00Z",
                "2035-01-08T13:00:00Z",
            ],
        )

    def test_alternative_slots_near_closing(self):
        self.client.post(
            f"{self.base_url}/appointments/", self.slot("2035-01-08T16:30:00Z"), format="json"
        )

        response = self.client.post(
            f"{self.base_url}/alternative-slots/", self.slot("2035-01-08T16:30:00Z"), format="json"
        )

        self.assertEqual(
            [slot["start"] for slot in response.data["alternatives"]],
            ["2035-01-08T16:00:00Z", "2035-01-08T15:30:00Z", "2035-01-08T15:00:00Z"],
        )

    def test_alternative_slots_out_of_hours(self):
        response = self.client.post(
            f"{self.base_url}/alternative-slots/", self.slot("2035-01-08T16:45:00Z"), format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "out_of_hours")

    def test_alternative_slots_reject_end_just_past_closing(self):
        """Test that a request ending seconds after closing is out of hours on both endpoints"""
        self.client.post(
            f"{self.base_url}/appointments/", self.slot("2035-01-08T16:30:00Z"), format="json"
        )
        data = {
            "start_time": "2035-01-08T16:30:00Z",
            "end_time": "2035-01-08T17:00:30Z",
            "assigned_vet": "Dr. Smith",
        }

        for endpoint in ("alternative-slots", "smart-schedule"):
            response = self.client.post(f"{self.base_url}/{endpoint}/", data, format="json")
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertEqual(response.data["code"], "out_of_hours")

    def test_alternative_slots_keep_requested_length(self):
        response = self.client.post(
            f"{self.base_url}/alternative-slots/",
            {
                "start_time": "2035-01-08T12:00:00Z",
                "end_time": "2035-01-08T12:30:30Z",
                "assigned_vet": "Dr. Smith",
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            response.data["alternatives"][0],
            {"start": "2035-01-08T11:29:30Z", "end": "2035-01-08T12:00:00Z"},
        )

    def test_smart_schedule_free_slot(self):
        response = self.client.post(
            f"{self.base_url}/smart-schedule/", self.slot("2035-01-08T14:00:00Z"), format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["available"])
        self.assertEqual(response.data["requested"]["end"], "2035-01-08T14:30:00Z")
        self.assertEqual(response.data["alternatives"], [])

    def test_smart_schedule_taken_slot(self):
        response = self.client.post(
            f"{self.base_url}/smart-schedule/", self.slot("2035-01-08T12:00:00Z"), format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["available"])
        self.assertEqual(len(response.data["conflicts"]), 1)
        self.assertEqual(len(response.data["alternatives"]), 5)

    def test_smart_schedule_rejects_past(self):
        response = self.client.post(
            f"{self.base_url}/smart-schedule/", self.slot("2020-01-06T10:00:00Z"), format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "validation_error")

    def test_clinic_default_hours(self):
        """Test that clinics without hours use the configured defaults"""
        clinic = Clinic.objects.create(name="No Hours Clinic")

        response = self.client.post(
            f"/api/clinics/{clinic.id}/alternative-slots/",
            self.slot("2035-01-08T08:00:00Z"),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "Appointments must be between 09:00 and 17:00.")


class ClinicCatalogueTests(APITestCase):
    def setUp(self):
        self.clinic = Clinic.objects.create(name="Test Clinic")

    def test_clinic_creation(self):
        response = self.client.post(
            "/api/clinics/",
            {
                "name": "New Clinic",
                "operating_hours_start": "08:00",
                "operating_hours_end": "18:00",
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post(
            "/api/clinics/",
            {
                "name": "Backwards Clinic",
                "operating_hours_start": "18:00",
                "operating_hours_end": "08:00",
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_seed_default_appointment_types(self):
        url = f"/api/clinics/{self.clinic.id}/appointment-types/"

        response = self.client.post(f"{url}defaults/")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data), 4)

        response = self.client.get(url)
        self.assertEqual(
            {t["name"]: t["duration_minutes"] for t in response.data},
            {
                "Regular Checkup": 30,
                "Vaccination": 15,
                "Surgery": 120,
                "Dental Cleaning": 60,
            },
        )

    def test_appointment_type_is_scoped_to_clinic(self):
        response = self.client.post(
            f"/api/clinics/{self.clinic.id}/appointment-types/",
            {"name": "Grooming", "duration_minutes": 45},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["clinic"], self.clinic.id)

        other_clinic = Clinic.objects.create(name="Other Clinic")
        response = self.client.get(
            f"/api/clinics/{other_clinic.id}/appointment-types/{response.data['id']}/"
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
