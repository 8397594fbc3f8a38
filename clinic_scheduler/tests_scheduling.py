"""
Test coverage for core scheduling logic
"""

import threading
import time as time_module
from datetime import datetime, time, timedelta

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from .alternatives import AlternativeSlotFinder, OperatingHours
from .booking import AppointmentFilters, BookingEngine
from .django_store import DjangoAppointmentStore
from .exceptions import (
    AppointmentNotFound,
    BookingValidationError,
    OutOfHours,
    SlotUnavailable,
)
from .intervals import Interval, overlaps
from .models import Clinic, AppointmentType, Appointment
from .records import (
    CANCELLED,
    CHECKED_IN,
    COMPLETED,
    CONFIRMED,
    SCHEDULED,
    AppointmentRecord,
)
from .resources import Candidate, ResourceSet
from .stores import InMemoryAppointmentStore


def at(hour, minute=0, day=8):
    """Clinic-local time on January ``day``, 2035"""
    return timezone.make_aware(datetime(2035, 1, day, hour, minute))


def candidate(start, end, vet="V1", room=None, clinic_id="C1", **details):
    return Candidate.build(clinic_id, start, end, vet, room, **details)


class FixedClock:
    def __init__(self):
        self.now = at(7, 0)

    def __call__(self):
        return self.now


class IntervalTests(SimpleTestCase):
    def test_overlap_is_symmetric(self):
        a = Interval(at(9, 0), at(9, 30))
        b = Interval(at(9, 15), at(9, 45))
        c = Interval(at(10, 0), at(10, 30))

        self.assertTrue(overlaps(a, b))
        self.assertTrue(overlaps(b, a))
        self.assertFalse(overlaps(a, c))
        self.assertFalse(overlaps(c, a))

    def test_back_to_back_slots_do_not_overlap(self):
        """An appointment ending at 9:30 leaves 9:30 free"""
        first = Interval(at(9, 0), at(9, 30))
        second = first.shifted(first.duration)

        self.assertEqual(second, Interval(at(9, 30), at(10, 0)))
        self.assertFalse(first.overlaps(second))
        self.assertFalse(second.overlaps(first))

    def test_contained_and_identical_intervals_overlap(self):
        outer = Interval(at(10, 0), at(11, 0))

        self.assertTrue(outer.overlaps(Interval(at(10, 5), at(10, 25))))
        self.assertTrue(outer.overlaps(Interval(at(10, 0), at(11, 0))))

    def test_start_must_precede_end(self):
        with self.assertRaises(BookingValidationError):
            Interval(at(10, 0), at(10, 0))
        with self.assertRaises(BookingValidationError):
            Interval(at(10, 30), at(10, 0))

    def test_from_duration(self):
        interval = Interval.from_duration(at(10, 0), 45)

        self.assertEqual(interval.end, at(10, 45))
        self.assertEqual(interval.duration_minutes, 45)

        with self.assertRaises(BookingValidationError):
            Interval.from_duration(at(10, 0), 0)
        with self.assertRaises(BookingValidationError):
            Interval.from_duration(at(10, 0), -15)


class ResourceSetTests(SimpleTestCase):
    def test_vet_is_required(self):
        with self.assertRaises(BookingValidationError):
            ResourceSet("")
        with self.assertRaises(BookingValidationError):
            ResourceSet(None)

    def test_blank_room_means_no_room(self):
        self.assertIsNone(ResourceSet("V1", "  ").room)

    def test_contention_is_vet_or_room(self):
        resources = ResourceSet("V1", "R1")

        self.assertTrue(resources.contends_with("V1", "R2"))
        self.assertTrue(resources.contends_with("V2", "R1"))
        self.assertFalse(resources.contends_with("V2", "R2"))
        self.assertFalse(resources.contends_with("V2", None))

    def test_missing_room_never_matches_on_room(self):
        self.assertFalse(ResourceSet("V2").contends_with("V1", "R1"))

    def test_candidate_requires_clinic(self):
        with self.assertRaises(BookingValidationError):
            candidate(at(9, 0), at(9, 30), clinic_id="")
        with self.assertRaises(BookingValidationError):
            candidate(at(9, 0), at(9, 30), clinic_id=None)


class EngineTestMixin:
    def setUp(self):
        self.store = InMemoryAppointmentStore()
        self.clock = FixedClock()
        self.engine = BookingEngine(self.store, clock=self.clock)

    def book(self, start, end, vet="V1", room=None, clinic_id="C1", **details):
        return self.engine.create(candidate(start, end, vet, room, clinic_id, **details))


class ConflictDetectorTests(EngineTestMixin, SimpleTestCase):
    def test_room_contention_alone_is_a_conflict(self):
        """A different vet still cannot use a room that is taken"""
        existing = self.book(at(9, 0), at(9, 30), vet="V1", room="R1")

        report = self.engine.check_conflicts(candidate(at(9, 0), at(9, 30), vet="V2", room="R1"))

        self.assertTrue(report.has_conflicts)
        self.assertEqual([a.id for a in report.conflicts], [existing.id])

    def test_disjoint_resources_never_conflict(self):
        self.book(at(9, 0), at(10, 0), vet="V1", room="R1")

        self.assertFalse(
            self.engine.check_conflicts(candidate(at(9, 0), at(10, 0), vet="V2")).has_conflicts
        )
        self.assertFalse(
            self.engine.check_conflicts(
                candidate(at(9, 0), at(10, 0), vet="V2", room="R2")
            ).has_conflicts
        )

    def test_same_vet_overlapping_time_conflicts(self):
        self.book(at(10, 0), at(10, 30))

        for start, end in [
            (at(10, 0), at(10, 30)),
            (at(10, 15), at(10, 45)),
            (at(9, 45), at(10, 5)),
            (at(10, 5), at(10, 25)),
            (at(9, 0), at(11, 0)),
        ]:
            with self.subTest(start=start, end=end):
                self.assertTrue(self.engine.check_conflicts(candidate(start, end)).has_conflicts)

    def test_cancelled_appointments_are_ignored(self):
        appointment = self.book(at(10, 0), at(10, 30))
        self.engine.update_status("C1", appointment.id, CANCELLED)

        self.assertFalse(
            self.engine.check_conflicts(candidate(at(10, 0), at(10, 30))).has_conflicts
        )

    def test_completed_appointments_still_hold_their_slot(self):
        appointment = self.book(at(10, 0), at(10, 30))
        self.engine.update_status("C1", appointment.id, COMPLETED)

        self.assertTrue(
            self.engine.check_conflicts(candidate(at(10, 0), at(10, 30))).has_conflicts
        )

    def test_excluded_appointment_is_ignored(self):
        appointment = self.book(at(10, 0), at(10, 30))

        report = self.engine.check_conflicts(
            candidate(at(10, 15), at(10, 45)), exclude_appointment_id=appointment.id
        )

        self.assertFalse(report.has_conflicts)

    def test_clinics_are_isolated(self):
        self.book(at(10, 0), at(10, 30), clinic_id="C1")

        report = self.engine.check_conflicts(candidate(at(10, 0), at(10, 30), clinic_id="C2"))

        self.assertFalse(report.has_conflicts)


class BookingEngineTests(EngineTestMixin, SimpleTestCase):
    def test_create_in_empty_clinic(self):
        appointment = self.book(at(9, 0), at(9, 30), patient_name="Rex")

        self.assertEqual(appointment.status, SCHEDULED)
        self.assertEqual(appointment.clinic_id, "C1")
        self.assertEqual(appointment.patient_name, "Rex")
        self.assertEqual(appointment.created_at, self.clock.now)
        self.assertEqual(self.engine.list_appointments("C1"), [appointment])

    def test_overlapping_create_is_refused(self):
        first = self.book(at(9, 0), at(9, 30))

        with self.assertRaises(SlotUnavailable) as ctx:
            self.book(at(9, 15), at(9, 45))

        self.assertEqual([a.id for a in ctx.exception.conflicts], [first.id])
        self.assertIn("overlap", ctx.exception.message)
        self.assertEqual(self.engine.list_appointments("C1"), [first])

    def test_back_to_back_create_succeeds(self):
        self.book(at(9, 0), at(9, 30))
        self.book(at(9, 30), at(10, 0))

        self.assertEqual(len(self.engine.list_appointments("C1")), 2)

    def test_cancellation_frees_the_slot(self):
        first = self.book(at(9, 0), at(9, 30))
        self.engine.update_status("C1", first.id, CANCELLED)

        second = self.book(at(9, 0), at(9, 30))

        self.assertNotEqual(first.id, second.id)
        self.assertEqual(second.status, SCHEDULED)

    def test_reschedule_ignores_own_record(self):
        appointment = self.book(at(9, 0), at(9, 30))

        moved = self.engine.reschedule("C1", appointment.id, at(9, 15), at(9, 45))

        self.assertEqual(moved.id, appointment.id)
        self.assertEqual(moved.interval, Interval(at(9, 15), at(9, 45)))
        self.assertEqual(self.store.get("C1", appointment.id), moved)

    def test_reschedule_conflict_leaves_store_unchanged(self):
        self.book(at(9, 0), at(9, 30), vet="V1")
        other = self.book(at(10, 0), at(10, 30), vet="V1")
        before = self.engine.list_appointments("C1")

        with self.assertRaises(SlotUnavailable):
            self.engine.reschedule("C1", other.id, at(9, 15), at(9, 45))

        self.assertEqual(self.engine.list_appointments("C1"), before)

    def test_reschedule_checks_room_of_existing_assignment(self):
        self.book(at(11, 0), at(11, 30), vet="V2", room="R1")
        appointment = self.book(at(9, 0), at(9, 30), vet="V1", room="R1")

        with self.assertRaises(SlotUnavailable):
            self.engine.reschedule("C1", appointment.id, at(11, 0), at(11, 30))

    def test_reschedule_unknown_appointment(self):
        with self.assertRaises(AppointmentNotFound):
            self.engine.reschedule("C1", "missing", at(9, 0), at(9, 30))

    def test_reschedule_in_other_clinic_is_not_found(self):
        appointment = self.book(at(9, 0), at(9, 30), clinic_id="C1")

        with self.assertRaises(AppointmentNotFound):
            self.engine.reschedule("C2", appointment.id, at(10, 0), at(10, 30))

    def test_reschedule_rejects_inverted_interval(self):
        appointment = self.book(at(9, 0), at(9, 30))

        with self.assertRaises(BookingValidationError):
            self.engine.reschedule("C1", appointment.id, at(10, 0), at(9, 0))

    def test_move_keeps_duration(self):
        appointment = self.book(at(9, 0), at(10, 0))

        moved = self.engine.move("C1", appointment.id, at(13, 0))

        self.assertEqual(moved.interval, Interval(at(13, 0), at(14, 0)))

    def test_status_updates_stamp_checkin_and_checkout(self):
        appointment = self.book(at(9, 0), at(9, 30))

        self.clock.now = at(8, 55)
        confirmed = self.engine.update_status("C1", appointment.id, CONFIRMED)
        self.assertIsNone(confirmed.checkin_time)

        checked_in = self.engine.update_status("C1", appointment.id, CHECKED_IN)
        self.assertEqual(checked_in.checkin_time, at(8, 55))

        self.clock.now = at(9, 35)
        completed = self.engine.update_status("C1", appointment.id, COMPLETED)
        self.assertEqual(completed.checkin_time, at(8, 55))
        self.assertEqual(completed.checkout_time, at(9, 35))

    def test_status_update_validation(self):
        appointment = self.book(at(9, 0), at(9, 30))

        with self.assertRaises(BookingValidationError):
            self.engine.update_status("C1", appointment.id, "archived")
        with self.assertRaises(AppointmentNotFound):
            self.engine.update_status("C1", "missing", CONFIRMED)
        with self.assertRaises(BookingValidationError):
            self.engine.update_status("", appointment.id, CONFIRMED)

    def test_reviving_cancelled_appointment_rechecks_slot(self):
        cancelled = self.book(at(9, 0), at(9, 30))
        self.engine.update_status("C1", cancelled.id, CANCELLED)
        self.book(at(9, 0), at(9, 30))

        with self.assertRaises(SlotUnavailable):
            self.engine.update_status("C1", cancelled.id, SCHEDULED)

        self.assertEqual(self.store.get("C1", cancelled.id).status, CANCELLED)

    def test_update_details(self):
        appointment = self.book(at(9, 0), at(9, 30))

        updated = self.engine.update(
            "C1", appointment.id, notes="Bring records", patient_name="Milo"
        )

        self.assertEqual(updated.notes, "Bring records")
        self.assertEqual(updated.patient_name, "Milo")
        self.assertEqual(updated.interval, appointment.interval)

    def test_update_resources_rechecks_conflicts(self):
        self.book(at(9, 0), at(9, 30), vet="V2", room="R2")
        appointment = self.book(at(9, 0), at(9, 30), vet="V1", room="R1")

        with self.assertRaises(SlotUnavailable):
            self.engine.update("C1", appointment.id, assigned_vet="V2")
        with self.assertRaises(SlotUnavailable):
            self.engine.update("C1", appointment.id, room_number="R2")

        updated = self.engine.update("C1", appointment.id, assigned_vet="V3", room_number="")
        self.assertEqual(updated.assigned_vet, "V3")
        self.assertIsNone(updated.room_number)

    def test_update_rejects_unknown_fields(self):
        appointment = self.book(at(9, 0), at(9, 30))

        with self.assertRaises(BookingValidationError):
            self.engine.update("C1", appointment.id, start_time=at(10, 0))

    def test_list_appointments_filters(self):
        a = self.book(at(9, 0), at(9, 30), vet="V1", patient_id="P1")
        b = self.book(at(11, 0), at(11, 30), vet="V2", patient_id="P2")
        c = self.book(at(9, 0, day=9), at(9, 30, day=9), vet="V3", patient_id="P1")
        self.engine.update_status("C1", b.id, CONFIRMED)

        def listed(**filters):
            return [x.id for x in self.engine.list_appointments("C1", AppointmentFilters(**filters))]

        self.assertEqual(listed(), [a.id, b.id, c.id])
        self.assertEqual(listed(vet_id="V2"), [b.id])
        self.assertEqual(listed(patient_id="P1"), [a.id, c.id])
        self.assertEqual(listed(status=CONFIRMED), [b.id])
        self.assertEqual(listed(start_date=at(10, 0), end_date=at(23, 0)), [b.id])
        self.assertEqual(listed(start_date=at(0, 0, day=9)), [c.id])

    def test_list_appointments_requires_clinic(self):
        with self.assertRaises(BookingValidationError):
            self.engine.list_appointments("")
        with self.assertRaises(BookingValidationError):
            AppointmentFilters(status="archived")


class InMemoryStoreTests(SimpleTestCase):
    def setUp(self):
        self.store = InMemoryAppointmentStore()
        self.record = AppointmentRecord(
            id="a1",
            clinic_id="C1",
            start_time=at(9, 0),
            end_time=at(9, 30),
            assigned_vet="V1",
        )

    def test_duplicate_insert_is_a_booking_error(self):
        self.store.insert(self.record)

        with self.assertRaises(BookingValidationError):
            self.store.insert(self.record.evolve(notes="second copy"))

        self.assertEqual(self.store.list_for_clinic("C1"), [self.record])

    def test_update_of_missing_record(self):
        with self.assertRaises(AppointmentNotFound):
            self.store.update(self.record)


class SlowStore(InMemoryAppointmentStore):
    """Widens the gap between conflict check and write"""

    def list_for_clinic(self, clinic_id):
        appointments = super().list_for_clinic(clinic_id)
        time_module.sleep(0.01)
        return appointments


class ConcurrentBookingTests(SimpleTestCase):
    def test_only_one_concurrent_booking_wins(self):
        store = SlowStore()
        engine = BookingEngine(store)
        results = []
        barrier = threading.Barrier(8)

        def attempt(room):
            barrier.wait()
            try:
                engine.create(candidate(at(9, 0), at(9, 30), vet="V1", room=room))
                results.append("booked")
            except SlotUnavailable:
                results.append("refused")

        threads = [threading.Thread(target=attempt, args=(f"R{i}",)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(results.count("booked"), 1)
        self.assertEqual(results.count("refused"), 7)
        self.assertEqual(len(store.list_for_clinic("C1")), 1)

    def test_other_clinics_are_not_blocked(self):
        store = SlowStore()
        engine = BookingEngine(store)

        threads = [
            threading.Thread(
                target=engine.create,
                args=(candidate(at(9, 0), at(9, 30), clinic_id=f"C{i}"),),
            )
            for i in range(4)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        for i in range(4):
            self.assertEqual(len(store.list_for_clinic(f"C{i}")), 1)


class AlternativeSlotFinderTests(EngineTestMixin, SimpleTestCase):
    def setUp(self):
        super().setUp()
        self.hours = OperatingHours(time(8, 0), time(18, 0))

    def find(self, start, duration=30, vet="V1", hours=None):
        return self.engine.find_alternative_slots(
            "C1", start, vet, duration, hours or self.hours
        )

    def starts(self, slots):
        return [slot.start for slot in slots]

    def test_earlier_slots_come_before_later_slots(self):
        self.book(at(12, 0), at(12, 30))

        slots = self.find(at(12, 0))

        self.assertEqual(
            self.starts(slots),
            [at(11, 30), at(11, 0), at(10, 30), at(12, 30), at(13, 0)],
        )
        self.assertTrue(all(slot.duration_minutes == 30 for slot in slots))

    def test_conflicting_alternatives_are_skipped(self):
        self.book(at(12, 0), at(12, 30))
        self.book(at(11, 30), at(12, 0))
        self.book(at(12, 30), at(13, 0), vet="V2", room="R9")

        slots = self.find(at(12, 0))

        self.assertEqual(
            self.starts(slots),
            [at(11, 0), at(10, 30), at(12, 30), at(13, 0), at(13, 30)],
        )

    def test_later_slots_stop_at_closing_time(self):
        self.book(at(17, 30), at(18, 0))

        slots = self.find(at(17, 30))

        self.assertEqual(self.starts(slots), [at(17, 0), at(16, 30), at(16, 0)])

    def test_earlier_slots_stop_at_opening_time(self):
        self.book(at(8, 30), at(9, 0))

        slots = self.find(at(8, 30))

        self.assertEqual(self.starts(slots), [at(8, 0), at(9, 0), at(9, 30), at(10, 0)])

    def test_next_day_fallback_when_window_is_short(self):
        hours = OperatingHours("09:00", "10:00")
        self.book(at(9, 0), at(9, 30))

        slots = self.find(at(9, 0), hours=hours)

        self.assertEqual(self.starts(slots), [at(9, 30), at(9, 0, day=9)])

    def test_no_alternatives_is_an_empty_result(self):
        hours = OperatingHours("09:00", "10:00")
        self.book(at(9, 0), at(10, 0))
        self.book(at(9, 0, day=9), at(9, 30, day=9))

        self.assertEqual(self.find(at(9, 0), hours=hours), [])

    def test_candidate_past_closing_is_out_of_hours(self):
        self.book(at(17, 45), at(18, 0))

        with self.assertRaises(OutOfHours):
            self.find(at(17, 45))
        with self.assertRaises(OutOfHours):
            self.find(at(18, 0))
        with self.assertRaises(OutOfHours):
            self.find(at(7, 30))

    def test_search_is_deterministic(self):
        self.book(at(12, 0), at(12, 30))
        self.book(at(13, 0), at(13, 30))

        self.assertEqual(self.find(at(12, 0)), self.find(at(12, 0)))

    def test_search_uses_requested_duration(self):
        self.book(at(12, 0), at(13, 0))

        slots = self.find(at(12, 0), duration=60)

        self.assertEqual(
            self.starts(slots),
            [at(11, 0), at(10, 0), at(9, 0), at(13, 0), at(14, 0)],
        )

    def test_invalid_duration(self):
        with self.assertRaises(BookingValidationError):
            self.find(at(12, 0), duration=0)

    def test_operating_hours_validation(self):
        with self.assertRaises(BookingValidationError):
            OperatingHours("18:00", "08:00")
        with self.assertRaises(BookingValidationError):
            OperatingHours("nine", "17:00")

    def test_alternatives_keep_sub_minute_length(self):
        """A candidate ending 30 seconds past closing is not rounded back inside"""
        late = candidate(at(17, 30), at(18, 0) + timedelta(seconds=30))

        with self.assertRaises(OutOfHours):
            self.engine.alternatives_for(late, self.hours)

        self.book(at(12, 0), at(12, 30))
        requested = candidate(at(12, 0), at(12, 30) + timedelta(seconds=30))

        slots = self.engine.alternatives_for(requested, self.hours)

        self.assertEqual(slots[0], Interval(at(11, 29) + timedelta(seconds=30), at(12, 0)))
        self.assertTrue(all(slot.duration == requested.interval.duration for slot in slots))

    def test_finder_limits_are_configurable(self):
        finder = AlternativeSlotFinder(self.store, max_results=2, search_steps=1)
        engine = BookingEngine(self.store, finder=finder)
        self.book(at(12, 0), at(12, 30))

        slots = engine.find_alternative_slots("C1", at(12, 0), "V1", 30, self.hours)

        self.assertEqual(self.starts(slots), [at(11, 30), at(12, 30)])

    def test_suggest_reports_free_slot(self):
        suggestion = self.engine.suggest(candidate(at(12, 0), at(12, 30)), self.hours)

        self.assertTrue(suggestion.available)
        self.assertEqual(suggestion.alternatives, [])

    def test_suggest_offers_alternatives_for_taken_slot(self):
        existing = self.book(at(12, 0), at(12, 30))

        suggestion = self.engine.suggest(candidate(at(12, 0), at(12, 30)), self.hours)

        self.assertFalse(suggestion.available)
        self.assertEqual([a.id for a in suggestion.conflicts], [existing.id])
        self.assertEqual(len(suggestion.alternatives), 5)

    def test_suggest_rejects_past_and_skips_past_alternatives(self):
        self.book(at(12, 0), at(12, 30))

        with self.assertRaises(BookingValidationError):
            self.engine.suggest(
                candidate(at(12, 0), at(12, 30)), self.hours, not_before=at(12, 5)
            )

        suggestion = self.engine.suggest(
            candidate(at(12, 0), at(12, 30)), self.hours, not_before=at(11, 15)
        )
        self.assertEqual(
            self.starts(suggestion.alternatives),
            [at(11, 30), at(12, 30), at(13, 0), at(13, 30)],
        )


class DjangoStoreSchedulingTests(TestCase):
    """Scheduling against the database-backed store"""

    def setUp(self):
        self.clinic = Clinic.objects.create(
            name="Main Clinic",
            address="123 Main St",
            phone="555-1234",
            email="clinic@example.com",
            operating_hours_start=time(9, 0),
            operating_hours_end=time(17, 0),
        )
        self.consultation = AppointmentType.objects.create(
            name="Consultation", duration_minutes=30, clinic=self.clinic
        )
        self.procedure = AppointmentType.objects.create(
            name="Procedure", duration_minutes=60, clinic=self.clinic
        )
        self.store = DjangoAppointmentStore()
        self.engine = BookingEngine(self.store, clock=timezone.now)

    def book(self, start, end, vet="Dr. Smith", room=None, **details):
        return self.engine.create(
            Candidate.build(self.clinic.pk, start, end, vet, room, **details)
        )

    def test_create_persists_appointment(self):
        appointment = self.book(
            at(10, 0), at(10, 30), room="2", appointment_type_id=self.consultation.pk
        )

        stored = Appointment.objects.get(pk=appointment.id)
        self.assertEqual(stored.clinic, self.clinic)
        self.assertEqual(stored.status, "scheduled")
        self.assertEqual(stored.room_number, "2")
        self.assertEqual(stored.appointment_type, self.consultation)
        self.assertEqual(stored.end_time, at(10, 30))

    def test_overlap_is_refused_without_writing(self):
        self.book(at(10, 0), at(10, 30))

        with self.assertRaises(SlotUnavailable):
            self.book(at(10, 15), at(10, 45))

        self.assertEqual(Appointment.objects.count(), 1)

    def test_cancel_then_rebook(self):
        first = self.book(at(10, 0), at(10, 30))
        self.engine.update_status(self.clinic.pk, first.id, CANCELLED)

        self.book(at(10, 0), at(10, 30))

        self.assertEqual(Appointment.objects.filter(status="scheduled").count(), 1)
        self.assertEqual(Appointment.objects.filter(status="cancelled").count(), 1)

    def test_reschedule_updates_row_in_place(self):
        appointment = self.book(at(10, 0), at(10, 30))

        self.engine.reschedule(self.clinic.pk, appointment.id, at(10, 15), at(10, 45))

        stored = Appointment.objects.get(pk=appointment.id)
        self.assertEqual(stored.start_time, at(10, 15))
        self.assertEqual(stored.end_time, at(10, 45))

    def test_unknown_or_malformed_ids_are_not_found(self):
        with self.assertRaises(AppointmentNotFound):
            self.engine.get(self.clinic.pk, "not-a-uuid")
        with self.assertRaises(AppointmentNotFound):
            self.engine.get(self.clinic.pk, "7c9e6679-7425-40de-944b-e07fc1f90ae7")

    def test_appointment_duration_calculation(self):
        """Test that appointment end time is calculated from the appointment type"""
        appointment = Appointment.objects.create(
            clinic=self.clinic,
            appointment_type=self.procedure,
            start_time=at(10, 0),
            assigned_vet="Dr. Smith",
        )

        self.assertEqual(appointment.end_time, at(11, 0))

    def test_model_validation_detects_overlap(self):
        """Saving outside the engine still cannot double-book a vet"""
        Appointment.objects.create(
            clinic=self.clinic,
            appointment_type=self.consultation,
            start_time=at(10, 0),
            assigned_vet="Dr. Smith",
        )

        overlapping = Appointment(
            clinic=self.clinic,
            appointment_type=self.consultation,
            start_time=at(10, 15),
            assigned_vet="Dr. Smith",
        )
        with self.assertRaises(ValidationError):
            overlapping.full_clean()

        other_vet = Appointment(
            clinic=self.clinic,
            appointment_type=self.consultation,
            start_time=at(10, 15),
            assigned_vet="Dr. Jones",
        )
        other_vet.full_clean()

    def test_model_validation_rejects_inverted_times(self):
        appointment = Appointment(
            clinic=self.clinic,
            start_time=at(10, 0),
            end_time=at(9, 0),
            assigned_vet="Dr. Smith",
        )

        with self.assertRaises(ValidationError):
            appointment.full_clean()

    def test_seed_appointment_types(self):
        created = self.clinic.seed_appointment_types()
        again = self.clinic.seed_appointment_types()

        self.assertEqual([t.pk for t in created], [t.pk for t in again])
        self.assertEqual(
            {t.name: t.duration_minutes for t in created},
            {
                "Regular Checkup": 30,
                "Vaccination": 15,
                "Surgery": 120,
                "Dental Cleaning": 60,
            },
        )
