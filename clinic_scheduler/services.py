from functools import lru_cache

from django.utils import timezone

from .alternatives import AlternativeSlotFinder, OperatingHours
from .booking import BookingEngine
from .conf import get_scheduler_config
from .django_store import DjangoAppointmentStore


@lru_cache
def get_booking_engine() -> BookingEngine:
    """Process-wide engine, so every request shares the per-clinic locks."""
    config = get_scheduler_config()
    store = DjangoAppointmentStore()
    finder = AlternativeSlotFinder(
        store,
        max_results=config["MAX_ALTERNATIVES"],
        search_steps=config["SEARCH_STEPS"],
        min_candidates=config["MIN_ALTERNATIVES_BEFORE_NEXT_DAY"],
    )
    return BookingEngine(store, clock=timezone.now, finder=finder)


def operating_hours_for(clinic) -> OperatingHours:
    config = get_scheduler_config()
    return OperatingHours(
        clinic.operating_hours_start or config["DEFAULT_DAY_START"],
        clinic.operating_hours_end or config["DEFAULT_DAY_END"],
    )


def earliest_bookable_time():
    if get_scheduler_config()["REJECT_PAST_SLOTS"]:
        return timezone.now()
    return None
