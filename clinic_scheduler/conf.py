from django.conf import settings

DEFAULTS = {
    "DEFAULT_DAY_START": "09:00",
    "DEFAULT_DAY_END": "17:00",
    "MAX_ALTERNATIVES": 5,
    "SEARCH_STEPS": 3,
    "MIN_ALTERNATIVES_BEFORE_NEXT_DAY": 3,
    "REJECT_PAST_SLOTS": True,
}


def get_scheduler_config():
    """CLINIC_SCHEDULER settings merged over the defaults"""
    config = dict(DEFAULTS)
    config.update(getattr(settings, "CLINIC_SCHEDULER", {}))
    return config
