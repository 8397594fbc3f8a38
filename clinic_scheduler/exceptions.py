class SchedulingError(Exception):
    """Base exception for scheduling failures."""

    default_message = "Scheduling request failed."
    default_code = "scheduling_error"

    def __init__(self, message=None, code=None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        super().__init__(self.message)


class BookingValidationError(SchedulingError):
    """Raised when a booking request is malformed."""

    default_message = "Invalid booking request."
    default_code = "validation_error"


class SlotUnavailable(SchedulingError):
    """Raised when the requested slot overlaps an existing appointment."""

    default_message = "This time slot overlaps with an existing appointment."
    default_code = "slot_unavailable"

    def __init__(self, conflicts=(), message=None):
        self.conflicts = list(conflicts)
        super().__init__(message)


class OutOfHours(SchedulingError):
    """Raised when the requested slot falls outside clinic operating hours."""

    default_message = "Appointments must be booked within clinic operating hours."
    default_code = "out_of_hours"


class AppointmentNotFound(SchedulingError):
    """Raised when an appointment id does not exist in the clinic."""

    default_message = "Appointment not found."
    default_code = "not_found"

    def __init__(self, appointment_id=None, message=None):
        self.appointment_id = appointment_id
        super().__init__(message)
