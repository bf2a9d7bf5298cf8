"""
errors.py
---------
Typed rejections raised by the booking services.

Every rejection carries:
- code: stable string the API returns so clients can render a specific message
- status_code: HTTP status the views respond with

They subclass ValueError so callers that only care about "bad request"
can keep catching ValueError.
"""


class BookingError(ValueError):
    code = "BOOKING_ERROR"
    status_code = 400
    default_message = "The booking request could not be processed."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


# -------- input shape --------
class InvalidTimeFormat(BookingError):
    code = "INVALID_TIME_FORMAT"
    default_message = "Time must use the HH:MM format (e.g. 09:00)."


class InvalidTimeRange(BookingError):
    code = "INVALID_TIME_RANGE"
    default_message = "Minutes must be between 0 and 1439."


# -------- domain state --------
class ServiceInactive(BookingError):
    code = "SERVICE_INACTIVE"
    default_message = "This service is not currently available."


class PastDateTime(BookingError):
    code = "PAST_DATE_TIME"
    default_message = "Cannot book a time that has already passed."


class OutsideOperatingHours(BookingError):
    code = "OUTSIDE_OPERATING_HOURS"
    default_message = "Selected time is outside the company's operating hours."


class SlotAlreadyBooked(BookingError):
    code = "SLOT_ALREADY_BOOKED"
    status_code = 409
    default_message = "This time slot is already booked."


# -------- authorization / lookup --------
class Forbidden(BookingError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "You do not have permission to act on this resource."


class NotFound(BookingError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found."


# -------- state machine --------
class InvalidTransition(BookingError):
    code = "INVALID_TRANSITION"
    default_message = "This status change is not allowed."


class AlreadyCancelled(BookingError):
    code = "ALREADY_CANCELLED"
    default_message = "This booking is already cancelled."


class CannotCancelCompleted(BookingError):
    code = "CANNOT_CANCEL_COMPLETED"
    default_message = "A completed booking cannot be cancelled."


# -------- company rules --------
class CompanyNotApproved(BookingError):
    code = "COMPANY_NOT_APPROVED"
    status_code = 403
    default_message = "Only approved companies can manage operating hours."


class CompanyHasActiveBookings(BookingError):
    code = "COMPANY_HAS_ACTIVE_BOOKINGS"
    default_message = "Cannot remove a company that still has upcoming bookings."


# -------- reviews --------
class InvalidRating(BookingError):
    code = "INVALID_RATING"
    default_message = "Rating must be a whole number from 1 to 5."


class BookingNotCompleted(BookingError):
    code = "BOOKING_NOT_COMPLETED"
    default_message = "Only completed bookings can be reviewed."


class AlreadyReviewed(BookingError):
    code = "ALREADY_REVIEWED"
    default_message = "This booking has already been reviewed."
