"""
conflict_guard.py
-----------------
Gatekeeper for new bookings. Checks, in order:

1) ServiceInactive        service.active is False
2) PastDateTime           (date, time_slot) is strictly before `now`
3) OutsideOperatingHours  time_slot is not inside [start, end) of any active
                          window for that weekday (or an every-day window)
4) SlotAlreadyBooked      a PENDING/CONFIRMED booking already holds the slot

Check 4 is only a fast path for a clear message. Two requests can both pass
it; the unique constraint on Booking decides, and BookingManager maps the
resulting DuplicateBookingError to SlotAlreadyBooked.
"""

from ..models import ACTIVE_STATUSES
from .availability_engine import matching_windows
from .errors import OutsideOperatingHours, PastDateTime, ServiceInactive, SlotAlreadyBooked
from .time_utils import parse_time, slot_datetime


class ConflictGuard:
    def __init__(self, repository):
        self.repository = repository

    def is_within_operating_hours(self, operating_windows, day, time_slot: str) -> bool:
        minute = parse_time(time_slot)
        return any(
            w.start_minute <= minute < w.end_minute
            for w in matching_windows(operating_windows, day)
        )

    def slot_is_taken(self, service, day, time_slot: str) -> bool:
        return bool(
            self.repository.find_bookings(
                service_id=service.id,
                date=day,
                time_slot=time_slot,
                statuses=ACTIVE_STATUSES,
            )
        )

    def validate_new_booking(self, service, day, time_slot: str, now) -> None:
        """Raise the first rule the request breaks; return None when it may be created."""
        if not service.active:
            raise ServiceInactive()

        if slot_datetime(day, time_slot) < now:
            raise PastDateTime()

        windows = self.repository.find_operating_windows(service.company_id)
        if not self.is_within_operating_hours(windows, day, time_slot):
            raise OutsideOperatingHours()

        if self.slot_is_taken(service, day, time_slot):
            raise SlotAlreadyBooked()
