"""
availability_engine.py
----------------------
Computes the bookable slots of a service on a given date from:
1) the company's recurring operating windows, and
2) existing bookings (a PENDING/CONFIRMED booking takes its slot).

Slot model:
- Each matching window is walked from its start in steps of the service
  duration; a slot is emitted while start + duration <= window end.
- Overlapping windows may produce the same start; it is reported once.
- CANCELLED and COMPLETED bookings never block a slot.
- A day with no matching window is simply closed: empty list, no error.

Past dates can be queried; only booking creation rejects past times.
"""

import logging
from dataclasses import dataclass

from ..models import ACTIVE_STATUSES
from .errors import NotFound
from .time_utils import format_time, weekday_index

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot:
    time: str
    is_available: bool

    def as_dict(self) -> dict:
        return {"time": self.time, "is_available": self.is_available}


def matching_windows(operating_windows, day):
    """Active windows that apply to `day` (its weekday, or every day)."""
    weekday = weekday_index(day)
    return [w for w in operating_windows if w.active and w.day.matches(weekday)]


def slot_starts(window, duration_minutes: int):
    # A non-positive step would never reach the window end.
    if duration_minutes < 1:
        return
    current = window.start_minute
    while current + duration_minutes <= window.end_minute:
        yield current
        current += duration_minutes


def compute_availability(service, day, operating_windows, existing_bookings):
    """
    Return the ordered list of Slot for `service` on `day`.

    existing_bookings may contain anything; only active bookings of this
    service on this date are considered taken.
    """
    windows = matching_windows(operating_windows, day)
    if not windows:
        return []

    starts = set()
    for window in windows:
        starts.update(slot_starts(window, service.duration_minutes))

    taken = {
        b.time_slot
        for b in existing_bookings
        if b.service_id == service.id and b.date == day and b.status in ACTIVE_STATUSES
    }

    return [
        Slot(time=label, is_available=label not in taken)
        for label in (format_time(m) for m in sorted(starts))
    ]


class AvailabilityEngine:
    def __init__(self, repository):
        self.repository = repository

    def check_availability(self, service_id, day) -> dict:
        """
        Read-only availability for a service on a date:
            {"date": "YYYY-MM-DD", "slots": [{"time": "09:00", "is_available": True}, ...]}
        """
        service = self.repository.find_service(service_id)
        if service is None:
            raise NotFound("Service not found.")

        windows = self.repository.find_operating_windows(service.company_id)
        bookings = self.repository.find_bookings(
            service_id=service.id, date=day, statuses=ACTIVE_STATUSES
        )
        slots = compute_availability(service, day, windows, bookings)
        logger.debug(
            "Availability for service %s on %s: %d slot(s), %d free",
            service.id, day, len(slots), sum(1 for s in slots if s.is_available),
        )
        return {"date": day.isoformat(), "slots": [s.as_dict() for s in slots]}
