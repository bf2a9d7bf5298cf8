"""
booking_manager.py
------------------
Coordinates booking creation, cancellation and status changes.

- create: ConflictGuard pre-check, then insert; the database uniqueness rule
  is the final word on double booking (violation -> SlotAlreadyBooked).
- cancel: owner-only, never from CANCELLED or COMPLETED; reason is kept.
- update_status: company-side transitions through status_machine.

Status writes are compare-and-set on the status the booking had when we
read it. If someone else changed it in between, we re-read: cancel tries
once more when the new state is still cancellable, otherwise the error
that fits the new state is raised instead of overwriting it.
"""

import logging

from django.utils import timezone

from ..models import BookingStatus
from .conflict_guard import ConflictGuard
from .errors import (
    AlreadyCancelled,
    CannotCancelCompleted,
    Forbidden,
    InvalidTransition,
    NotFound,
    SlotAlreadyBooked,
)
from .repository import DuplicateBookingError
from .status_machine import apply_transition
from .time_utils import parse_time

logger = logging.getLogger(__name__)


class BookingManager:
    def __init__(self, repository, clock=timezone.now):
        self.repository = repository
        self.guard = ConflictGuard(repository)
        self.clock = clock

    # -------------------- queries --------------------
    @staticmethod
    def _changed_underneath(current):
        return InvalidTransition(
            f"Booking status changed to {current.status} before this update was applied."
        )

    def _get(self, booking_id):
        booking = self.repository.find_booking(booking_id)
        if booking is None:
            raise NotFound("Booking not found.")
        return booking

    def get_booking(self, booking_id, user_id):
        booking = self._get(booking_id)
        if booking.user_id != user_id:
            raise Forbidden("You do not have permission to view this booking.")
        return booking

    # -------------------- create --------------------
    def create(self, user_id, service_id, date, time_slot, notes=""):
        """
        Create a PENDING booking.

        Args:
            user_id: id of the booking user
            service_id: Service pk
            date: datetime.date
            time_slot: "HH:MM"
            notes: optional string

        Raises:
            InvalidTimeFormat, NotFound, ServiceInactive, PastDateTime,
            OutsideOperatingHours, SlotAlreadyBooked
        """
        # Reject malformed input before touching the store.
        parse_time(time_slot)

        service = self.repository.find_service(service_id)
        if service is None:
            raise NotFound("Service not found.")

        self.guard.validate_new_booking(service, date, time_slot, now=self.clock())

        try:
            booking = self.repository.insert_booking(
                user_id=user_id,
                service_id=service.id,
                date=date,
                time_slot=time_slot,
                status=BookingStatus.PENDING,
                total_price=service.price,
                notes=notes or "",
            )
        except DuplicateBookingError:
            logger.warning(
                "Concurrent booking rejected by uniqueness rule: service=%s date=%s slot=%s",
                service.id, date, time_slot,
            )
            raise SlotAlreadyBooked() from None

        logger.info(
            "Booking %s created: user=%s service=%s %s %s",
            booking.id, user_id, service.id, date, time_slot,
        )
        return booking

    # -------------------- cancel --------------------
    def _check_cancellable(self, booking):
        if booking.status == BookingStatus.CANCELLED:
            raise AlreadyCancelled()
        if booking.status == BookingStatus.COMPLETED:
            raise CannotCancelCompleted()
        apply_transition(booking.status, BookingStatus.CANCELLED)

    def cancel(self, booking_id, requesting_user_id, reason=None):
        booking = self._get(booking_id)
        if booking.user_id != requesting_user_id:
            raise Forbidden("You do not have permission to cancel this booking.")

        # A lost race is retried once against the re-read status, so a
        # concurrent PENDING -> CONFIRMED still ends up CANCELLED.
        for _ in range(2):
            self._check_cancellable(booking)
            updated = self.repository.update_booking(
                booking.id,
                expected_status=booking.status,
                status=BookingStatus.CANCELLED,
                cancellation_reason=reason or "",
                updated_at=self.clock(),
            )
            if updated is not None:
                logger.info("Booking %s cancelled by user %s", booking.id, requesting_user_id)
                return updated
            booking = self._get(booking_id)

        self._check_cancellable(booking)
        raise self._changed_underneath(booking)

    # -------------------- company status updates --------------------
    def update_status(self, booking_id, company_id, new_status):
        booking = self._get(booking_id)
        if booking.service.company_id != company_id:
            raise Forbidden("This booking does not belong to your company.")

        apply_transition(booking.status, new_status)
        updated = self.repository.update_booking(
            booking.id,
            expected_status=booking.status,
            status=new_status,
            updated_at=self.clock(),
        )
        if updated is None:
            raise self._changed_underneath(self._get(booking_id))

        logger.info(
            "Booking %s status %s -> %s by company %s",
            booking.id, booking.status, new_status, company_id,
        )
        return updated
