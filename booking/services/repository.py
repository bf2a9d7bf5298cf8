"""
repository.py
-------------
Persistence contract used by the booking services, plus the Django ORM
implementation.

BookingManager, ConflictGuard and AvailabilityEngine receive a repository
at construction time instead of querying models directly, so tests can
swap in an in-memory fake.

Contract:
- find_service(service_id)               -> Service | None
- find_operating_windows(company_id)     -> list of OperatingWindow
- find_bookings(service_id, date, time_slot=None, statuses=None) -> list of Booking
- find_booking(booking_id)               -> Booking | None (with .service loaded)
- insert_booking(**fields)               -> Booking; raises DuplicateBookingError
                                            when the slot uniqueness rule is hit
- update_booking(booking_id, expected_status, **patch)
                                         -> Booking, or None if the booking's
                                            status is no longer expected_status
"""

import logging

from django.db import IntegrityError, transaction

from companies.models import OperatingWindow

from ..models import Booking, Service

logger = logging.getLogger(__name__)

SLOT_CONSTRAINT_NAME = "uniq_active_booking_per_slot"


class DuplicateBookingError(Exception):
    """The store refused an insert because the slot is already held."""


class BookingRepository:
    def find_service(self, service_id):
        raise NotImplementedError

    def find_operating_windows(self, company_id):
        raise NotImplementedError

    def find_bookings(self, service_id, date, time_slot=None, statuses=None):
        raise NotImplementedError

    def find_booking(self, booking_id):
        raise NotImplementedError

    def insert_booking(self, **fields):
        raise NotImplementedError

    def update_booking(self, booking_id, expected_status, **patch):
        raise NotImplementedError


def _is_slot_violation(exc: IntegrityError) -> bool:
    """
    Tell the slot uniqueness violation apart from other integrity errors
    (e.g. a foreign key pointing nowhere).

    PostgreSQL names the constraint in the message; SQLite names the columns.
    """
    message = str(exc)
    if SLOT_CONSTRAINT_NAME in message:
        return True
    return "UNIQUE constraint failed" in message and "time_slot" in message


class DjangoBookingRepository(BookingRepository):
    def find_service(self, service_id):
        return Service.objects.select_related("company").filter(pk=service_id).first()

    def find_operating_windows(self, company_id):
        return list(
            OperatingWindow.objects.filter(company_id=company_id).order_by("start_minute")
        )

    def find_bookings(self, service_id, date, time_slot=None, statuses=None):
        qs = Booking.objects.filter(service_id=service_id, date=date)
        if time_slot is not None:
            qs = qs.filter(time_slot=time_slot)
        if statuses is not None:
            qs = qs.filter(status__in=list(statuses))
        return list(qs)

    def find_booking(self, booking_id):
        return Booking.objects.select_related("service").filter(pk=booking_id).first()

    def insert_booking(self, **fields):
        # atomic() gives us a savepoint when called inside an outer transaction,
        # so a failed insert does not poison the caller's transaction.
        try:
            with transaction.atomic():
                return Booking.objects.create(**fields)
        except IntegrityError as exc:
            if _is_slot_violation(exc):
                raise DuplicateBookingError(str(exc)) from exc
            raise

    def update_booking(self, booking_id, expected_status, **patch):
        # Compare-and-set on status: only one concurrent writer wins.
        updated = Booking.objects.filter(pk=booking_id, status=expected_status).update(**patch)
        if not updated:
            return None
        return self.find_booking(booking_id)
