"""
services.py
-----------
Company lifecycle and operating-hours rules.

- New companies start PENDING; admins move them to APPROVED or REJECTED.
- Only APPROVED companies may add operating windows.
- "Deleting" a company marks it REJECTED, and is refused while it still
  has PENDING/CONFIRMED bookings from today onwards.
"""

import logging

from django.utils import timezone

from booking.models import ACTIVE_STATUSES, Booking
from booking.services.errors import CompanyHasActiveBookings, CompanyNotApproved

from .models import CompanyStatus, OperatingWindow

logger = logging.getLogger(__name__)


def set_company_status(company, status):
    old = company.status
    company.status = status
    company.save(update_fields=["status", "updated_at"])
    logger.info("Company %s status %s -> %s", company.pk, old, status)
    return company


def has_upcoming_bookings(company) -> bool:
    today = timezone.localdate()
    return Booking.objects.filter(
        service__company=company,
        status__in=ACTIVE_STATUSES,
        date__gte=today,
    ).exists()


def soft_delete_company(company):
    if has_upcoming_bookings(company):
        raise CompanyHasActiveBookings()
    return set_company_status(company, CompanyStatus.REJECTED)


def add_operating_window(company, **fields):
    """
    Create a window for an approved company.

    fields: day_of_week (0-6 or None), start_minute, end_minute,
            slot_granularity (optional)
    """
    if not company.is_approved:
        raise CompanyNotApproved()
    window = OperatingWindow(company=company, **fields)
    window.full_clean()
    window.save()
    logger.info("Operating window %s added for company %s", window.pk, company.pk)
    return window
