# booking/models.py
#
# Purpose:
# - Core domain models for the booking system.
#
# Design highlights:
# - Service: belongs to a Company; validates price and duration; "active"
#   flag controls visibility and bookability.
# - Booking:
#   • Records user, service, calendar date and an "HH:MM" time slot
#   • status is uppercase PENDING / CONFIRMED / CANCELLED / COMPLETED
#   • total_price is a snapshot of the service price at creation time
#   • cancellation keeps the row (and the reason) for auditing
#
# Notes for developers:
# - Double-booking prevention lives in the database: a conditional
#   UniqueConstraint allows only one PENDING/CONFIRMED booking per
#   (service, date, time_slot). The services layer pre-checks for a friendly
#   error, but the constraint is what makes concurrent requests safe.
#   SQLite and PostgreSQL both support partial unique indexes.
# - service/user use PROTECT so bookings never disappear with their parents.
#

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q


class BookingStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    CONFIRMED = "CONFIRMED", "Confirmed"
    CANCELLED = "CANCELLED", "Cancelled"
    COMPLETED = "COMPLETED", "Completed"


# Statuses that hold a slot.
ACTIVE_STATUSES = [BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value]


# -------------------------
# Service catalog item
# -------------------------
class Service(models.Model):
    """
    A service offered by a company.

    Rules:
    - price must be > 0
    - duration_minutes must be > 0 (it is also the slot length), also enforced by
      a database check constraint
    - active controls visibility and bookability
    - rating / total_reviews are recomputed whenever a review changes
    """
    company = models.ForeignKey(
        "companies.Company",
        on_delete=models.PROTECT,
        related_name="services",
    )
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    duration_minutes = models.PositiveIntegerField(
        validators=[MinValueValidator(1)]
    )
    price = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        validators=[MinValueValidator(0.01)],
    )
    active = models.BooleanField(default=True)
    # Denormalized from reviews; see reviews/services.py.
    rating = models.DecimalField(max_digits=3, decimal_places=2, default=0)
    total_reviews = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(duration_minutes__gte=1),
                name="service_duration_positive",
            ),
        ]

    def __str__(self):
        return f"{self.name} (${self.price})"


# -------------------------
# Booking record
# -------------------------
class Booking(models.Model):
    """
    Appointment booking.

    Lifecycle: PENDING -> CONFIRMED/CANCELLED, CONFIRMED -> CANCELLED/COMPLETED.
    See booking/services/status_machine.py.
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    service = models.ForeignKey(
        Service,
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    date = models.DateField(db_index=True)
    time_slot = models.CharField(max_length=5, help_text="Start time as HH:MM")
    status = models.CharField(
        max_length=10,
        choices=BookingStatus.choices,
        default=BookingStatus.PENDING,
        db_index=True,
        help_text="Booking lifecycle status",
    )
    total_price = models.DecimalField(max_digits=8, decimal_places=2)
    notes = models.TextField(blank=True)
    cancellation_reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date", "-time_slot"]
        constraints = [
            models.UniqueConstraint(
                fields=["service", "date", "time_slot"],
                condition=Q(status__in=ACTIVE_STATUSES),
                name="uniq_active_booking_per_slot",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "status"], name="booking_user_status_idx"),
            models.Index(fields=["service", "date"], name="booking_service_date_idx"),
        ]

    def __str__(self):
        return f"{self.user} → {self.service.name} on {self.date} {self.time_slot}"

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES
