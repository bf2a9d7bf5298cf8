# companies/models.py
#
# Purpose:
# - Companies that offer services, and their recurring weekly operating windows.
#
# Design highlights:
# - Company.status: PENDING on signup, APPROVED/REJECTED by an admin.
#   Removing a company is a soft delete (status -> REJECTED) so old bookings
#   stay addressable.
# - OperatingWindow stores times as minute offsets (09:00 -> 540).
#   day_of_week is 0=Sunday..6=Saturday, or NULL for "every day".
#   Code should read the `day` property (SpecificDay / EVERY_DAY), not the raw column.
#
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q

from booking.services.time_utils import MINUTES_PER_DAY, day_selector, format_time


class CompanyStatus(models.TextChoices):
    PENDING = "PENDING", "Pending approval"
    APPROVED = "APPROVED", "Approved"
    REJECTED = "REJECTED", "Rejected"


class DayOfWeek(models.IntegerChoices):
    SUNDAY = 0, "Sunday"
    MONDAY = 1, "Monday"
    TUESDAY = 2, "Tuesday"
    WEDNESDAY = 3, "Wednesday"
    THURSDAY = 4, "Thursday"
    FRIDAY = 5, "Friday"
    SATURDAY = 6, "Saturday"


# -------------------------
# Company
# -------------------------
class Company(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="companies",
    )
    name = models.CharField(max_length=200)
    email = models.EmailField(unique=True)
    phone_number = models.CharField(max_length=20, blank=True)
    address = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    status = models.CharField(
        max_length=10,
        choices=CompanyStatus.choices,
        default=CompanyStatus.PENDING,
        db_index=True,
    )
    # Average of the reviews on this company's services; see reviews/services.py.
    rating = models.DecimalField(max_digits=3, decimal_places=2, default=0)
    total_reviews = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "companies"

    def __str__(self):
        return self.name

    @property
    def is_approved(self) -> bool:
        return self.status == CompanyStatus.APPROVED

    def is_managed_by(self, user) -> bool:
        """Owner or admin staff may manage the company's hours, services and bookings."""
        if user is None or not user.is_authenticated:
            return False
        return bool(user.is_staff or (self.owner_id is not None and self.owner_id == user.pk))


# -------------------------
# Operating window
# -------------------------
class OperatingWindow(models.Model):
    """
    Recurring weekly interval during which a company accepts bookings.
    Several windows on the same day (morning + afternoon) form a union.
    """
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="operating_windows",
    )
    day_of_week = models.PositiveSmallIntegerField(
        choices=DayOfWeek.choices,
        null=True,
        blank=True,
        help_text="Leave empty to apply the window to every day.",
    )
    start_minute = models.PositiveSmallIntegerField(
        validators=[MaxValueValidator(MINUTES_PER_DAY - 1)]
    )
    end_minute = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(MINUTES_PER_DAY - 1)]
    )
    # Stored for display; slots are stepped by the service duration.
    slot_granularity = models.PositiveSmallIntegerField(
        default=60, validators=[MinValueValidator(1)]
    )
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["company_id", "day_of_week", "start_minute"]
        constraints = [
            models.CheckConstraint(
                condition=Q(start_minute__lt=F("end_minute")),
                name="operating_window_start_before_end",
            ),
        ]

    def __str__(self):
        day = self.get_day_of_week_display() if self.day_of_week is not None else "Every day"
        return f"{self.company}: {day} {self.start_label}-{self.end_label}"

    def clean(self):
        if (
            self.start_minute is not None
            and self.end_minute is not None
            and self.start_minute >= self.end_minute
        ):
            raise ValidationError("Start time must be before end time.")

    @property
    def day(self):
        return day_selector(self.day_of_week)

    @property
    def start_label(self) -> str:
        return format_time(self.start_minute)

    @property
    def end_label(self) -> str:
        return format_time(self.end_minute)
