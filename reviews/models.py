# reviews/models.py
#
# Purpose:
# - Customer reviews of completed bookings.
#
# Design highlights:
# - One review per booking (OneToOne), written by the booking's user.
# - rating is 1..5, checked by validators and by a database constraint.
# - Service.rating / Company.rating are cached averages, refreshed by
#   reviews/services.py whenever a review is created, edited or removed.
#
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

MIN_RATING = 1
MAX_RATING = 5


class Review(models.Model):
    booking = models.OneToOneField(
        "booking.Booking",
        on_delete=models.CASCADE,
        related_name="review",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reviews",
    )
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(MIN_RATING), MaxValueValidator(MAX_RATING)]
    )
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(rating__gte=MIN_RATING) & Q(rating__lte=MAX_RATING),
                name="review_rating_1_to_5",
            ),
        ]

    def __str__(self):
        return f"{self.user} rated booking {self.booking_id}: {self.rating}/5"
