"""
services.py
-----------
Review rules and rating aggregation.

- A user may review their own booking once, and only after it is COMPLETED.
- Only the author may edit or delete a review.
- Every change recomputes Service.rating / total_reviews and
  Company.rating / total_reviews from the remaining reviews.
"""

import logging
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count

from booking.models import Booking, BookingStatus, Service
from booking.services.errors import (
    AlreadyReviewed,
    BookingNotCompleted,
    Forbidden,
    InvalidRating,
    NotFound,
)
from companies.models import Company

from .models import MAX_RATING, MIN_RATING, Review

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def _check_rating(rating):
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidRating()


def rating_stats(reviews) -> dict:
    """
    {"average_rating": Decimal, "total_reviews": int,
     "rating_distribution": {1: n, ..., 5: n}} for a Review queryset.
    """
    totals = reviews.aggregate(average=Avg("rating"), total=Count("id"))
    distribution = {r: 0 for r in range(MIN_RATING, MAX_RATING + 1)}
    for row in reviews.order_by().values("rating").annotate(count=Count("id")):
        distribution[row["rating"]] = row["count"]

    average = totals["average"]
    return {
        "average_rating": Decimal(average).quantize(TWO_PLACES) if average is not None else Decimal("0.00"),
        "total_reviews": totals["total"],
        "rating_distribution": distribution,
    }


def service_reviews(service_id):
    return Review.objects.filter(booking__service_id=service_id)


def company_reviews(company_id):
    return Review.objects.filter(booking__service__company_id=company_id)


def service_review_stats(service_id) -> dict:
    if not Service.objects.filter(pk=service_id).exists():
        raise NotFound("Service not found.")
    return rating_stats(service_reviews(service_id))


def company_review_stats(company_id) -> dict:
    if not Company.objects.filter(pk=company_id).exists():
        raise NotFound("Company not found.")
    return rating_stats(company_reviews(company_id))


def refresh_ratings(service):
    """Recompute the cached averages of a service and of its company."""
    stats = rating_stats(service_reviews(service.pk))
    Service.objects.filter(pk=service.pk).update(
        rating=stats["average_rating"], total_reviews=stats["total_reviews"]
    )
    stats = rating_stats(company_reviews(service.company_id))
    Company.objects.filter(pk=service.company_id).update(
        rating=stats["average_rating"], total_reviews=stats["total_reviews"]
    )


def _get_review(review_id, user_id):
    review = (
        Review.objects.select_related("booking__service").filter(pk=review_id).first()
    )
    if review is None:
        raise NotFound("Review not found.")
    if review.user_id != user_id:
        raise Forbidden("Only the author can change this review.")
    return review


def create_review(user_id, booking_id, rating, comment=""):
    """
    Raises:
        InvalidRating, NotFound, Forbidden, BookingNotCompleted, AlreadyReviewed
    """
    _check_rating(rating)

    booking = Booking.objects.select_related("service").filter(pk=booking_id).first()
    if booking is None:
        raise NotFound("Booking not found.")
    if booking.user_id != user_id:
        raise Forbidden("You can only review your own bookings.")
    if booking.status != BookingStatus.COMPLETED:
        raise BookingNotCompleted()
    if Review.objects.filter(booking=booking).exists():
        raise AlreadyReviewed()

    try:
        with transaction.atomic():
            review = Review.objects.create(
                booking=booking, user_id=user_id, rating=rating, comment=comment or ""
            )
            refresh_ratings(booking.service)
    except IntegrityError:
        # Two submissions for the same booking; the OneToOne keeps one.
        raise AlreadyReviewed() from None

    logger.info("Review %s created for booking %s (rating %s)", review.pk, booking.pk, rating)
    return review


@transaction.atomic
def update_review(review_id, user_id, rating=None, comment=None):
    review = _get_review(review_id, user_id)
    fields = ["updated_at"]
    if rating is not None:
        _check_rating(rating)
        review.rating = rating
        fields.append("rating")
    if comment is not None:
        review.comment = comment
        fields.append("comment")
    review.save(update_fields=fields)

    if rating is not None:
        refresh_ratings(review.booking.service)
    return review


@transaction.atomic
def delete_review(review_id, user_id):
    review = _get_review(review_id, user_id)
    service = review.booking.service
    review.delete()
    refresh_ratings(service)
    logger.info("Review %s deleted by user %s", review_id, user_id)
