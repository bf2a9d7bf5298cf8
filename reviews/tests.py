from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from booking.models import Service
from booking.services.errors import (
    AlreadyReviewed,
    BookingNotCompleted,
    Forbidden,
    InvalidRating,
    NotFound,
)
from booking.tests.base import BookingDataMixin

from .models import Review
from .services import (
    create_review,
    delete_review,
    rating_stats,
    service_review_stats,
    update_review,
)


class ReviewServiceTests(BookingDataMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.done = self.make_booking("09:00", status="COMPLETED")

    def test_create_refreshes_service_and_company_ratings(self):
        create_review(self.customer.pk, self.done.pk, 5, "great cut")
        second = self.make_booking("10:00", status="COMPLETED", user=self.other)
        create_review(self.other.pk, second.pk, 4)

        self.service.refresh_from_db()
        self.company.refresh_from_db()
        self.assertEqual((self.service.rating, self.service.total_reviews), (Decimal("4.50"), 2))
        self.assertEqual((self.company.rating, self.company.total_reviews), (Decimal("4.50"), 2))

    def test_company_rating_spans_its_services(self):
        shave = Service.objects.create(
            company=self.company, name="Shave", duration_minutes=30, price=Decimal("20.00")
        )
        create_review(self.customer.pk, self.done.pk, 5)
        other = self.make_booking("11:00", status="COMPLETED", service=shave)
        create_review(self.customer.pk, other.pk, 2)

        self.service.refresh_from_db()
        self.company.refresh_from_db()
        self.assertEqual(self.service.rating, Decimal("5.00"))
        self.assertEqual((self.company.rating, self.company.total_reviews), (Decimal("3.50"), 2))

    def test_only_completed_bookings(self):
        for status in ["PENDING", "CONFIRMED", "CANCELLED"]:
            with self.subTest(status=status):
                booking = self.make_booking("13:00", status=status)
                with self.assertRaises(BookingNotCompleted):
                    create_review(self.customer.pk, booking.pk, 5)
                booking.delete()

    def test_one_review_per_booking(self):
        create_review(self.customer.pk, self.done.pk, 5)
        with self.assertRaises(AlreadyReviewed):
            create_review(self.customer.pk, self.done.pk, 3)
        self.assertEqual(Review.objects.count(), 1)

    def test_only_the_booking_user(self):
        with self.assertRaises(Forbidden):
            create_review(self.other.pk, self.done.pk, 5)

    def test_unknown_booking(self):
        with self.assertRaises(NotFound):
            create_review(self.customer.pk, 9999, 5)

    def test_rating_bounds(self):
        for rating in [0, 6, True, "5"]:
            with self.subTest(rating=rating):
                with self.assertRaises(InvalidRating):
                    create_review(self.customer.pk, self.done.pk, rating)
        self.assertFalse(Review.objects.exists())

    def test_update_and_delete_recompute(self):
        review = create_review(self.customer.pk, self.done.pk, 5)
        update_review(review.pk, self.customer.pk, rating=2)
        self.service.refresh_from_db()
        self.assertEqual(self.service.rating, Decimal("2.00"))

        delete_review(review.pk, self.customer.pk)
        self.service.refresh_from_db()
        self.company.refresh_from_db()
        self.assertEqual((self.service.rating, self.service.total_reviews), (Decimal("0.00"), 0))
        self.assertEqual(self.company.total_reviews, 0)

    def test_comment_only_update_keeps_rating(self):
        review = create_review(self.customer.pk, self.done.pk, 4, "ok")
        updated = update_review(review.pk, self.customer.pk, comment="better than ok")
        self.assertEqual((updated.rating, updated.comment), (4, "better than ok"))

    def test_only_the_author_changes_a_review(self):
        review = create_review(self.customer.pk, self.done.pk, 4)
        with self.assertRaises(Forbidden):
            update_review(review.pk, self.other.pk, rating=1)
        with self.assertRaises(Forbidden):
            delete_review(review.pk, self.other.pk)
        review.refresh_from_db()
        self.assertEqual(review.rating, 4)

    def test_stats_distribution(self):
        create_review(self.customer.pk, self.done.pk, 5)
        for slot, rating in [("10:00", 5), ("11:00", 3)]:
            booking = self.make_booking(slot, status="COMPLETED", user=self.other)
            create_review(self.other.pk, booking.pk, rating)

        stats = service_review_stats(self.service.pk)
        self.assertEqual(stats["total_reviews"], 3)
        self.assertEqual(stats["average_rating"], Decimal("4.33"))
        self.assertEqual(stats["rating_distribution"], {1: 0, 2: 0, 3: 1, 4: 0, 5: 2})

    def test_stats_without_reviews(self):
        self.assertEqual(
            rating_stats(Review.objects.none()),
            {
                "average_rating": Decimal("0.00"),
                "total_reviews": 0,
                "rating_distribution": {1: 0, 2: 0, 3: 0, 4: 0, 5: 0},
            },
        )
        with self.assertRaises(NotFound):
            service_review_stats(9999)


class ReviewApiTests(BookingDataMixin, TestCase):
    url = "/api/reviews/"

    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.done = self.make_booking("09:00", status="COMPLETED")

    def post(self, user=None, **overrides):
        self.client.force_authenticate(user=user or self.customer)
        body = {"booking": self.done.pk, "rating": 5, "comment": "spot on"}
        body.update(overrides)
        return self.client.post(self.url, body, format="json")

    def test_create_requires_login(self):
        resp = self.client.post(self.url, {"booking": self.done.pk, "rating": 5}, format="json")
        self.assertIn(resp.status_code, (401, 403))
        self.assertFalse(Review.objects.exists())

    def test_create(self):
        resp = self.post()
        self.assertEqual(resp.status_code, 201)
        data = resp.json()
        self.assertEqual(data["rating"], 5)
        self.assertEqual(data["service"], self.service.pk)
        self.assertEqual(data["company_name"], "Studio Uno")
        self.assertEqual(data["user_name"], "customer")

        resp = self.client.get(f"/api/services/{self.service.pk}/")
        self.assertEqual((resp.json()["rating"], resp.json()["total_reviews"]), ("5.00", 1))

    def test_rejections(self):
        pending = self.make_booking("10:00")
        self.assertEqual(self.post(booking=pending.pk).json()["code"], "BOOKING_NOT_COMPLETED")
        self.assertEqual(self.post(user=self.other).status_code, 403)
        self.assertEqual(self.post(booking=9999).status_code, 404)
        self.assertEqual(self.post(rating=6).status_code, 400)

        self.assertEqual(self.post().status_code, 201)
        resp = self.post()
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "ALREADY_REVIEWED")

    def test_public_list_with_filters(self):
        create_review(self.customer.pk, self.done.pk, 5)
        low = self.make_booking("10:00", status="COMPLETED", user=self.other)
        create_review(self.other.pk, low.pk, 2)

        resp = self.client.get(self.url, {"service": self.service.pk, "sort_by": "rating", "order": "asc"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([r["rating"] for r in resp.json()["results"]], [2, 5])

        resp = self.client.get(self.url, {"min_rating": 4})
        self.assertEqual([r["user_name"] for r in resp.json()["results"]], ["customer"])

        resp = self.client.get(self.url, {"user": self.other.pk})
        self.assertEqual(resp.json()["count"], 1)

        self.assertEqual(self.client.get(self.url, {"company": "abc"}).status_code, 400)

    def test_author_updates_and_deletes(self):
        review = create_review(self.customer.pk, self.done.pk, 5)
        detail = f"{self.url}{review.pk}/"

        self.client.force_authenticate(user=self.other)
        self.assertEqual(self.client.patch(detail, {"rating": 1}, format="json").status_code, 403)
        self.assertEqual(self.client.delete(detail).status_code, 403)

        self.client.force_authenticate(user=self.customer)
        resp = self.client.patch(detail, {"rating": 3}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["rating"], 3)
        self.assertEqual(self.client.delete(detail).status_code, 204)
        self.assertFalse(Review.objects.exists())

    def test_stats(self):
        create_review(self.customer.pk, self.done.pk, 5)
        second = self.make_booking("10:00", status="COMPLETED", user=self.other)
        create_review(self.other.pk, second.pk, 4)

        resp = self.client.get(f"{self.url}stats/", {"service": self.service.pk})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["average_rating"], "4.50")
        self.assertEqual(data["total_reviews"], 2)
        self.assertEqual(data["rating_distribution"]["5"], 1)

        resp = self.client.get(f"{self.url}stats/", {"company": self.company.pk})
        self.assertEqual(resp.json()["total_reviews"], 2)

    def test_stats_needs_a_target(self):
        self.assertEqual(self.client.get(f"{self.url}stats/").status_code, 400)
        self.assertEqual(self.client.get(f"{self.url}stats/", {"service": 9999}).status_code, 404)
