# booking/tests/test_api.py

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from booking.models import Booking, Service
from companies.models import Company, CompanyStatus

from .base import BookingDataMixin


class AvailabilityApiTests(BookingDataMixin, TestCase):
    url = "/api/bookings/availability/"

    def setUp(self):
        super().setUp()
        self.client = APIClient()

    def test_public_availability(self):
        self.make_booking("10:00", status="CONFIRMED")
        self.make_booking("11:00", status="CANCELLED")
        resp = self.client.get(self.url, {"service": self.service.pk, "date": self.monday.isoformat()})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["date"], self.monday.isoformat())
        self.assertEqual(
            [s["time"] for s in data["slots"]],
            ["09:00", "10:00", "11:00", "13:00", "14:00", "15:00", "16:00", "17:00"],
        )
        taken = [s["time"] for s in data["slots"] if not s["is_available"]]
        self.assertEqual(taken, ["10:00"])

    def test_closed_day_returns_empty_list(self):
        sunday = self.monday - timedelta(days=1)
        resp = self.client.get(self.url, {"service": self.service.pk, "date": sunday.isoformat()})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["slots"], [])

    def test_missing_params(self):
        self.assertEqual(self.client.get(self.url, {"service": self.service.pk}).status_code, 400)
        self.assertEqual(self.client.get(self.url, {"date": "2030-01-07"}).status_code, 400)

    def test_bad_date(self):
        resp = self.client.get(self.url, {"service": self.service.pk, "date": "07/01/2030"})
        self.assertEqual(resp.status_code, 400)

    def test_unknown_service(self):
        resp = self.client.get(self.url, {"service": 9999, "date": "2030-01-07"})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["code"], "NOT_FOUND")


class CreateBookingApiTests(BookingDataMixin, TestCase):
    url = "/api/bookings/"

    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.client.force_authenticate(user=self.customer)

    def post(self, **overrides):
        body = {
            "service": self.service.pk,
            "date": self.monday.isoformat(),
            "time_slot": "10:00",
        }
        body.update(overrides)
        return self.client.post(self.url, body, format="json")

    def test_create(self):
        resp = self.post(notes="window seat")
        self.assertEqual(resp.status_code, 201)
        data = resp.json()
        self.assertEqual(data["status"], "PENDING")
        self.assertEqual(Decimal(data["total_price"]), Decimal("50.00"))
        self.assertEqual(data["service_name"], "Haircut")
        self.assertEqual(data["company"], self.company.pk)
        self.assertEqual(data["user"], self.customer.pk)
        self.assertEqual(data["notes"], "window seat")

    def test_requires_login(self):
        resp = APIClient().post(self.url, {"service": self.service.pk}, format="json")
        self.assertIn(resp.status_code, (401, 403))

    def test_missing_fields(self):
        resp = self.client.post(self.url, {"service": self.service.pk}, format="json")
        self.assertEqual(resp.status_code, 400)

    def test_invalid_time_format(self):
        resp = self.post(time_slot="9:00")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "INVALID_TIME_FORMAT")

    def test_outside_hours(self):
        resp = self.post(time_slot="12:30")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "OUTSIDE_OPERATING_HOURS")

    def test_past_date(self):
        resp = self.post(date=(self.monday - timedelta(days=14)).isoformat())
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "PAST_DATE_TIME")

    def test_inactive_service(self):
        self.service.active = False
        self.service.save()
        resp = self.post()
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "SERVICE_INACTIVE")

    def test_unknown_service(self):
        resp = self.post(service=9999)
        self.assertEqual(resp.status_code, 404)

    def test_double_booking_conflict(self):
        self.assertEqual(self.post().status_code, 201)
        other = APIClient()
        other.force_authenticate(user=self.other)
        resp = other.post(
            self.url,
            {"service": self.service.pk, "date": self.monday.isoformat(), "time_slot": "10:00"},
            format="json",
        )
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["code"], "SLOT_ALREADY_BOOKED")
        self.assertEqual(Booking.objects.count(), 1)


class MyBookingsApiTests(BookingDataMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.client.force_authenticate(user=self.customer)
        self.first = self.make_booking("09:00")
        self.second = self.make_booking("10:00", status="CONFIRMED")
        self.make_booking("11:00", user=self.other)

    def test_lists_only_my_bookings(self):
        resp = self.client.get("/api/bookings/")
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["count"], 2)
        self.assertEqual([b["time_slot"] for b in data["results"]], ["10:00", "09:00"])

    def test_status_filter(self):
        resp = self.client.get("/api/bookings/", {"status": "confirmed"})
        self.assertEqual([b["id"] for b in resp.json()["results"]], [self.second.pk])

    def test_date_range_filter(self):
        later = self.make_booking("09:00", day=self.monday + timedelta(days=7))
        resp = self.client.get(
            "/api/bookings/",
            {"start_date": (self.monday + timedelta(days=1)).isoformat()},
        )
        self.assertEqual([b["id"] for b in resp.json()["results"]], [later.pk])

    def test_bad_filter_values(self):
        self.assertEqual(self.client.get("/api/bookings/", {"service": "abc"}).status_code, 400)
        self.assertEqual(self.client.get("/api/bookings/", {"end_date": "soon"}).status_code, 400)

    def test_page_size_limit(self):
        resp = self.client.get("/api/bookings/", {"limit": 1})
        data = resp.json()
        self.assertEqual(data["count"], 2)
        self.assertEqual(len(data["results"]), 1)
        self.assertIsNotNone(data["next"])

    def test_retrieve(self):
        resp = self.client.get(f"/api/bookings/{self.first.pk}/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["time_slot"], "09:00")

    def test_retrieve_someone_elses_booking(self):
        theirs = Booking.objects.get(user=self.other)
        resp = self.client.get(f"/api/bookings/{theirs.pk}/")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["code"], "FORBIDDEN")

    def test_retrieve_missing(self):
        self.assertEqual(self.client.get("/api/bookings/99999/").status_code, 404)


class CancelBookingApiTests(BookingDataMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.client.force_authenticate(user=self.customer)
        self.booking = self.make_booking("10:00", status="CONFIRMED")
        self.url = f"/api/bookings/{self.booking.pk}/cancel/"

    def test_cancel_with_reason(self):
        resp = self.client.patch(self.url, {"reason": "traveling"}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, "CANCELLED")
        self.assertEqual(self.booking.cancellation_reason, "traveling")

    def test_cancel_frees_the_slot(self):
        self.client.patch(self.url, {}, format="json")
        resp = self.client.get(
            "/api/bookings/availability/",
            {"service": self.service.pk, "date": self.monday.isoformat()},
        )
        slot = next(s for s in resp.json()["slots"] if s["time"] == "10:00")
        self.assertTrue(slot["is_available"])

    def test_cancel_twice(self):
        self.client.patch(self.url, {}, format="json")
        resp = self.client.patch(self.url, {}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "ALREADY_CANCELLED")

    def test_cannot_cancel_completed(self):
        Booking.objects.filter(pk=self.booking.pk).update(status="COMPLETED")
        resp = self.client.patch(self.url, {}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "CANNOT_CANCEL_COMPLETED")
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, "COMPLETED")

    def test_other_user_cannot_cancel(self):
        other = APIClient()
        other.force_authenticate(user=self.other)
        resp = other.patch(self.url, {}, format="json")
        self.assertEqual(resp.status_code, 403)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, "CONFIRMED")


class BookingStatusApiTests(BookingDataMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.client.force_authenticate(user=self.owner)
        self.booking = self.make_booking("10:00")
        self.url = f"/api/bookings/{self.booking.pk}/status/"

    def patch(self, new_status, company=None, client=None):
        return (client or self.client).patch(
            self.url,
            {"status": new_status, "company": company or self.company.pk},
            format="json",
        )

    def test_owner_confirms_and_completes(self):
        self.assertEqual(self.patch("CONFIRMED").json()["status"], "CONFIRMED")
        self.assertEqual(self.patch("COMPLETED").json()["status"], "COMPLETED")

    def test_invalid_transition(self):
        resp = self.patch("COMPLETED")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "INVALID_TRANSITION")

    def test_unknown_status_value(self):
        self.assertEqual(self.patch("ARCHIVED").status_code, 400)

    def test_non_manager_is_forbidden(self):
        other = APIClient()
        other.force_authenticate(user=self.other)
        resp = self.patch("CONFIRMED", client=other)
        self.assertEqual(resp.status_code, 403)

    def test_booking_of_another_company(self):
        mine = Company.objects.create(
            owner=self.other, name="Other Co", email="other@example.com",
            status=CompanyStatus.APPROVED,
        )
        other = APIClient()
        other.force_authenticate(user=self.other)
        resp = self.patch("CONFIRMED", company=mine.pk, client=other)
        self.assertEqual(resp.status_code, 403)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, "PENDING")

    def test_unknown_company(self):
        self.assertEqual(self.patch("CONFIRMED", company=9999).status_code, 404)


class ServiceApiTests(BookingDataMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()

    def test_public_list_hides_inactive_and_unapproved(self):
        Service.objects.create(
            company=self.company, name="Retired", duration_minutes=30,
            price=Decimal("10.00"), active=False,
        )
        resp = self.client.get("/api/services/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([s["name"] for s in resp.json()["results"]], ["Haircut"])

    def test_owner_creates_service(self):
        self.client.force_authenticate(user=self.owner)
        resp = self.client.post(
            "/api/services/",
            {"company": self.company.pk, "name": "Shave", "duration_minutes": 30, "price": "20.00"},
            format="json",
        )
        self.assertEqual(resp.status_code, 201)

    def test_stranger_cannot_create_service(self):
        self.client.force_authenticate(user=self.other)
        resp = self.client.post(
            "/api/services/",
            {"company": self.company.pk, "name": "Shave", "duration_minutes": 30, "price": "20.00"},
            format="json",
        )
        self.assertEqual(resp.status_code, 403)

    def test_rejects_non_positive_price(self):
        self.client.force_authenticate(user=self.owner)
        resp = self.client.post(
            "/api/services/",
            {"company": self.company.pk, "name": "Free", "duration_minutes": 30, "price": "0.00"},
            format="json",
        )
        self.assertEqual(resp.status_code, 400)

    def test_delete_deactivates(self):
        self.client.force_authenticate(user=self.owner)
        resp = self.client.delete(f"/api/services/{self.service.pk}/")
        self.assertEqual(resp.status_code, 204)
        self.service.refresh_from_db()
        self.assertFalse(self.service.active)


class ServiceCatalogApiTests(BookingDataMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.color = Service.objects.create(
            company=self.company, name="Colouring", description="Full head dye",
            duration_minutes=90, price=Decimal("120.00"),
        )
        self.barber = Company.objects.create(
            owner=self.other, name="Beard Barn", email="barn@example.com",
            description="Beards only", status=CompanyStatus.APPROVED,
        )
        self.trim = Service.objects.create(
            company=self.barber, name="Beard trim", duration_minutes=30, price=Decimal("15.00"),
        )

    def names(self, **params):
        resp = self.client.get("/api/services/", params)
        self.assertEqual(resp.status_code, 200)
        return [s["name"] for s in resp.json()["results"]]

    def test_default_order_is_newest_first(self):
        self.assertEqual(self.names(), ["Beard trim", "Colouring", "Haircut"])

    def test_search_matches_name_description_and_company(self):
        self.assertEqual(self.names(search="hair"), ["Haircut"])
        self.assertEqual(self.names(search="DYE"), ["Colouring"])
        self.assertEqual(self.names(search="studio uno"), ["Colouring", "Haircut"])
        self.assertEqual(self.names(search="nothing like this"), [])

    def test_price_range(self):
        self.assertEqual(self.names(min_price="20", max_price="100"), ["Haircut"])
        self.assertEqual(self.names(max_price="50.00"), ["Beard trim", "Haircut"])

    def test_bad_price_is_rejected(self):
        resp = self.client.get("/api/services/", {"min_price": "cheap"})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("min_price", resp.json())

    def test_sort_by_price_and_name(self):
        self.assertEqual(self.names(sort_by="price", order="asc"), ["Beard trim", "Haircut", "Colouring"])
        self.assertEqual(self.names(sort_by="price"), ["Colouring", "Haircut", "Beard trim"])
        self.assertEqual(self.names(sort_by="name", order="asc"), ["Beard trim", "Colouring", "Haircut"])

    def test_unknown_sort_field_is_rejected(self):
        self.assertEqual(self.client.get("/api/services/", {"sort_by": "owner"}).status_code, 400)
        self.assertEqual(self.client.get("/api/services/", {"order": "sideways"}).status_code, 400)

    def test_paging(self):
        resp = self.client.get("/api/services/", {"sort_by": "name", "order": "asc", "limit": 2, "page": 2})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["count"], 3)
        self.assertEqual([s["name"] for s in data["results"]], ["Haircut"])

    def test_search_skips_unapproved_companies(self):
        self.barber.status = CompanyStatus.PENDING
        self.barber.save()
        self.assertEqual(self.names(search="beard"), [])

    def test_popular_orders_by_rating_then_review_count(self):
        Service.objects.filter(pk=self.trim.pk).update(rating=Decimal("4.80"), total_reviews=3)
        Service.objects.filter(pk=self.color.pk).update(rating=Decimal("4.80"), total_reviews=9)
        Service.objects.filter(pk=self.service.pk).update(rating=Decimal("3.00"), total_reviews=20)

        resp = self.client.get("/api/services/popular/")
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual([s["name"] for s in data], ["Colouring", "Beard trim", "Haircut"])
        self.assertEqual(data[0]["rating"], "4.80")
        self.assertEqual(data[0]["total_reviews"], 9)

    def test_recent_honours_limit_and_hides_inactive(self):
        self.trim.active = False
        self.trim.save()
        resp = self.client.get("/api/services/recent/", {"limit": 1})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([s["name"] for s in resp.json()], ["Colouring"])

    def test_bad_limit(self):
        self.assertEqual(self.client.get("/api/services/recent/", {"limit": "0"}).status_code, 400)
