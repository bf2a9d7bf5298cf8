from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase
from rest_framework.test import APIClient

from booking.services.errors import CompanyHasActiveBookings, CompanyNotApproved
from booking.tests.base import BookingDataMixin

from .models import Company, CompanyStatus, OperatingWindow
from .services import add_operating_window, soft_delete_company


class CompanyServiceTests(BookingDataMixin, TestCase):
    def test_pending_company_cannot_add_hours(self):
        pending = Company.objects.create(owner=self.other, name="New Co", email="new@example.com")
        with self.assertRaises(CompanyNotApproved):
            add_operating_window(pending, day_of_week=1, start_minute=540, end_minute=600)
        self.assertFalse(OperatingWindow.objects.filter(company=pending).exists())

    def test_add_window_validates_range(self):
        with self.assertRaises(ValidationError):
            add_operating_window(self.company, day_of_week=6, start_minute=600, end_minute=600)

    def test_every_day_window(self):
        window = add_operating_window(self.company, day_of_week=None, start_minute=1200, end_minute=1320)
        self.assertTrue(all(window.day.matches(d) for d in range(7)))
        self.assertEqual((window.start_label, window.end_label), ("20:00", "22:00"))

    def test_soft_delete_blocked_by_upcoming_booking(self):
        self.make_booking("10:00", status="CONFIRMED")
        with self.assertRaises(CompanyHasActiveBookings):
            soft_delete_company(self.company)
        self.company.refresh_from_db()
        self.assertEqual(self.company.status, CompanyStatus.APPROVED)

    def test_soft_delete_ignores_cancelled_bookings(self):
        self.make_booking("10:00", status="CANCELLED")
        soft_delete_company(self.company)
        self.company.refresh_from_db()
        self.assertEqual(self.company.status, CompanyStatus.REJECTED)


class CompanyApiTests(BookingDataMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()

    def test_register_company_starts_pending(self):
        self.client.force_authenticate(user=self.other)
        resp = self.client.post(
            "/api/companies/",
            {"name": "Barber Two", "email": "two@example.com", "status": "APPROVED"},
            format="json",
        )
        self.assertEqual(resp.status_code, 201)
        data = resp.json()
        self.assertEqual(data["status"], "PENDING")
        self.assertEqual(data["owner"], self.other.pk)

    def test_public_list_shows_only_approved(self):
        Company.objects.create(name="Waiting", email="waiting@example.com")
        resp = self.client.get("/api/companies/")
        self.assertEqual([c["name"] for c in resp.json()["results"]], ["Studio Uno"])


class CompanySearchApiTests(BookingDataMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()
        Company.objects.filter(pk=self.company.pk).update(rating=Decimal("4.20"), total_reviews=5)
        self.barn = Company.objects.create(
            owner=self.other, name="Beard Barn", email="barn@example.com",
            description="Hot towel shaves", status=CompanyStatus.APPROVED,
            rating=Decimal("4.90"), total_reviews=2,
        )
        self.nails = Company.objects.create(
            owner=self.other, name="Nail Bar", email="nails@example.com",
            status=CompanyStatus.APPROVED,
        )

    def names(self, **params):
        resp = self.client.get("/api/companies/", params)
        self.assertEqual(resp.status_code, 200)
        return [c["name"] for c in resp.json()["results"]]

    def test_best_rated_first_by_default(self):
        self.assertEqual(self.names(), ["Beard Barn", "Studio Uno", "Nail Bar"])

    def test_search_name_and_description(self):
        self.assertEqual(self.names(search="nail"), ["Nail Bar"])
        self.assertEqual(self.names(search="towel"), ["Beard Barn"])

    def test_min_rating(self):
        self.assertEqual(self.names(min_rating="4.5"), ["Beard Barn"])
        self.assertEqual(self.client.get("/api/companies/", {"min_rating": "high"}).status_code, 400)

    def test_sort_by_name(self):
        self.assertEqual(self.names(sort_by="name", order="asc"), ["Beard Barn", "Nail Bar", "Studio Uno"])

    def test_paging(self):
        resp = self.client.get("/api/companies/", {"limit": 2})
        data = resp.json()
        self.assertEqual(data["count"], 3)
        self.assertEqual(len(data["results"]), 2)
        self.assertIsNotNone(data["next"])

    def test_rating_is_read_only(self):
        self.client.force_authenticate(user=self.owner)
        resp = self.client.patch(
            f"/api/companies/{self.company.pk}/", {"rating": "5.00", "name": "Studio Due"}, format="json"
        )
        self.assertEqual(resp.status_code, 200)
        self.company.refresh_from_db()
        self.assertEqual(self.company.name, "Studio Due")
        self.assertEqual(self.company.rating, Decimal("4.20"))

    def test_pending_list_is_admin_only(self):
        Company.objects.create(name="Waiting", email="waiting@example.com")
        self.client.force_authenticate(user=self.owner)
        self.assertEqual(self.client.get("/api/companies/pending/").status_code, 403)
        self.client.force_authenticate(user=self.admin)
        resp = self.client.get("/api/companies/pending/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([c["name"] for c in resp.json()], ["Waiting"])

    def test_admin_approves_company(self):
        waiting = Company.objects.create(owner=self.other, name="Waiting", email="waiting@example.com")
        url = f"/api/companies/{waiting.pk}/status/"

        self.client.force_authenticate(user=self.other)
        self.assertEqual(self.client.patch(url, {"status": "APPROVED"}, format="json").status_code, 403)

        self.client.force_authenticate(user=self.admin)
        resp = self.client.patch(url, {"status": "APPROVED"}, format="json")
        self.assertEqual(resp.status_code, 200)
        waiting.refresh_from_db()
        self.assertTrue(waiting.is_approved)

    def test_delete_is_soft_and_blocked_by_bookings(self):
        self.client.force_authenticate(user=self.owner)
        booking = self.make_booking("10:00")
        resp = self.client.delete(f"/api/companies/{self.company.pk}/")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "COMPANY_HAS_ACTIVE_BOOKINGS")

        booking.status = "CANCELLED"
        booking.save()
        self.assertEqual(self.client.delete(f"/api/companies/{self.company.pk}/").status_code, 204)
        self.company.refresh_from_db()
        self.assertEqual(self.company.status, CompanyStatus.REJECTED)

    def test_company_bookings_for_owner_only(self):
        self.make_booking("09:00")
        self.make_booking("10:00", status="CONFIRMED")
        url = f"/api/companies/{self.company.pk}/bookings/"

        self.client.force_authenticate(user=self.owner)
        resp = self.client.get(url, {"status": "CONFIRMED"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["count"], 1)

        self.client.force_authenticate(user=self.other)
        self.assertEqual(self.client.get(url).status_code, 403)


class OperatingWindowApiTests(BookingDataMixin, TestCase):
    url = "/api/companies/windows/"

    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.client.force_authenticate(user=self.owner)

    def post(self, **overrides):
        body = {"company": self.company.pk, "day_of_week": 6, "start_time": "10:00", "end_time": "14:00"}
        body.update(overrides)
        return self.client.post(self.url, body, format="json")

    def test_owner_adds_window(self):
        resp = self.post()
        self.assertEqual(resp.status_code, 201)
        data = resp.json()
        self.assertEqual((data["start_time"], data["end_time"]), ("10:00", "14:00"))
        window = OperatingWindow.objects.get(pk=data["id"])
        self.assertEqual((window.start_minute, window.end_minute), (600, 840))

    def test_start_must_precede_end(self):
        self.assertEqual(self.post(start_time="14:00", end_time="10:00").status_code, 400)

    def test_bad_time_format(self):
        self.assertEqual(self.post(start_time="10h").status_code, 400)

    def test_unapproved_company(self):
        pending = Company.objects.create(owner=self.owner, name="Second", email="second@example.com")
        resp = self.post(company=pending.pk)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["code"], "COMPANY_NOT_APPROVED")

    def test_stranger_cannot_add_window(self):
        self.client.force_authenticate(user=self.other)
        self.assertEqual(self.post().status_code, 403)

    def test_list_by_company(self):
        self.client.force_authenticate(user=None)
        resp = self.client.get(self.url, {"company": self.company.pk})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(len(data), 10)
        self.assertEqual(data[0]["start_time"], "09:00")


class OperatingWindowChangeApiTests(BookingDataMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.client.force_authenticate(user=self.owner)
        self.window = OperatingWindow.objects.get(company=self.company, day_of_week=1, start_minute=540)
        self.url = f"/api/companies/windows/{self.window.pk}/"

    def test_owner_moves_window(self):
        resp = self.client.patch(self.url, {"start_time": "08:30"}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.window.refresh_from_db()
        self.assertEqual((self.window.start_minute, self.window.end_minute), (510, 720))

    def test_cannot_move_to_another_company(self):
        second = Company.objects.create(
            owner=self.owner, name="Second", email="second@example.com", status=CompanyStatus.APPROVED
        )
        resp = self.client.patch(self.url, {"company": second.pk}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.window.refresh_from_db()
        self.assertEqual(self.window.company_id, self.company.pk)

    def test_end_before_stored_start_is_rejected(self):
        resp = self.client.patch(self.url, {"end_time": "08:00"}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.window.refresh_from_db()
        self.assertEqual(self.window.end_minute, 720)

    def test_stranger_cannot_change_or_delete(self):
        self.client.force_authenticate(user=self.other)
        self.assertEqual(self.client.patch(self.url, {"end_time": "11:00"}, format="json").status_code, 403)
        self.assertEqual(self.client.delete(self.url).status_code, 403)
        self.assertTrue(OperatingWindow.objects.filter(pk=self.window.pk).exists())

    def test_owner_deletes_window(self):
        self.assertEqual(self.client.delete(self.url).status_code, 204)
        self.assertFalse(OperatingWindow.objects.filter(pk=self.window.pk).exists())
