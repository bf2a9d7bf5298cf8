# reports/tests.py

from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from booking.models import Service
from booking.tests.base import BookingDataMixin


class CompanyStatsTests(BookingDataMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.url = f"/api/reports/companies/{self.company.pk}/stats"
        Service.objects.create(
            company=self.company, name="Retired", duration_minutes=30,
            price=Decimal("10.00"), active=False,
        )
        self.make_booking("09:00", status="PENDING")
        self.make_booking("10:00", status="COMPLETED")
        self.make_booking("11:00", status="COMPLETED")
        self.make_booking("13:00", status="CANCELLED")

    def test_owner_sees_stats(self):
        self.client.force_authenticate(user=self.owner)
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["total_services"], 2)
        self.assertEqual(data["active_services"], 1)
        self.assertEqual(data["total_bookings"], 4)
        self.assertEqual(
            data["bookings_by_status"],
            {"PENDING": 1, "CONFIRMED": 0, "CANCELLED": 1, "COMPLETED": 2},
        )
        self.assertEqual(Decimal(data["revenue"]), Decimal("100.00"))
        self.assertEqual(len(data["recent_bookings"]), 4)
        self.assertEqual(data["recent_bookings"][0]["time_slot"], "13:00")

    def test_staff_sees_stats(self):
        self.client.force_authenticate(user=self.admin)
        self.assertEqual(self.client.get(self.url).status_code, 200)

    def test_stranger_is_forbidden(self):
        self.client.force_authenticate(user=self.other)
        self.assertEqual(self.client.get(self.url).status_code, 403)

    def test_unknown_company(self):
        self.client.force_authenticate(user=self.admin)
        self.assertEqual(self.client.get("/api/reports/companies/9999/stats").status_code, 404)
