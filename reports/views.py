# reports/views.py

from decimal import Decimal

from django.db.models import Count, Sum
from django.shortcuts import get_object_or_404
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from booking.models import Booking, BookingStatus, Service
from companies.models import Company

RECENT_BOOKINGS = 10


def company_stats(company) -> dict:
    """
    Counters for a company dashboard:
    - services: total / active
    - bookings: total and per status
    - revenue: sum of total_price over COMPLETED bookings
    - recent_bookings: the last 10 created
    """
    services = Service.objects.filter(company=company)
    bookings = Booking.objects.filter(service__company=company)

    per_status = {s: 0 for s in BookingStatus.values}
    for row in bookings.values("status").annotate(count=Count("id")):
        per_status[row["status"]] = row["count"]

    revenue = (
        bookings.filter(status=BookingStatus.COMPLETED)
        .aggregate(total=Sum("total_price"))["total"]
        or Decimal("0.00")
    )

    recent = (
        bookings.select_related("service", "user")
        .order_by("-created_at", "-id")[:RECENT_BOOKINGS]
    )

    return {
        "company_id": company.id,
        "total_services": services.count(),
        "active_services": services.filter(active=True).count(),
        "total_bookings": sum(per_status.values()),
        "bookings_by_status": per_status,
        "revenue": str(revenue),
        "recent_bookings": [
            {
                "id": b.id,
                "service_name": b.service.name,
                "user": b.user.get_username(),
                "date": b.date.isoformat(),
                "time_slot": b.time_slot,
                "status": b.status,
                "total_price": str(b.total_price),
            }
            for b in recent
        ],
    }


class CompanyStatsView(APIView):
    """
    GET /api/reports/companies/<id>/stats

    Only the company owner or staff.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, company_id):
        company = get_object_or_404(Company, pk=company_id)
        if not company.is_managed_by(request.user):
            raise PermissionDenied("You do not manage this company.")
        return Response(company_stats(company))
