from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import SAFE_METHODS, IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from booking.models import Booking
from booking.serializers import BookingSerializer
from booking.services.errors import BookingError
from booking.views import (
    BookingPagination,
    IsCompanyManagerOrReadOnly,
    apply_booking_filters,
    apply_ordering,
    parse_decimal_param,
    rejection,
)

from .models import Company, CompanyStatus, OperatingWindow
from .serializers import CompanySerializer, CompanyStatusSerializer, OperatingWindowSerializer
from .services import add_operating_window, set_company_status, soft_delete_company


COMPANY_SORT_FIELDS = {"created_at": "created_at", "name": "name", "rating": "rating"}


class CompanyViewSet(viewsets.ModelViewSet):
    """
    - GET    /api/companies/                  approved companies, paginated (staff: all, ?status=)
                                              ?search=, ?min_rating=, ?sort_by=rating|name|created_at, ?order=
    - POST   /api/companies/                  register a company (starts PENDING)
    - DELETE /api/companies/{id}/             soft delete (REJECTED)
    - GET    /api/companies/pending/          admin: awaiting approval
    - PATCH  /api/companies/{id}/status/      admin: approve / reject
    - GET    /api/companies/{id}/bookings/    owner/staff: company bookings
    """
    serializer_class = CompanySerializer
    permission_classes = [IsCompanyManagerOrReadOnly]
    pagination_class = BookingPagination
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        user = self.request.user
        qs = Company.objects.all().order_by("name")
        if self.action == "list":
            qs = self.search(qs, self.request.query_params)
        if user.is_authenticated and user.is_staff:
            status_val = (self.request.query_params.get("status") or "").strip().upper()
            return qs.filter(status=status_val) if status_val else qs
        if self.action == "list":
            return qs.filter(status=CompanyStatus.APPROVED)
        if user.is_authenticated:
            return qs.filter(status=CompanyStatus.APPROVED) | qs.filter(owner=user)
        return qs.filter(status=CompanyStatus.APPROVED)

    @staticmethod
    def search(qs, params):
        text = (params.get("search") or "").strip()
        if text:
            qs = qs.filter(Q(name__icontains=text) | Q(description__icontains=text))
        if params.get("min_rating"):
            qs = qs.filter(rating__gte=parse_decimal_param(params["min_rating"], "min_rating"))
        return apply_ordering(qs, params, COMPANY_SORT_FIELDS, default="rating")

    def perform_create(self, serializer):
        serializer.save(owner=self.request.user, status=CompanyStatus.PENDING)

    def destroy(self, request, *args, **kwargs):
        company = self.get_object()
        try:
            soft_delete_company(company)
        except BookingError as e:
            return rejection(e)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"], permission_classes=[IsAdminUser])
    def pending(self, request):
        qs = Company.objects.filter(status=CompanyStatus.PENDING).order_by("created_at")
        return Response(CompanySerializer(qs, many=True).data)

    @action(detail=True, methods=["patch"], url_path="status", permission_classes=[IsAdminUser])
    def set_status(self, request, pk=None):
        company = self.get_object()
        payload = CompanyStatusSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        set_company_status(company, payload.validated_data["status"])
        return Response(CompanySerializer(company).data)

    @action(detail=True, methods=["get"], permission_classes=[IsAuthenticated])
    def bookings(self, request, pk=None):
        company = self.get_object()
        if not company.is_managed_by(request.user):
            raise PermissionDenied("You do not manage this company.")
        qs = (
            Booking.objects.filter(service__company=company)
            .select_related("service")
            .order_by("-date", "-time_slot")
        )
        qs = apply_booking_filters(qs, request.query_params)
        paginator = BookingPagination()
        page = paginator.paginate_queryset(qs, request, view=self)
        return paginator.get_paginated_response(BookingSerializer(page, many=True).data)


class OperatingWindowViewSet(viewsets.ModelViewSet):
    """
    Operating windows (times as "HH:MM"):
    - GET  /api/companies/windows/?company=ID[&include_inactive=1]
    - POST /api/companies/windows/   owner/staff, company must be APPROVED
    """
    serializer_class = OperatingWindowSerializer
    permission_classes = [IsCompanyManagerOrReadOnly]
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        qs = OperatingWindow.objects.select_related("company").order_by(
            "company_id", "day_of_week", "start_minute"
        )
        company_id = (self.request.query_params.get("company") or "").strip()
        if company_id.isdigit():
            qs = qs.filter(company_id=int(company_id))
        include_inactive = self.request.query_params.get("include_inactive") in ("1", "true", "True")
        if self.request.method in SAFE_METHODS and not include_inactive:
            qs = qs.filter(active=True)
        return qs

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        fields = dict(serializer.validated_data)
        company = fields.pop("company")
        if not company.is_managed_by(request.user):
            raise PermissionDenied("You can only manage hours of your own company.")
        try:
            window = add_operating_window(company, **fields)
        except BookingError as e:
            return rejection(e)
        return Response(self.get_serializer(window).data, status=status.HTTP_201_CREATED)
