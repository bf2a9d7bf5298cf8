# booking/views.py
#
# Purpose:
# - Service catalog API (public read, company-managed writes).
# - Booking API: create, list/retrieve own bookings, cancel, company status
#   updates, and the public availability endpoint.
#
# Notes:
# - All booking rules live in booking/services/*. Views only parse input,
#   check who is asking, and render BookingError rejections as
#   {"detail": ..., "code": ...} with the error's HTTP status.
# - Services are never hard-deleted: DELETE deactivates, so existing
#   bookings keep pointing at a real row.
#
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db.models import Q
from django.utils.dateparse import parse_date

from rest_framework import mixins, serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import SAFE_METHODS, AllowAny, BasePermission, IsAuthenticated
from rest_framework.response import Response

from companies.models import Company, CompanyStatus

from .models import Booking, Service
from .serializers import (
    BookingCancelSerializer,
    BookingCreateSerializer,
    BookingSerializer,
    BookingStatusSerializer,
    ServiceSerializer,
)
from .services.availability_engine import AvailabilityEngine
from .services.booking_manager import BookingManager
from .services.errors import BookingError, Forbidden, NotFound
from .services.repository import DjangoBookingRepository


def rejection(exc: BookingError) -> Response:
    return Response(exc.as_dict(), status=exc.status_code)


def parse_date_param(raw, name):
    """
    'YYYY-MM-DD' -> date. Also accepts values that include a time
    ('2025-03-10T00:00:00Z'); we keep the date part.
    """
    raw = (raw or "").strip()
    for sep in ("T", " "):
        if sep in raw:
            raw = raw.split(sep, 1)[0].strip()
    try:
        value = parse_date(raw)
    except ValueError:
        value = None
    if value is None:
        raise serializers.ValidationError({name: "Invalid date format. Use YYYY-MM-DD."})
    return value


def parse_decimal_param(raw, name):
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        raise serializers.ValidationError({name: "Must be a number."}) from None
    if not value.is_finite():
        raise serializers.ValidationError({name: "Must be a number."})
    return value


def apply_ordering(qs, params, fields, default):
    """
    ?sort_by=<key>&order=asc|desc over an allow-list {key: model field}.
    Descending by default; id breaks ties so pages are stable.
    """
    key = (params.get("sort_by") or default).strip()
    if key not in fields:
        raise serializers.ValidationError({"sort_by": f"Use one of: {', '.join(sorted(fields))}."})
    order = (params.get("order") or "desc").strip().lower()
    if order not in ("asc", "desc"):
        raise serializers.ValidationError({"order": "Use asc or desc."})
    prefix = "-" if order == "desc" else ""
    return qs.order_by(f"{prefix}{fields[key]}", f"{prefix}id")


def apply_booking_filters(qs, params):
    """Shared ?status=&service=&start_date=&end_date= filtering for booking lists."""
    status_val = (params.get("status") or "").strip().upper()
    if status_val:
        qs = qs.filter(status=status_val)
    service_id = (params.get("service") or "").strip()
    if service_id:
        if not service_id.isdigit():
            raise serializers.ValidationError({"service": "Must be a numeric id."})
        qs = qs.filter(service_id=int(service_id))
    if params.get("start_date"):
        qs = qs.filter(date__gte=parse_date_param(params["start_date"], "start_date"))
    if params.get("end_date"):
        qs = qs.filter(date__lte=parse_date_param(params["end_date"], "end_date"))
    return qs


# -------------------- Permissions / pagination --------------------
class IsCompanyManagerOrReadOnly(BasePermission):
    """
    Read: anyone
    Write: the owning company's user, or staff
    """
    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        if request.method in SAFE_METHODS:
            return True
        company = obj if isinstance(obj, Company) else obj.company
        return company.is_managed_by(request.user)


class BookingPagination(PageNumberPagination):
    page_size = settings.BOOKING["DEFAULT_PAGE_SIZE"]
    page_size_query_param = "limit"
    max_page_size = settings.BOOKING["MAX_PAGE_SIZE"]


# -------------------- ViewSets --------------------
SERVICE_SORT_FIELDS = {
    "created_at": "created_at",
    "name": "name",
    "price": "price",
    "rating": "rating",
}


def public_services():
    """Active services of approved companies."""
    return Service.objects.select_related("company").filter(
        active=True, company__status=CompanyStatus.APPROVED
    )


def limit_param(params, default=10):
    raw = (params.get("limit") or "").strip()
    if not raw:
        return default
    if not raw.isdigit() or int(raw) < 1:
        raise serializers.ValidationError({"limit": "Must be a positive integer."})
    return min(int(raw), settings.BOOKING["MAX_PAGE_SIZE"])


class ServiceViewSet(viewsets.ModelViewSet):
    """
    Service catalog:
    - Anyone can list active services of approved companies, paginated.
      Filters: ?company=ID, ?search= (name, description, company name),
      ?min_price= / ?max_price=, ?sort_by=created_at|name|price|rating, ?order=asc|desc.
    - GET /api/services/popular/ and /api/services/recent/ (?limit=, default 10).
    - Staff see everything.
    - Only the company owner (or staff) can create/update/deactivate.
    """
    serializer_class = ServiceSerializer
    permission_classes = [IsCompanyManagerOrReadOnly]
    pagination_class = BookingPagination
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        user = getattr(self.request, "user", None)
        params = self.request.query_params
        qs = Service.objects.select_related("company").order_by("id")
        company_id = (params.get("company") or "").strip()
        if company_id.isdigit():
            qs = qs.filter(company_id=int(company_id))
        if self.action == "list":
            qs = self.search(qs, params)
        if user and user.is_authenticated and user.is_staff:
            return qs
        if self.request.method not in SAFE_METHODS:
            return qs
        return qs.filter(active=True, company__status=CompanyStatus.APPROVED)

    @staticmethod
    def search(qs, params):
        text = (params.get("search") or "").strip()
        if text:
            qs = qs.filter(
                Q(name__icontains=text)
                | Q(description__icontains=text)
                | Q(company__name__icontains=text)
            )
        if params.get("min_price"):
            qs = qs.filter(price__gte=parse_decimal_param(params["min_price"], "min_price"))
        if params.get("max_price"):
            qs = qs.filter(price__lte=parse_decimal_param(params["max_price"], "max_price"))
        return apply_ordering(qs, params, SERVICE_SORT_FIELDS, default="created_at")

    @action(detail=False, methods=["get"])
    def popular(self, request):
        """Best rated first, then most reviewed."""
        qs = public_services().order_by("-rating", "-total_reviews", "id")
        qs = qs[: limit_param(request.query_params)]
        return Response(ServiceSerializer(qs, many=True).data)

    @action(detail=False, methods=["get"])
    def recent(self, request):
        qs = public_services().order_by("-created_at", "-id")
        qs = qs[: limit_param(request.query_params)]
        return Response(ServiceSerializer(qs, many=True).data)

    def perform_create(self, serializer):
        company = serializer.validated_data["company"]
        if not company.is_managed_by(self.request.user):
            raise PermissionDenied("You can only add services to your own company.")
        serializer.save()

    def perform_update(self, serializer):
        company = serializer.validated_data.get("company")
        if company is not None and company != serializer.instance.company:
            raise PermissionDenied("A service cannot be moved to another company.")
        serializer.save()

    def perform_destroy(self, instance):
        instance.active = False
        instance.save(update_fields=["active"])


class BookingViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Endpoints:
    - POST   /api/bookings/                       create (authenticated)
    - GET    /api/bookings/                       my bookings (filters + pagination)
    - GET    /api/bookings/{id}/                  one of my bookings
    - PATCH  /api/bookings/{id}/cancel/           cancel my booking
    - PATCH  /api/bookings/{id}/status/           company status update
    - GET    /api/bookings/availability/          public availability
    """
    serializer_class = BookingSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = BookingPagination
    lookup_value_regex = r"\d+"
    manager = BookingManager(DjangoBookingRepository())
    engine = AvailabilityEngine(DjangoBookingRepository())

    def get_queryset(self):
        qs = (
            Booking.objects.filter(user=self.request.user)
            .select_related("service")
            .order_by("-date", "-time_slot")
        )
        return apply_booking_filters(qs, self.request.query_params)

    def create(self, request, *args, **kwargs):
        """
        Create a booking:
        - Requires: service (PK), date (YYYY-MM-DD), time_slot (HH:MM).
        - Optional: notes (str).
        - Starts as PENDING; price is snapshotted from the service.
        """
        payload = BookingCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        try:
            booking = self.manager.create(
                user_id=request.user.pk,
                service_id=data["service"],
                date=data["date"],
                time_slot=data["time_slot"],
                notes=data.get("notes", ""),
            )
        except BookingError as e:
            return rejection(e)

        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        try:
            booking = self.manager.get_booking(int(pk), request.user.pk)
        except BookingError as e:
            return rejection(e)
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=["patch", "post"])
    def cancel(self, request, pk=None):
        """Cancel one of my bookings. Body: {"reason": "..."} (optional)."""
        payload = BookingCancelSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            booking = self.manager.cancel(
                int(pk), request.user.pk, reason=payload.validated_data.get("reason")
            )
        except BookingError as e:
            return rejection(e)
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["patch"], url_path="status")
    def set_status(self, request, pk=None):
        """
        Company-side status change. Body: {"status": "CONFIRMED", "company": ID}.
        The caller must own that company (or be staff).
        """
        payload = BookingStatusSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        try:
            company = Company.objects.filter(pk=data["company"]).first()
            if company is None:
                raise NotFound("Company not found.")
            if not company.is_managed_by(request.user):
                raise Forbidden("You do not manage this company.")
            booking = self.manager.update_status(int(pk), company.pk, data["status"])
        except BookingError as e:
            return rejection(e)
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="availability", permission_classes=[AllowAny])
    def availability(self, request):
        """
        GET /api/bookings/availability/?service=ID&date=YYYY-MM-DD
        Returns {"date": ..., "slots": [{"time": "09:00", "is_available": true}, ...]}.
        """
        service_id = (request.query_params.get("service") or "").strip()
        date_raw = (request.query_params.get("date") or "").strip()

        if not service_id or not date_raw:
            return Response(
                {"detail": "Missing 'service' or 'date'."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if not service_id.isdigit():
            return rejection(NotFound("Service not found."))

        day = parse_date_param(date_raw, "date")
        try:
            data = self.engine.check_availability(int(service_id), day)
        except BookingError as e:
            return rejection(e)
        return Response(data)
