from rest_framework import serializers

from .models import Booking, BookingStatus, Service
from .services.errors import InvalidTimeFormat, InvalidTimeRange
from .services.time_utils import format_time, parse_time


class HHMMField(serializers.Field):
    """Minute offset in the database, "HH:MM" on the wire."""

    default_error_messages = {
        "invalid": "Time must use the HH:MM format (e.g. 09:00).",
    }

    def to_representation(self, value):
        return format_time(value)

    def to_internal_value(self, data):
        try:
            return parse_time(data)
        except (InvalidTimeFormat, InvalidTimeRange):
            self.fail("invalid")


class ServiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Service
        fields = [
            "id",
            "company",
            "name",
            "description",
            "duration_minutes",
            "price",
            "active",
            "rating",
            "total_reviews",
            "created_at",
        ]
        read_only_fields = ["rating", "total_reviews", "created_at"]


class BookingSerializer(serializers.ModelSerializer):
    service_name = serializers.CharField(source="service.name", read_only=True)
    company = serializers.IntegerField(source="service.company_id", read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "user",
            "service",
            "service_name",
            "company",
            "date",
            "time_slot",
            "status",
            "total_price",
            "notes",
            "cancellation_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class BookingCreateSerializer(serializers.Serializer):
    # time_slot format is checked by BookingManager so the API returns the
    # same INVALID_TIME_FORMAT code as every other caller.
    service = serializers.IntegerField(min_value=1)
    date = serializers.DateField()
    time_slot = serializers.CharField(max_length=5)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class BookingCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=BookingStatus.choices)
    company = serializers.IntegerField(min_value=1)
