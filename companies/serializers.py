from rest_framework import serializers

from booking.serializers import HHMMField

from .models import Company, CompanyStatus, OperatingWindow


class CompanySerializer(serializers.ModelSerializer):
    class Meta:
        model = Company
        fields = [
            "id",
            "owner",
            "name",
            "email",
            "phone_number",
            "address",
            "description",
            "status",
            "rating",
            "total_reviews",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["owner", "status", "rating", "total_reviews", "created_at", "updated_at"]


class CompanyStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[CompanyStatus.APPROVED, CompanyStatus.REJECTED, CompanyStatus.PENDING]
    )


class OperatingWindowSerializer(serializers.ModelSerializer):
    start_time = HHMMField(source="start_minute")
    end_time = HHMMField(source="end_minute")

    class Meta:
        model = OperatingWindow
        fields = [
            "id",
            "company",
            "day_of_week",
            "start_time",
            "end_time",
            "slot_granularity",
            "active",
        ]

    def validate(self, attrs):
        start = attrs.get("start_minute", getattr(self.instance, "start_minute", None))
        end = attrs.get("end_minute", getattr(self.instance, "end_minute", None))
        if start is not None and end is not None and start >= end:
            raise serializers.ValidationError("Start time must be before end time.")
        company = attrs.get("company")
        if self.instance is not None and company is not None and company != self.instance.company:
            raise serializers.ValidationError("A window cannot be moved to another company.")
        return attrs
