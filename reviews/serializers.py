from rest_framework import serializers

from .models import MAX_RATING, MIN_RATING, Review


class ReviewSerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source="user.get_username", read_only=True)
    service = serializers.IntegerField(source="booking.service_id", read_only=True)
    service_name = serializers.CharField(source="booking.service.name", read_only=True)
    company = serializers.IntegerField(source="booking.service.company_id", read_only=True)
    company_name = serializers.CharField(source="booking.service.company.name", read_only=True)

    class Meta:
        model = Review
        fields = [
            "id",
            "booking",
            "user",
            "user_name",
            "service",
            "service_name",
            "company",
            "company_name",
            "rating",
            "comment",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ReviewCreateSerializer(serializers.Serializer):
    booking = serializers.IntegerField(min_value=1)
    rating = serializers.IntegerField(min_value=MIN_RATING, max_value=MAX_RATING)
    comment = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")


class ReviewUpdateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=MIN_RATING, max_value=MAX_RATING, required=False)
    comment = serializers.CharField(max_length=1000, required=False, allow_blank=True)
