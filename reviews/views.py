# reviews/views.py
#
# Purpose:
# - Review API: public listing and stats, authenticated create, author-only
#   edit and delete.
#
# Notes:
# - Rules live in reviews/services.py; views render BookingError rejections
#   the same way booking/views.py does.
#
from rest_framework import mixins, serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import SAFE_METHODS, AllowAny, IsAuthenticated
from rest_framework.response import Response

from booking.services.errors import BookingError
from booking.views import BookingPagination, apply_ordering, rejection

from .models import Review
from .serializers import ReviewCreateSerializer, ReviewSerializer, ReviewUpdateSerializer
from .services import (
    company_review_stats,
    create_review,
    delete_review,
    service_review_stats,
    update_review,
)

REVIEW_SORT_FIELDS = {"created_at": "created_at", "rating": "rating"}


def _id_param(params, name):
    raw = (params.get(name) or "").strip()
    if not raw:
        return None
    if not raw.isdigit():
        raise serializers.ValidationError({name: "Must be a numeric id."})
    return int(raw)


class ReviewViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    Endpoints:
    - GET    /api/reviews/?service=&company=&user=&min_rating=&sort_by=&order=
    - GET    /api/reviews/{id}/
    - POST   /api/reviews/                 {booking, rating, comment?}
    - PATCH  /api/reviews/{id}/            {rating?, comment?}   author only
    - DELETE /api/reviews/{id}/            author only
    - GET    /api/reviews/stats/?service=ID or ?company=ID
    """
    serializer_class = ReviewSerializer
    pagination_class = BookingPagination
    lookup_value_regex = r"\d+"

    def get_permissions(self):
        if self.request.method in SAFE_METHODS:
            return [AllowAny()]
        return [IsAuthenticated()]

    def get_queryset(self):
        params = self.request.query_params
        qs = Review.objects.select_related("user", "booking__service__company")

        service_id = _id_param(params, "service")
        if service_id is not None:
            qs = qs.filter(booking__service_id=service_id)
        company_id = _id_param(params, "company")
        if company_id is not None:
            qs = qs.filter(booking__service__company_id=company_id)
        user_id = _id_param(params, "user")
        if user_id is not None:
            qs = qs.filter(user_id=user_id)

        min_rating = (params.get("min_rating") or "").strip()
        if min_rating:
            if not min_rating.isdigit():
                raise serializers.ValidationError({"min_rating": "Must be a number from 1 to 5."})
            qs = qs.filter(rating__gte=int(min_rating))

        return apply_ordering(qs, params, REVIEW_SORT_FIELDS, default="created_at")

    def create(self, request, *args, **kwargs):
        payload = ReviewCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data
        try:
            review = create_review(
                request.user.pk, data["booking"], data["rating"], data.get("comment", "")
            )
        except BookingError as e:
            return rejection(e)
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        payload = ReviewUpdateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data
        try:
            review = update_review(
                int(pk), request.user.pk, rating=data.get("rating"), comment=data.get("comment")
            )
        except BookingError as e:
            return rejection(e)
        return Response(ReviewSerializer(review).data)

    def destroy(self, request, pk=None):
        try:
            delete_review(int(pk), request.user.pk)
        except BookingError as e:
            return rejection(e)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"], url_path="stats")
    def stats(self, request):
        """Average, count and 1-5 distribution for ?service=ID or ?company=ID."""
        service_id = _id_param(request.query_params, "service")
        company_id = _id_param(request.query_params, "company")
        try:
            if service_id is not None:
                data = service_review_stats(service_id)
            elif company_id is not None:
                data = company_review_stats(company_id)
            else:
                return Response(
                    {"detail": "Pass 'service' or 'company'."},
                    status=status.HTTP_400_BAD_REQUEST,
                )
        except BookingError as e:
            return rejection(e)
        data["average_rating"] = str(data["average_rating"])
        return Response(data)
