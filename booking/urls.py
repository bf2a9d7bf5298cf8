# booking/urls.py
#
# Purpose:
# - Expose the booking REST API via a DRF router:
#     * /api/services/                 service catalog
#     * /api/bookings/                 create / list my bookings
#     * /api/bookings/{id}/cancel/     cancel
#     * /api/bookings/{id}/status/     company status update
#     * /api/bookings/availability/    public slot availability

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import BookingViewSet, ServiceViewSet

router = DefaultRouter()
router.register(r"services", ServiceViewSet, basename="service")
router.register(r"bookings", BookingViewSet, basename="booking")

urlpatterns = [
    path("", include(router.urls)),
]
