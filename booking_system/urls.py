# booking_system/urls.py
#
# Purpose:
# - Project URL router.
# - All JSON APIs live under /api/; Django admin (company approval, data
#   fixes) under /admin/.
#
from django.contrib import admin
from django.urls import path, include


urlpatterns = [
    # Django admin
    path("admin/", admin.site.urls),

    # =====
    # API's
    # =====
    path("api/", include("booking.urls")),
    path("api/companies/", include("companies.urls")),
    path("api/reviews/", include("reviews.urls")),
    path("api/reports/", include("reports.urls")),
]
