# reports/urls.py

from django.urls import path
from .views import CompanyStatsView

urlpatterns = [
    path("companies/<int:company_id>/stats", CompanyStatsView.as_view(), name="company-stats"),
]
