from django.urls import path, include
from rest_framework.routers import SimpleRouter
from .views import CompanyViewSet, OperatingWindowViewSet

# SimpleRouter: DefaultRouter's API root would shadow the company list at "".
router = SimpleRouter()
router.register(r"windows", OperatingWindowViewSet, basename="operating-window")
router.register(r"", CompanyViewSet, basename="company")

urlpatterns = [path("", include(router.urls))]
