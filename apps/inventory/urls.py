"""URL routing for the inventory domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import AvailabilityCheckView, EquipmentItemViewSet

router = DefaultRouter()
router.register(r"equipment", EquipmentItemViewSet, basename="equipment")

urlpatterns = [
    path("availability/", AvailabilityCheckView.as_view(), name="equipment-availability"),
    path("", include(router.urls)),
]
