"""URL routing for the studio domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import BookingViewSet, PublicCalendarTokenViewSet, PublicCalendarView

router = DefaultRouter()
router.register(r"bookings", BookingViewSet, basename="booking")
router.register(r"public-calendar-tokens", PublicCalendarTokenViewSet, basename="public-calendar-token")

urlpatterns = [
    path("public-calendar/<str:token>/", PublicCalendarView.as_view(), name="public-calendar"),
    path("", include(router.urls)),
]
