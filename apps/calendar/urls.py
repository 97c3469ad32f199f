from django.urls import path  # type: ignore

from .views import UnifiedCalendarView

urlpatterns = [
    path("", UnifiedCalendarView.as_view(), name="unified-calendar"),
]
