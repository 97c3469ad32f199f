"""Unified calendar API."""

from __future__ import annotations

from django.utils import timezone  # type: ignore
from rest_framework import permissions, status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from shared.domain.value_objects import MonthRange

from .aggregator import CalendarAggregator, CalendarFilters, bucket_by_day
from .sources import default_sources

EXTERNAL_TOKEN_HEADER = "HTTP_X_EXTERNAL_CALENDAR_TOKEN"
FALSE_VALUES = {"0", "false", "no", "off"}


def _flag(params, name: str, default: bool = True) -> bool:
    value = params.get(name)
    if value is None:
        return default
    return value.strip().lower() not in FALSE_VALUES


class UnifiedCalendarView(APIView):
    """
    Month view merged from studio bookings, project milestones, the user's
    open tasks and, when the client sends a token, their external calendar.

    Query parameters: ``month`` (YYYY-MM), ``studio``/``projects``/``tasks``/
    ``external`` (0 to hide a source) and ``grid=1`` for Monday-start week
    rows with per-day buckets.
    """

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):  # type: ignore
        params = request.query_params
        month_param = params.get("month")
        try:
            month = MonthRange.parse(month_param) if month_param else MonthRange.containing(timezone.localdate())
        except ValueError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        filters = CalendarFilters(
            studio=_flag(params, "studio"),
            projects=_flag(params, "projects"),
            tasks=_flag(params, "tasks"),
            external=_flag(params, "external"),
        )
        grid = _flag(params, "grid", default=False)
        fetch_range = month.week_grid() if grid else month

        sources = default_sources(
            request.user,
            external_token=request.META.get(EXTERNAL_TOKEN_HEADER) or None,
            now=timezone.now(),
        )
        result = CalendarAggregator(sources).run(fetch_range, filters)

        body = {
            "month": f"{month.start:%Y-%m}",
            "range": {"start": fetch_range.start.isoformat(), "end": fetch_range.end.isoformat()},
            "events": [event.to_dict() for event in result.events],
            "unavailable_sources": [source.value for source in result.failed_sources],
        }
        if grid:
            body["days"] = [bucket.to_dict() for bucket in bucket_by_day(result.events, fetch_range, month=month)]
        return Response(body)
