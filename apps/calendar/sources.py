"""Event sources merged by the calendar aggregator."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta

import requests
from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.value_objects import MonthRange

from .aggregator import CalendarEvent, EventSource

logger = logging.getLogger(__name__)

STUDIO_COLOR = "hsl(var(--foreground))"
PROJECT_COLOR = "hsl(45 60% 60%)"
TASK_COLOR = "hsl(var(--primary))"
EXTERNAL_COLOR = "hsl(var(--muted-foreground))"


class ExternalCalendarError(Exception):
    """Raised when the external calendar cannot be read."""

    pass


class StudioBookingSource:
    """Studio bookings with their display status and reserved equipment."""

    source = EventSource.STUDIO
    network_bound = False

    def __init__(self, user=None, *, now: datetime | None = None):
        self.user = user
        self.now = now

    def fetch(self, month: MonthRange) -> list[CalendarEvent]:
        from apps.inventory.services import reserved_equipment_for
        from apps.studio.models import Booking
        from apps.studio.permissions import is_studio_staff

        bookings = Booking.objects.filter(date__gte=month.start, date__lte=month.end).select_related("client")
        if not is_studio_staff(self.user):
            bookings = bookings.filter(booked_by=self.user) if self.user is not None else bookings.none()
        bookings = list(bookings.order_by("date", "start_time", "id"))

        equipment = reserved_equipment_for([booking.pk for booking in bookings])
        now = self.now or timezone.now()

        events = []
        for booking in bookings:
            resolution = booking.resolve_status(now)
            events.append(
                CalendarEvent(
                    id=f"studio-{booking.pk}",
                    title=booking.title,
                    date=booking.date,
                    start_time=booking.start_time,
                    end_time=booking.end_time,
                    source=self.source,
                    color=STUDIO_COLOR,
                    read_only=False,
                    payload={
                        "booking_id": booking.pk,
                        "booking_kind": booking.booking_kind,
                        "status": booking.status,
                        "display_status": resolution.display_status.value,
                        "status_label": resolution.label,
                        "badge": resolution.badge,
                        "is_upcoming": resolution.is_upcoming,
                        "is_past": resolution.is_past,
                        "is_blocked": booking.occupies_as_block,
                        "client_name": booking.client.name if booking.client_id else None,
                        "equipment": equipment.get(booking.pk, []),
                    },
                )
            )
        return events


class ProjectMilestoneSource:
    """Project due dates as all-day milestones, for studio staff."""

    source = EventSource.PROJECT
    network_bound = False

    def __init__(self, user=None):
        self.user = user

    def fetch(self, month: MonthRange) -> list[CalendarEvent]:
        from apps.projects.models import Project
        from apps.studio.permissions import is_studio_staff

        if not is_studio_staff(self.user):
            return []

        projects = Project.objects.filter(due_date__gte=month.start, due_date__lte=month.end).order_by("due_date", "id")
        return [
            CalendarEvent(
                id=f"project-{project.pk}",
                title=f"📁 {project.name}",
                date=project.due_date,
                source=self.source,
                color=PROJECT_COLOR,
                payload={"project_id": project.pk, "status": project.status},
            )
            for project in projects
        ]


class TaskDeadlineSource:
    """Open tasks assigned to the user, on their due dates."""

    source = EventSource.TASK
    network_bound = False

    def __init__(self, user=None):
        self.user = user

    def fetch(self, month: MonthRange) -> list[CalendarEvent]:
        from apps.projects.models import Task

        if self.user is None or not self.user.is_authenticated:
            return []

        tasks = (
            Task.objects.filter(
                assigned_to=self.user,
                due_date__isnull=False,
                due_date__gte=month.start,
                due_date__lte=month.end,
            )
            .exclude(status=Task.Status.DONE)
            .order_by("due_date", "id")
        )
        return [
            CalendarEvent(
                id=f"task-{task.pk}",
                title=f"✓ {task.title}",
                date=task.due_date,
                source=self.source,
                color=TASK_COLOR,
                payload={"task_id": task.pk, "project_id": task.project_id, "priority": task.priority},
            )
            for task in tasks
        ]


def _parse_external_boundary(boundary: dict) -> tuple[date | None, time | None]:
    """Day and wall-clock time of an event boundary as the calendar reports them."""
    if boundary.get("date"):
        return date.fromisoformat(boundary["date"]), None
    value = boundary.get("dateTime")
    if not value:
        return None, None
    # Keep the event's own local time rather than converting zones.
    day = date.fromisoformat(value[:10])
    clock = time.fromisoformat(value[11:16]) if len(value) >= 16 else None
    return day, clock


class ExternalCalendarSource:
    """
    Read-only events from the user's external (Google) calendar.

    The access token is supplied by the caller on every request and is
    never stored. Without a token the source contributes nothing.
    """

    source = EventSource.EXTERNAL
    network_bound = True

    def __init__(self, access_token: str | None, *, api_url: str | None = None, timeout: float | None = None):
        self.access_token = access_token
        self.api_url = api_url or settings.EXTERNAL_CALENDAR_API_URL
        self.timeout = timeout or settings.CALENDAR_SOURCE_TIMEOUT_SECONDS

    def fetch(self, month: MonthRange) -> list[CalendarEvent]:
        if not self.access_token:
            return []

        params = {
            "timeMin": f"{month.start.isoformat()}T00:00:00Z",
            "timeMax": f"{(month.end + timedelta(days=1)).isoformat()}T00:00:00Z",
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        try:
            response = requests.get(
                self.api_url,
                params=params,
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            items = response.json().get("items") or []
        except requests.exceptions.RequestException as e:
            raise ExternalCalendarError(f"External calendar request failed: {e}") from e
        except ValueError as e:
            raise ExternalCalendarError(f"External calendar returned invalid JSON: {e}") from e

        events = []
        for item in items:
            try:
                day, start_time = _parse_external_boundary(item.get("start") or {})
                _, end_time = _parse_external_boundary(item.get("end") or {})
            except ValueError as e:
                logger.warning(f"Skipping external event {item.get('id')} with malformed time: {e}")
                continue
            if day is None:
                logger.debug(f"Skipping external event without a start: {item.get('id')}")
                continue
            events.append(
                CalendarEvent(
                    id=f"external-{item.get('id', len(events))}",
                    title=item.get("summary") or "Untitled",
                    date=day,
                    start_time=start_time,
                    end_time=end_time if start_time else None,
                    source=self.source,
                    color=EXTERNAL_COLOR,
                    read_only=True,
                    payload={"html_link": item.get("htmlLink")},
                )
            )
        return events


def default_sources(user, *, external_token: str | None = None, now: datetime | None = None) -> list:
    return [
        StudioBookingSource(user, now=now),
        ProjectMilestoneSource(user),
        TaskDeadlineSource(user),
        ExternalCalendarSource(external_token),
    ]
