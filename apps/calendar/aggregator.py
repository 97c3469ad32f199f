"""
Calendar aggregation.

Merges events from independent sources (studio bookings, project
milestones, task deadlines, an external calendar) into one month view.
Each source is isolated: an error or timeout in one contributes nothing
and is reported, while the others are merged as usual.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import Iterable, Protocol

from django.conf import settings  # type: ignore

from shared.domain.value_objects import MonthRange

logger = logging.getLogger(__name__)


class EventSource(str, Enum):
    STUDIO = "studio"
    PROJECT = "project"
    TASK = "task"
    EXTERNAL = "external"


SOURCE_ORDER = (EventSource.STUDIO, EventSource.PROJECT, EventSource.TASK, EventSource.EXTERNAL)


@dataclass(frozen=True)
class CalendarEvent:
    """A read-time projection of something that happens on a calendar day."""

    id: str
    title: str
    date: date
    source: EventSource
    color: str
    start_time: time | None = None
    end_time: time | None = None
    read_only: bool = True
    payload: dict = field(default_factory=dict)

    def sort_key(self) -> tuple:
        return (self.date, self.start_time is not None, self.start_time or time.min)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "date": self.date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M") if self.start_time else None,
            "end_time": self.end_time.strftime("%H:%M") if self.end_time else None,
            "source": self.source.value,
            "color": self.color,
            "read_only": self.read_only,
            "payload": self.payload,
        }


@dataclass(frozen=True)
class CalendarFilters:
    """Which sources to show. Filters only include or exclude; they never reorder."""

    studio: bool = True
    projects: bool = True
    tasks: bool = True
    external: bool = True

    def includes(self, source: EventSource) -> bool:
        return {
            EventSource.STUDIO: self.studio,
            EventSource.PROJECT: self.projects,
            EventSource.TASK: self.tasks,
            EventSource.EXTERNAL: self.external,
        }[source]


class CalendarSource(Protocol):
    source: EventSource
    # Network-bound sources run on worker threads; database sources run inline.
    network_bound: bool

    def fetch(self, month: MonthRange) -> list[CalendarEvent]:
        ...


@dataclass
class DayBucket:
    date: date
    events: list[CalendarEvent]
    overflow: int = 0
    in_month: bool = True

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "in_month": self.in_month,
            "events": [event.to_dict() for event in self.events],
            "overflow": self.overflow,
        }


@dataclass
class AggregationResult:
    events: list[CalendarEvent] = field(default_factory=list)
    failed_sources: list[EventSource] = field(default_factory=list)

    def for_day(self, day: date) -> list[CalendarEvent]:
        return [event for event in self.events if event.date == day]


class CalendarAggregator:
    """Fetch every enabled source for a month and merge the results in source order."""

    def __init__(self, sources: Iterable[CalendarSource], *, timeout: float | None = None):
        self.sources = list(sources)
        self.timeout = timeout if timeout is not None else settings.CALENDAR_SOURCE_TIMEOUT_SECONDS

    def run(self, month: MonthRange, filters: CalendarFilters | None = None) -> AggregationResult:
        filters = filters or CalendarFilters()
        enabled = [source for source in self.sources if filters.includes(source.source)]
        contributions: dict[EventSource, list[CalendarEvent]] = {}
        failed: list[EventSource] = []

        remote = [source for source in enabled if source.network_bound]
        executor = ThreadPoolExecutor(max_workers=len(remote)) if remote else None
        try:
            futures = {source.source: executor.submit(source.fetch, month) for source in remote} if executor else {}

            for source in enabled:
                if source.network_bound:
                    continue
                try:
                    contributions[source.source] = source.fetch(month)
                except Exception as e:
                    logger.warning(f"Calendar source {source.source.value} failed: {e}", exc_info=True)
                    failed.append(source.source)

            for source_key, future in futures.items():
                try:
                    contributions[source_key] = future.result(timeout=self.timeout)
                except FutureTimeoutError:
                    logger.warning(f"Calendar source {source_key.value} timed out after {self.timeout}s")
                    failed.append(source_key)
                except Exception as e:
                    logger.warning(f"Calendar source {source_key.value} failed: {e}")
                    failed.append(source_key)
        finally:
            if executor is not None:
                executor.shutdown(wait=False, cancel_futures=True)

        events: list[CalendarEvent] = []
        for source_key in SOURCE_ORDER:
            in_month = [event for event in contributions.get(source_key, []) if event.date in month]
            events.extend(sorted(in_month, key=CalendarEvent.sort_key))

        return AggregationResult(
            events=events,
            failed_sources=[source_key for source_key in SOURCE_ORDER if source_key in failed],
        )


def aggregate(
    month: MonthRange,
    filters: CalendarFilters | None = None,
    *,
    sources: Iterable[CalendarSource],
    timeout: float | None = None,
) -> list[CalendarEvent]:
    """Merged events for ``month``: studio, then project, task and external."""
    return CalendarAggregator(sources, timeout=timeout).run(month, filters).events


def bucket_by_day(
    events: list[CalendarEvent],
    days: MonthRange,
    *,
    month: MonthRange | None = None,
    cap: int | None = None,
) -> list[DayBucket]:
    """
    Group events per day for a month grid.

    Each bucket keeps the first ``cap`` events in merge order and counts the
    rest as overflow. ``days`` may extend past ``month`` to whole weeks.
    """
    cap = settings.CALENDAR_DAY_DISPLAY_CAP if cap is None else cap
    month = month or days
    per_day: dict[date, list[CalendarEvent]] = {}
    for event in events:
        per_day.setdefault(event.date, []).append(event)

    buckets = []
    for day in days.days():
        day_events = per_day.get(day, [])
        buckets.append(
            DayBucket(
                date=day,
                events=day_events[:cap],
                overflow=max(len(day_events) - cap, 0),
                in_month=day in month,
            )
        )
    return buckets
