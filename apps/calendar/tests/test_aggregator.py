import threading
from datetime import date, time

import pytest

from apps.calendar.aggregator import (
    CalendarEvent,
    CalendarFilters,
    CalendarAggregator,
    EventSource,
    aggregate,
    bucket_by_day,
)
from shared.domain.value_objects import MonthRange

JANUARY = MonthRange.for_month(2025, 1)


class StaticSource:
    network_bound = False

    def __init__(self, source, events):
        self.source = source
        self.events = events
        self.calls = 0

    def fetch(self, month):
        self.calls += 1
        return list(self.events)


class FailingSource:
    network_bound = False

    def __init__(self, source):
        self.source = source

    def fetch(self, month):
        raise RuntimeError("source is down")


class SlowNetworkSource:
    network_bound = True
    source = EventSource.EXTERNAL

    def __init__(self):
        self.release = threading.Event()

    def fetch(self, month):
        self.release.wait(5)
        return [event("slow", EventSource.EXTERNAL, date(2025, 1, 10))]


def event(event_id, source, day, start=None):
    return CalendarEvent(
        id=event_id,
        title=event_id,
        date=day,
        source=source,
        color="hsl(var(--foreground))",
        start_time=start,
    )


def test_sources_merge_in_fixed_order_regardless_of_registration():
    sources = [
        StaticSource(EventSource.EXTERNAL, [event("ext", EventSource.EXTERNAL, date(2025, 1, 10))]),
        StaticSource(EventSource.TASK, [event("task", EventSource.TASK, date(2025, 1, 10))]),
        StaticSource(EventSource.STUDIO, [event("studio", EventSource.STUDIO, date(2025, 1, 10), time(9))]),
        StaticSource(EventSource.PROJECT, [event("project", EventSource.PROJECT, date(2025, 1, 10))]),
    ]

    events = aggregate(JANUARY, sources=sources)

    assert [e.id for e in events] == ["studio", "project", "task", "ext"]


def test_failing_source_contributes_nothing_and_others_still_merge():
    aggregator = CalendarAggregator(
        [
            StaticSource(EventSource.STUDIO, [event("studio", EventSource.STUDIO, date(2025, 1, 3))]),
            FailingSource(EventSource.PROJECT),
            StaticSource(EventSource.TASK, [event("task", EventSource.TASK, date(2025, 1, 4))]),
        ]
    )

    result = aggregator.run(JANUARY)

    assert [e.id for e in result.events] == ["studio", "task"]
    assert result.failed_sources == [EventSource.PROJECT]


def test_timed_out_network_source_is_dropped():
    slow = SlowNetworkSource()
    aggregator = CalendarAggregator(
        [slow, StaticSource(EventSource.STUDIO, [event("studio", EventSource.STUDIO, date(2025, 1, 3))])],
        timeout=0.05,
    )
    try:
        result = aggregator.run(JANUARY)
    finally:
        slow.release.set()

    assert [e.id for e in result.events] == ["studio"]
    assert result.failed_sources == [EventSource.EXTERNAL]


def test_filters_exclude_sources_without_fetching_them():
    project = StaticSource(EventSource.PROJECT, [event("project", EventSource.PROJECT, date(2025, 1, 10))])
    studio = StaticSource(EventSource.STUDIO, [event("studio", EventSource.STUDIO, date(2025, 1, 10))])

    events = aggregate(JANUARY, CalendarFilters(projects=False), sources=[studio, project])

    assert [e.id for e in events] == ["studio"]
    assert project.calls == 0


def test_all_filters_on_is_the_union_of_single_source_views():
    sources = [
        StaticSource(EventSource.STUDIO, [event("studio", EventSource.STUDIO, date(2025, 1, 2))]),
        StaticSource(EventSource.TASK, [event("task", EventSource.TASK, date(2025, 1, 2))]),
    ]
    only_studio = aggregate(JANUARY, CalendarFilters(tasks=False), sources=sources)
    only_tasks = aggregate(JANUARY, CalendarFilters(studio=False), sources=sources)

    both = aggregate(JANUARY, sources=sources)

    assert both == only_studio + only_tasks


def test_events_outside_the_range_are_dropped():
    sources = [
        StaticSource(
            EventSource.PROJECT,
            [
                event("december", EventSource.PROJECT, date(2024, 12, 31)),
                event("january", EventSource.PROJECT, date(2025, 1, 31)),
            ],
        )
    ]

    assert [e.id for e in aggregate(JANUARY, sources=sources)] == ["january"]


def test_events_within_a_source_are_sorted_by_day_and_time():
    sources = [
        StaticSource(
            EventSource.STUDIO,
            [
                event("afternoon", EventSource.STUDIO, date(2025, 1, 5), time(14)),
                event("morning", EventSource.STUDIO, date(2025, 1, 5), time(9)),
                event("earlier-day", EventSource.STUDIO, date(2025, 1, 4), time(18)),
            ],
        )
    ]

    assert [e.id for e in aggregate(JANUARY, sources=sources)] == ["earlier-day", "morning", "afternoon"]


def test_day_buckets_cap_events_and_count_overflow():
    day = date(2025, 1, 15)
    events = [event(f"e{n}", EventSource.STUDIO, day) for n in range(5)]

    buckets = bucket_by_day(events, JANUARY, cap=3)
    bucket = next(b for b in buckets if b.date == day)

    assert len(buckets) == 31
    assert [e.id for e in bucket.events] == ["e0", "e1", "e2"]
    assert bucket.overflow == 2
    assert bucket.to_dict()["overflow"] == 2


def test_week_grid_buckets_mark_days_outside_the_month():
    grid = JANUARY.week_grid()

    buckets = bucket_by_day([], grid, month=JANUARY)

    assert grid.start == date(2024, 12, 30)
    assert grid.end == date(2025, 2, 2)
    assert len(buckets) % 7 == 0
    assert buckets[0].in_month is False
    assert buckets[2].in_month is True


def test_event_serialisation():
    payload = event("studio", EventSource.STUDIO, date(2025, 1, 10), time(9, 30)).to_dict()

    assert payload["date"] == "2025-01-10"
    assert payload["start_time"] == "09:30"
    assert payload["end_time"] is None
    assert payload["source"] == "studio"


@pytest.mark.parametrize("source", list(EventSource))
def test_every_source_has_a_filter(source):
    assert CalendarFilters().includes(source) is True
