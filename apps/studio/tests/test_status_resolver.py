"""Display status derivation for bookings."""

from __future__ import annotations

from datetime import date, datetime, time, timezone as dt_timezone
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest

from apps.studio.domain.status import (
    BOOKING_KIND_LABELS,
    BookingKind,
    BookingStatus,
    DisplayStatus,
    occupying_statuses,
    resolve,
)
from apps.studio.models import Booking

TODAY = date(2025, 1, 10)
NOW = datetime(2025, 1, 10, 15, 30, tzinfo=dt_timezone.utc)


def booking(day, status, is_blocked=False):
    return SimpleNamespace(date=day, status=status, is_blocked=is_blocked)


def test_confirmed_booking_from_yesterday_is_completed():
    result = resolve(booking(date(2025, 1, 9), "confirmed"), NOW)

    assert result.display_status is DisplayStatus.COMPLETED
    assert result.is_past is True
    assert result.is_upcoming is False


def test_past_pending_booking_is_completed_too():
    assert resolve(booking(date(2025, 1, 1), "pending"), NOW).display_status is DisplayStatus.COMPLETED


def test_blocked_slot_stays_blocked_in_the_past():
    result = resolve(booking(date(2025, 1, 9), "blocked", is_blocked=True), NOW)

    assert result.display_status is DisplayStatus.BLOCKED
    assert result.is_past is True


def test_hold_flag_wins_over_stored_status():
    result = resolve(booking(date(2025, 1, 12), "pending", is_blocked=True), NOW)

    assert result.display_status is DisplayStatus.BLOCKED
    assert result.is_upcoming is False


def test_confirmed_booking_today_is_upcoming_whatever_the_hour():
    result = resolve(booking(TODAY, "confirmed"), datetime(2025, 1, 10, 23, 59, tzinfo=dt_timezone.utc))

    assert result.display_status is DisplayStatus.UPCOMING
    assert result.is_upcoming is True
    assert result.stored_status is BookingStatus.CONFIRMED


def test_future_pending_booking_keeps_its_stored_status():
    result = resolve(booking(date(2025, 2, 1), "pending"), NOW)

    assert result.display_status is DisplayStatus.PENDING
    assert result.is_upcoming is False
    assert result.is_past is False


def test_today_follows_the_studio_time_zone():
    # 20:00 UTC on the 9th is already the 10th in Almaty (UTC+5).
    late_utc = datetime(2025, 1, 9, 20, 0, tzinfo=dt_timezone.utc)
    yesterday_there = booking(date(2025, 1, 9), "confirmed")

    assert resolve(yesterday_there, late_utc).display_status is DisplayStatus.UPCOMING
    assert resolve(yesterday_there, late_utc, tz=ZoneInfo("Asia/Almaty")).display_status is DisplayStatus.COMPLETED


def test_resolution_is_deterministic():
    subject = booking(TODAY, "confirmed")

    assert resolve(subject, NOW) == resolve(subject, NOW)


def test_every_display_status_has_a_label_and_badge():
    for status in (DisplayStatus.COMPLETED, DisplayStatus.UPCOMING, DisplayStatus.PENDING, DisplayStatus.BLOCKED):
        result = resolve(
            booking(
                date(2025, 1, 1) if status is DisplayStatus.COMPLETED else TODAY,
                {"completed": "confirmed", "upcoming": "confirmed"}.get(status.value, status.value),
            ),
            NOW,
        )
        assert result.display_status is status
        assert result.label
        assert result.badge


def test_lookup_tables_cover_the_closed_sets():
    assert set(BOOKING_KIND_LABELS) == set(BookingKind)
    assert set(occupying_statuses()) == {"pending", "confirmed", "blocked"}


@pytest.mark.django_db
def test_resolving_a_stored_booking_never_writes(django_assert_num_queries):
    stored = Booking.objects.create(date=date(2025, 1, 9), start_time=time(9), end_time=time(10), status="confirmed")

    with django_assert_num_queries(0):
        first = stored.resolve_status(NOW)
        second = stored.resolve_status(NOW)

    stored.refresh_from_db()
    assert first == second
    assert first.display_status is DisplayStatus.COMPLETED
    assert stored.status == Booking.Status.CONFIRMED
