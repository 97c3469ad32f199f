"""
Booking status vocabulary and the temporal status resolver.

Stored status is what the database holds; display status is derived from
the stored status and the current calendar day every time a booking is
rendered. Display status is never written back.

Every lookup table below is keyed by a closed enumeration and is checked
for completeness at import time, so adding a kind or a status without
filling in its labels fails loudly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from enum import Enum


class BookingKind(str, Enum):
    PHOTO_SHOOT = "photo-shoot"
    VIDEO = "video"
    GALLERY_SHOW = "gallery-show"
    RENTAL = "rental"
    OTHER = "other"


class BookingStatus(str, Enum):
    """Status as persisted on the booking record."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    BLOCKED = "blocked"


class DisplayStatus(str, Enum):
    """Status as shown to people; derived, never persisted."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    BLOCKED = "blocked"
    UPCOMING = "upcoming"
    COMPLETED = "completed"


BOOKING_KIND_LABELS: dict[BookingKind, str] = {
    BookingKind.PHOTO_SHOOT: "Photo Shoot",
    BookingKind.VIDEO: "Video Production",
    BookingKind.GALLERY_SHOW: "Gallery Show",
    BookingKind.RENTAL: "Studio Rental",
    BookingKind.OTHER: "Other",
}

BOOKING_STATUS_LABELS: dict[BookingStatus, str] = {
    BookingStatus.PENDING: "Pending",
    BookingStatus.CONFIRMED: "Confirmed",
    BookingStatus.BLOCKED: "Blocked",
}

# Statuses that occupy the studio for conflict detection.
BOOKING_STATUS_OCCUPIES_SLOT: dict[BookingStatus, bool] = {
    BookingStatus.PENDING: True,
    BookingStatus.CONFIRMED: True,
    BookingStatus.BLOCKED: True,
}

_STORED_TO_DISPLAY: dict[BookingStatus, DisplayStatus] = {
    BookingStatus.PENDING: DisplayStatus.PENDING,
    BookingStatus.CONFIRMED: DisplayStatus.CONFIRMED,
    BookingStatus.BLOCKED: DisplayStatus.BLOCKED,
}

DISPLAY_STATUS_LABELS: dict[DisplayStatus, str] = {
    DisplayStatus.PENDING: "Pending",
    DisplayStatus.CONFIRMED: "Confirmed",
    DisplayStatus.BLOCKED: "Blocked",
    DisplayStatus.UPCOMING: "Upcoming",
    DisplayStatus.COMPLETED: "Completed",
}

DISPLAY_STATUS_BADGES: dict[DisplayStatus, str] = {
    DisplayStatus.PENDING: "warning",
    DisplayStatus.CONFIRMED: "success",
    DisplayStatus.BLOCKED: "muted",
    DisplayStatus.UPCOMING: "info",
    DisplayStatus.COMPLETED: "secondary",
}


def _assert_exhaustive(table: dict, enum_cls: type[Enum]) -> None:
    missing = set(enum_cls) - set(table)
    if missing:
        names = ", ".join(sorted(member.name for member in missing))
        raise AssertionError(f"{enum_cls.__name__} lookup table is missing: {names}")


for _table, _enum in (
    (BOOKING_KIND_LABELS, BookingKind),
    (BOOKING_STATUS_LABELS, BookingStatus),
    (BOOKING_STATUS_OCCUPIES_SLOT, BookingStatus),
    (_STORED_TO_DISPLAY, BookingStatus),
    (DISPLAY_STATUS_LABELS, DisplayStatus),
    (DISPLAY_STATUS_BADGES, DisplayStatus),
):
    _assert_exhaustive(_table, _enum)


def occupying_statuses() -> list[str]:
    return [status.value for status, occupies in BOOKING_STATUS_OCCUPIES_SLOT.items() if occupies]


def kind_label(kind: str) -> str:
    return BOOKING_KIND_LABELS[BookingKind(kind)]


@dataclass(frozen=True)
class StatusResolution:
    display_status: DisplayStatus
    is_upcoming: bool
    is_past: bool
    stored_status: BookingStatus

    @property
    def label(self) -> str:
        return DISPLAY_STATUS_LABELS[self.display_status]

    @property
    def badge(self) -> str:
        return DISPLAY_STATUS_BADGES[self.display_status]


def today_for(now: datetime | date, tz: tzinfo | None = None) -> date:
    """
    Calendar day of ``now``.

    Aware datetimes are converted to ``tz`` first, so a booking's "today"
    follows the studio's time zone rather than UTC.
    """
    if isinstance(now, datetime):
        if tz is not None and now.tzinfo is not None:
            now = now.astimezone(tz)
        return now.date()
    return now


def resolve(booking, now: datetime | date, tz: tzinfo | None = None) -> StatusResolution:
    """
    Derive the display status of ``booking`` at ``now``.

    ``booking`` needs ``date``, ``status`` and optionally ``is_blocked``.
    The comparison is by calendar day only: a confirmed booking later today
    is upcoming, and one from yesterday is completed whatever the hour.
    The function reads its arguments and nothing else.
    """
    today = today_for(now, tz)
    stored = BookingStatus(booking.status)
    blocked = stored is BookingStatus.BLOCKED or bool(getattr(booking, "is_blocked", False))
    in_past = booking.date < today

    if in_past and not blocked:
        return StatusResolution(DisplayStatus.COMPLETED, is_upcoming=False, is_past=True, stored_status=stored)

    if blocked:
        return StatusResolution(DisplayStatus.BLOCKED, is_upcoming=False, is_past=in_past, stored_status=stored)

    if stored is BookingStatus.CONFIRMED:
        return StatusResolution(DisplayStatus.UPCOMING, is_upcoming=True, is_past=False, stored_status=stored)

    return StatusResolution(_STORED_TO_DISPLAY[stored], is_upcoming=False, is_past=False, stored_status=stored)
