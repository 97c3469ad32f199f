"""Domain services for studio booking workflows."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, time
from typing import Iterable, Iterator

from django.db import IntegrityError, transaction  # type: ignore
from django.db.models import Q  # type: ignore

from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import MonthRange, TimeWindow

from .constraints import BOOKING_OVERLAP_CONSTRAINT
from .domain.events import BookingConfirmed, BookingCreated
from .domain.status import occupying_statuses
from .locking import lock_days
from .models import Booking, OperationsTask

logger = logging.getLogger(__name__)

BOOKING_FIELDS = (
    "date",
    "start_time",
    "end_time",
    "booking_kind",
    "status",
    "is_blocked",
    "client",
    "event_name",
    "notes",
    "equipment_notes",
)


class BookingConflictError(Exception):
    """Raised when the studio is already taken for the requested window."""

    def __init__(self, conflicting: Iterable[str] = (), message: str | None = None):
        self.conflicting = list(conflicting)
        if message is None:
            if self.conflicting:
                message = "The studio is already booked for this time: " + ", ".join(self.conflicting)
            else:
                message = "The studio is already booked for this time."
        super().__init__(message)


@dataclass(frozen=True)
class ConflictReport:
    has_conflict: bool
    conflicting: list[str] = field(default_factory=list)


def _occupying_filter() -> Q:
    return Q(status__in=occupying_statuses()) | Q(is_blocked=True)


def detect_conflicts(
    booking_date: date,
    start_time: time,
    end_time: time,
    *,
    exclude_booking_id=None,
) -> ConflictReport:
    """
    Report every booking on ``booking_date`` overlapping [start_time, end_time).

    Touching windows (one ends at 12:00, the next starts at 12:00) do not
    overlap. ``exclude_booking_id`` removes the booking being edited from
    the comparison. Raises InvalidTimeWindow for empty or reversed windows.
    """
    TimeWindow(booking_date, start_time, end_time)

    overlapping_filter = Q(start_time__lt=end_time) & Q(end_time__gt=start_time)

    bookings_qs = (
        Booking.objects.filter(date=booking_date)
        .filter(_occupying_filter())
        .filter(overlapping_filter)
        .order_by("start_time", "id")
    )
    if exclude_booking_id is not None:
        bookings_qs = bookings_qs.exclude(pk=exclude_booking_id)

    conflicting = [booking.title for booking in bookings_qs]
    return ConflictReport(has_conflict=bool(conflicting), conflicting=conflicting)


def ensure_slot_is_free(booking_date: date, start_time: time, end_time: time, *, exclude_booking_id=None) -> None:
    report = detect_conflicts(booking_date, start_time, end_time, exclude_booking_id=exclude_booking_id)
    if report.has_conflict:
        raise BookingConflictError(report.conflicting)


@contextmanager
def storage_conflicts_as_errors() -> Iterator[None]:
    """Translate the database overlap constraint into BookingConflictError."""
    try:
        with transaction.atomic():
            yield
    except IntegrityError as exc:
        if BOOKING_OVERLAP_CONSTRAINT not in str(exc):
            raise
        logger.warning(f"Booking overlap rejected by the database: {exc}")
        raise BookingConflictError(message="The studio was booked for this time by someone else. Please pick another slot.") from exc


def create_booking(
    data: dict,
    *,
    equipment_ids: Iterable[int] = (),
    booked_by=None,
    recipient_email: str = "",
    recipient_name: str = "",
) -> Booking:
    """
    Write a new booking after re-checking the slot under the day lock.

    Holds (``is_blocked``) are written as status blocked and cannot take
    equipment. Administrator notification and the signature request run
    after commit through the BookingCreated handlers.
    """
    from apps.inventory.services import reserve_equipment

    values = {key: value for key, value in data.items() if key in BOOKING_FIELDS}
    if values.get("is_blocked") or values.get("status") == Booking.Status.BLOCKED:
        values["is_blocked"] = True
        values["status"] = Booking.Status.BLOCKED
    equipment_ids = list(equipment_ids)
    if equipment_ids and values.get("is_blocked"):
        from apps.inventory.services import IneligibleForEquipmentError

        raise IneligibleForEquipmentError("Blocked slots cannot reserve equipment.")

    with DjangoUnitOfWork() as uow:
        lock_days(values["date"])
        ensure_slot_is_free(values["date"], values["start_time"], values["end_time"])

        with storage_conflicts_as_errors():
            booking = Booking.objects.create(booked_by=booked_by, **values)

        if equipment_ids:
            reserve_equipment(booking, equipment_ids)

        if not booking.occupies_as_block:
            uow.record(
                BookingCreated(
                    booking_id=booking.pk,
                    date=booking.date,
                    start_time=booking.start_time,
                    end_time=booking.end_time,
                    title=booking.title,
                    created_by_id=getattr(booked_by, "pk", None),
                    client_id=booking.client_id,
                    recipient_email=recipient_email,
                    recipient_name=recipient_name,
                )
            )
        if booking.status == Booking.Status.CONFIRMED:
            uow.record(BookingConfirmed(booking_id=booking.pk, source="manual"))

    logger.info(f"Booking {booking.pk} created for {booking.date} {booking.start_time}-{booking.end_time}")
    return booking


def update_booking(booking: Booking, changes: dict, *, equipment_ids: Iterable[int] | None = None) -> Booking:
    """
    Apply ``changes`` to ``booking``, re-checking the new window without self-conflict.

    A move locks both the old and the new day and carries the booking's
    equipment reservations along. ``equipment_ids`` replaces the reserved
    set when given.
    """
    from apps.inventory.services import (
        IneligibleForEquipmentError,
        release_equipment,
        reserve_equipment,
        sync_reservation_window,
    )

    values = {key: value for key, value in changes.items() if key in BOOKING_FIELDS}
    if values.get("is_blocked") or values.get("status") == Booking.Status.BLOCKED:
        values["is_blocked"] = True
        values["status"] = Booking.Status.BLOCKED
    elif "status" in values and "is_blocked" not in values:
        # Releasing a hold back to a real booking
        values["is_blocked"] = False

    with DjangoUnitOfWork() as uow:
        old_date = booking.date
        new_date = values.get("date", booking.date)
        lock_days(old_date, new_date)

        booking.refresh_from_db()
        previous_status = booking.status
        if "is_blocked" in values and not values["is_blocked"] and "status" not in values:
            if previous_status == Booking.Status.BLOCKED:
                # Releasing a hold without naming a status
                values["status"] = Booking.Status.PENDING
        previous_window = (booking.date, booking.start_time, booking.end_time)

        for key, value in values.items():
            setattr(booking, key, value)

        ensure_slot_is_free(booking.date, booking.start_time, booking.end_time, exclude_booking_id=booking.pk)

        with storage_conflicts_as_errors():
            booking.save()

        if booking.occupies_as_block:
            if equipment_ids:
                raise IneligibleForEquipmentError("Blocked slots cannot reserve equipment.")
            release_equipment(booking)
        else:
            if (booking.date, booking.start_time, booking.end_time) != previous_window:
                sync_reservation_window(booking)
            if equipment_ids is not None:
                wanted = set(equipment_ids)
                current = set(booking.reservations.values_list("equipment_id", flat=True))
                release_equipment(booking, current - wanted)
                reserve_equipment(booking, [item_id for item_id in equipment_ids if item_id not in current])

        if booking.status == Booking.Status.CONFIRMED and previous_status != Booking.Status.CONFIRMED:
            uow.record(BookingConfirmed(booking_id=booking.pk, source="manual"))

    logger.info(f"Booking {booking.pk} updated")
    return booking


def confirm_booking(booking_id: int, *, source: str = "manual") -> bool:
    """
    Move a booking to confirmed if it is not confirmed already.

    The transition is a single conditional UPDATE, so concurrent callers
    (a staff override racing a signature webhook) confirm at most once.
    Holds are never confirmed. Returns whether this call made the change.
    """
    with DjangoUnitOfWork() as uow:
        updated = (
            Booking.objects.filter(pk=booking_id, is_blocked=False)
            .exclude(status__in=[Booking.Status.CONFIRMED, Booking.Status.BLOCKED])
            .update(status=Booking.Status.CONFIRMED)
        )
        if updated:
            uow.record(BookingConfirmed(booking_id=booking_id, source=source))

    if updated:
        logger.info(f"Booking {booking_id} confirmed ({source})")
    else:
        logger.info(f"Booking {booking_id} not confirmed by {source}: already confirmed, blocked or missing")
    return bool(updated)


def block_booking(booking: Booking) -> Booking:
    """Turn a booking into an administrative hold and free its equipment."""
    return update_booking(booking, {"status": Booking.Status.BLOCKED, "is_blocked": True})


def ensure_operations_tasks(booking: Booking) -> list[OperationsTask]:
    """
    Create the staff checklist for a confirmed booking.

    Existing items are kept as they are, so repeated confirmation never
    duplicates the checklist.
    """
    from apps.users.models import CustomUser

    assignee = CustomUser.objects.with_role(CustomUser.RoleChoices.STAFF).order_by("date_joined", "id").first()
    tasks = []
    for task_type in OperationsTask.TaskType:
        task, created = OperationsTask.objects.get_or_create(
            booking=booking,
            task_type=task_type.value,
            defaults={
                "title": str(task_type.label),
                "assigned_to": assignee,
                "due_date": booking.date,
            },
        )
        if created:
            logger.debug(f"Operations task {task_type.value} created for booking {booking.pk}")
        tasks.append(task)
    return tasks


def busy_windows(month: MonthRange) -> list[dict]:
    """Occupied windows in ``month`` without names or clients."""
    bookings = (
        Booking.objects.filter(date__gte=month.start, date__lte=month.end)
        .filter(_occupying_filter())
        .order_by("date", "start_time")
        .values_list("date", "start_time", "end_time")
    )
    return [
        {"date": day.isoformat(), "start_time": start.strftime("%H:%M"), "end_time": end.strftime("%H:%M")}
        for day, start, end in bookings
    ]
