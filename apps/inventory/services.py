"""Domain services for equipment reservations."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, time
from typing import TYPE_CHECKING, Iterable, Iterator

from django.db import IntegrityError, transaction  # type: ignore
from django.db.models import Q  # type: ignore

from apps.studio.locking import lock_days
from shared.domain.value_objects import TimeWindow

from .advisory import AdvisoryRequest, AdvisoryService, get_advisory
from .constraints import RESERVATION_OVERLAP_CONSTRAINT
from .models import EquipmentItem, Reservation

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from apps.studio.models import Booking

logger = logging.getLogger(__name__)


class EquipmentUnavailableError(Exception):
    """Raised when requested equipment is already reserved for an overlapping window."""

    def __init__(self, unavailable: Iterable[int] = (), names: Iterable[str] = ()):
        self.unavailable = list(unavailable)
        self.names = list(names)
        listed = ", ".join(self.names) or ", ".join(str(item_id) for item_id in self.unavailable)
        super().__init__(f"Equipment is not available for this time: {listed}" if listed else "Equipment is not available for this time.")


class IneligibleForEquipmentError(Exception):
    """Raised when equipment is requested for an administrative hold."""


@dataclass(frozen=True)
class AvailabilityReport:
    unavailable: list[int] = field(default_factory=list)
    unavailable_names: list[str] = field(default_factory=list)
    suggestion: str | None = None
    alternatives: list[int] | None = None

    @property
    def all_available(self) -> bool:
        return not self.unavailable


def _dedupe(item_ids: Iterable[int]) -> list[int]:
    seen: dict[int, None] = {}
    for item_id in item_ids:
        seen.setdefault(int(item_id), None)
    return list(seen)


def find_unavailable(
    booking_date: date,
    start_time: time,
    end_time: time,
    item_ids: Iterable[int],
    *,
    exclude_booking_id=None,
) -> list[int]:
    """
    Requested items already reserved for a window overlapping [start_time, end_time).

    Same half-open test as booking conflicts; result follows request order.
    """
    TimeWindow(booking_date, start_time, end_time)
    requested = _dedupe(item_ids)
    if not requested:
        return []

    overlapping_filter = Q(start_time__lt=end_time) & Q(end_time__gt=start_time)
    reservations_qs = Reservation.objects.filter(
        date=booking_date,
        equipment_id__in=requested,
    ).filter(overlapping_filter)
    if exclude_booking_id is not None:
        reservations_qs = reservations_qs.exclude(booking_id=exclude_booking_id)

    taken = set(reservations_qs.values_list("equipment_id", flat=True))
    return [item_id for item_id in requested if item_id in taken]


def _names_for(item_ids: list[int]) -> list[str]:
    names = dict(EquipmentItem.objects.filter(pk__in=item_ids).values_list("id", "name"))
    return [names.get(item_id, str(item_id)) for item_id in item_ids]


def check_availability(
    booking_date: date,
    start_time: time,
    end_time: time,
    booking_kind: str,
    item_ids: Iterable[int],
    *,
    exclude_booking_id=None,
    advisory: AdvisoryService | None = None,
) -> AvailabilityReport:
    """
    Report which requested items are taken, with an optional suggestion.

    The advisory collaborator is asked only when something is unavailable.
    It is best effort: any error it raises is logged and the report is
    returned without a suggestion.
    """
    requested = _dedupe(item_ids)
    unavailable = find_unavailable(
        booking_date, start_time, end_time, requested, exclude_booking_id=exclude_booking_id
    )
    if not unavailable:
        return AvailabilityReport()

    names = _names_for(unavailable)
    request = AdvisoryRequest(
        date=booking_date,
        start_time=start_time,
        end_time=end_time,
        booking_kind=booking_kind,
        requested_item_ids=tuple(requested),
        unavailable_item_ids=tuple(unavailable),
        unavailable_names=tuple(names),
    )

    try:
        suggestion = (advisory or get_advisory()).suggest(request)
    except Exception as exc:
        logger.warning(f"Equipment advisory failed, continuing without a suggestion: {exc}")
        suggestion = None

    if suggestion is None:
        return AvailabilityReport(unavailable=unavailable, unavailable_names=names)
    return AvailabilityReport(
        unavailable=unavailable,
        unavailable_names=names,
        suggestion=suggestion.text or None,
        alternatives=list(suggestion.alternative_item_ids),
    )


@contextmanager
def storage_conflicts_as_errors(item_ids: list[int]) -> Iterator[None]:
    """Translate the database overlap constraint into EquipmentUnavailableError."""
    try:
        with transaction.atomic():
            yield
    except IntegrityError as exc:
        if RESERVATION_OVERLAP_CONSTRAINT not in str(exc):
            raise
        logger.warning(f"Equipment overlap rejected by the database: {exc}")
        raise EquipmentUnavailableError(item_ids, _names_for(item_ids)) from exc


def reserve_equipment(booking: "Booking", item_ids: Iterable[int]) -> list[Reservation]:
    """
    Reserve ``item_ids`` for the booking's window.

    All or nothing: if any item is taken, nothing is reserved and
    EquipmentUnavailableError lists every taken item. Items the booking
    already holds are left as they are.
    """
    if booking.occupies_as_block:
        raise IneligibleForEquipmentError("Blocked slots cannot reserve equipment.")

    requested = _dedupe(item_ids)
    if not requested:
        return []

    with transaction.atomic():
        lock_days(booking.date)

        existing = set(booking.reservations.values_list("equipment_id", flat=True))
        wanted = [item_id for item_id in requested if item_id not in existing]
        known = set(EquipmentItem.objects.filter(pk__in=wanted).values_list("id", flat=True))
        missing = [item_id for item_id in wanted if item_id not in known]
        if missing:
            raise EquipmentItem.DoesNotExist(f"Unknown equipment: {missing}")

        unavailable = find_unavailable(
            booking.date, booking.start_time, booking.end_time, wanted, exclude_booking_id=booking.pk
        )
        if unavailable:
            raise EquipmentUnavailableError(unavailable, _names_for(unavailable))

        with storage_conflicts_as_errors(wanted):
            created = Reservation.objects.bulk_create(
                [
                    Reservation(
                        booking=booking,
                        equipment_id=item_id,
                        date=booking.date,
                        start_time=booking.start_time,
                        end_time=booking.end_time,
                    )
                    for item_id in wanted
                ]
            )

    if created:
        logger.info(f"Reserved equipment {wanted} for booking {booking.pk}")
    return created


def release_equipment(booking: "Booking", item_ids: Iterable[int] | None = None) -> int:
    """Drop the booking's reservations, or only those for ``item_ids``."""
    reservations_qs = Reservation.objects.filter(booking=booking)
    if item_ids is not None:
        item_ids = _dedupe(item_ids)
        if not item_ids:
            return 0
        reservations_qs = reservations_qs.filter(equipment_id__in=item_ids)

    deleted, _ = reservations_qs.delete()
    if deleted:
        logger.info(f"Released {deleted} equipment reservation(s) for booking {booking.pk}")
    return deleted


def sync_reservation_window(booking: "Booking") -> int:
    """
    Move the booking's reservations to its current date and times.

    Raises EquipmentUnavailableError, leaving reservations untouched, if
    any reserved item is taken in the new window.
    """
    with transaction.atomic():
        lock_days(booking.date)
        item_ids = list(booking.reservations.values_list("equipment_id", flat=True))
        if not item_ids:
            return 0

        unavailable = find_unavailable(
            booking.date, booking.start_time, booking.end_time, item_ids, exclude_booking_id=booking.pk
        )
        if unavailable:
            raise EquipmentUnavailableError(unavailable, _names_for(unavailable))

        with storage_conflicts_as_errors(item_ids):
            updated = Reservation.objects.filter(booking=booking).update(
                date=booking.date,
                start_time=booking.start_time,
                end_time=booking.end_time,
            )

    logger.info(f"Moved {updated} equipment reservation(s) with booking {booking.pk}")
    return updated


def reserved_equipment_for(booking_ids: Iterable[int]) -> dict[int, list[dict]]:
    """Equipment held by each booking, for calendar annotations."""
    reserved: dict[int, list[dict]] = {}
    rows = (
        Reservation.objects.filter(booking_id__in=list(booking_ids))
        .select_related("equipment")
        .order_by("equipment__name")
    )
    for reservation in rows:
        reserved.setdefault(reservation.booking_id, []).append(
            {"id": reservation.equipment_id, "name": reservation.equipment.name}
        )
    return reserved
