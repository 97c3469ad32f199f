"""Per-day write serialisation for the studio calendar."""

from __future__ import annotations

from datetime import date

from django.db import transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def lock_days(*days: date) -> None:
    """
    Lock the StudioDayLock rows for ``days``.

    Must be called inside ``transaction.atomic()``; the locks are held until
    that transaction ends. Dates are locked in ascending order so two
    writers moving bookings between the same days cannot deadlock.
    """
    from .models import StudioDayLock

    for day in sorted(set(days)):
        StudioDayLock.objects.get_or_create(date=day)
        list(_lock_queryset_if_possible(StudioDayLock.objects.filter(date=day)))
