"""Studio booking models for Horizon Studio Ops."""

from __future__ import annotations

import secrets
from datetime import datetime

from django.conf import settings  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .domain.status import (
    BOOKING_KIND_LABELS,
    BOOKING_STATUS_LABELS,
    BookingKind,
    BookingStatus,
    StatusResolution,
    kind_label,
    resolve,
)


class Booking(models.Model):
    """A scheduled use, or administrative hold, of the studio."""

    class Kind(models.TextChoices):
        PHOTO_SHOOT = BookingKind.PHOTO_SHOOT.value, BOOKING_KIND_LABELS[BookingKind.PHOTO_SHOOT]
        VIDEO = BookingKind.VIDEO.value, BOOKING_KIND_LABELS[BookingKind.VIDEO]
        GALLERY_SHOW = BookingKind.GALLERY_SHOW.value, BOOKING_KIND_LABELS[BookingKind.GALLERY_SHOW]
        RENTAL = BookingKind.RENTAL.value, BOOKING_KIND_LABELS[BookingKind.RENTAL]
        OTHER = BookingKind.OTHER.value, BOOKING_KIND_LABELS[BookingKind.OTHER]

    class Status(models.TextChoices):
        PENDING = BookingStatus.PENDING.value, BOOKING_STATUS_LABELS[BookingStatus.PENDING]
        CONFIRMED = BookingStatus.CONFIRMED.value, BOOKING_STATUS_LABELS[BookingStatus.CONFIRMED]
        BLOCKED = BookingStatus.BLOCKED.value, BOOKING_STATUS_LABELS[BookingStatus.BLOCKED]

    date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    booking_kind = models.CharField(max_length=20, choices=Kind.choices, default=Kind.PHOTO_SHOOT)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    is_blocked = models.BooleanField(
        default=False,
        help_text=_("Administrative hold that occupies the slot without being a real event."),
    )
    client = models.ForeignKey(
        "clients.Client",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )
    event_name = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    equipment_notes = models.TextField(blank=True)
    booked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="studio_bookings",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Studio booking")
        verbose_name_plural = _("Studio bookings")
        ordering = ["date", "start_time", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F("start_time")),
                name="studio_booking_ends_after_start",
            ),
        ]
        indexes = [
            models.Index(fields=["date", "start_time"]),
            models.Index(fields=["status"]),
        ]

    def __str__(self) -> str:
        return f"{self.title} on {self.date} {self.start_time:%H:%M}-{self.end_time:%H:%M}"

    def clean(self) -> None:
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError(_("End time must be after start time on the same day."))

    @property
    def title(self) -> str:
        return self.event_name or kind_label(self.booking_kind)

    @property
    def occupies_as_block(self) -> bool:
        return self.is_blocked or self.status == self.Status.BLOCKED

    def resolve_status(self, now: datetime | None = None) -> StatusResolution:
        return resolve(self, now or timezone.now(), tz=timezone.get_current_timezone())


class StudioDayLock(models.Model):
    """
    One row per calendar date.

    Writers lock the row for the booking's date with ``select_for_update``
    so check-then-write for that date runs one transaction at a time.
    """

    date = models.DateField(unique=True)

    class Meta:
        verbose_name = _("Studio day lock")
        verbose_name_plural = _("Studio day locks")

    def __str__(self) -> str:
        return f"Lock {self.date}"


class OperationsTask(models.Model):
    """Staff checklist item created when a booking is confirmed."""

    class TaskType(models.TextChoices):
        ENTRY_INSTRUCTIONS = "entry_instructions", _("Send Entry Instructions to Client")
        EQUIPMENT_CHECK = "equipment_check", _("Pre-shoot Equipment Check")
        SPACE_RESET = "space_reset", _("Post-shoot Space Reset & Cleaning")

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        DONE = "done", _("Done")

    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name="operations_tasks")
    task_type = models.CharField(max_length=32, choices=TaskType.choices)
    title = models.CharField(max_length=255)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="operations_tasks",
    )
    due_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Operations task")
        verbose_name_plural = _("Operations tasks")
        ordering = ["booking", "id"]
        constraints = [
            models.UniqueConstraint(fields=["booking", "task_type"], name="unique_operations_task_per_booking"),
        ]

    def __str__(self) -> str:
        return f"{self.title} (booking {self.booking_id})"


class PublicCalendarToken(models.Model):
    """Opaque token exposing a read-only busy/free view of the studio."""

    token = models.CharField(max_length=64, unique=True, editable=False)
    label = models.CharField(max_length=120, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="public_calendar_tokens",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Public calendar token")
        verbose_name_plural = _("Public calendar tokens")

    def __str__(self) -> str:
        return self.label or f"Token {self.token[:6]}…"

    def save(self, *args, **kwargs):  # type: ignore
        if not self.token:
            self.token = self.generate_token()
        super().save(*args, **kwargs)

    @staticmethod
    def generate_token() -> str:
        return secrets.token_urlsafe(24)

    @property
    def is_expired(self) -> bool:
        return bool(self.expires_at and timezone.now() >= self.expires_at)
