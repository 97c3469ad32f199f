"""Equipment catalogue and reservation models."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class EquipmentItem(models.Model):
    """
    A piece of studio equipment.

    ``status`` is a coarse condition flag kept by staff. It is independent of
    reservations: an item can be ``available`` and still reserved for a
    particular window.
    """

    class Status(models.TextChoices):
        AVAILABLE = "available", _("Available")
        IN_USE = "in_use", _("In use")
        MAINTENANCE = "maintenance", _("Maintenance")

    name = models.CharField(max_length=255)
    category = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.AVAILABLE)
    notes = models.TextField(blank=True)
    tags = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Equipment item")
        verbose_name_plural = _("Equipment items")
        ordering = ["category", "name"]

    def __str__(self) -> str:
        return f"{self.name} ({self.category})" if self.category else self.name


class Reservation(models.Model):
    """An equipment item held for one booking's window."""

    booking = models.ForeignKey("studio.Booking", on_delete=models.CASCADE, related_name="reservations")
    equipment = models.ForeignKey(EquipmentItem, on_delete=models.CASCADE, related_name="reservations")
    date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Equipment reservation")
        verbose_name_plural = _("Equipment reservations")
        ordering = ["date", "start_time", "id"]
        constraints = [
            models.UniqueConstraint(fields=["booking", "equipment"], name="unique_equipment_per_booking"),
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F("start_time")),
                name="reservation_ends_after_start",
            ),
        ]
        indexes = [models.Index(fields=["equipment", "date"])]

    def __str__(self) -> str:
        return f"{self.equipment} for booking {self.booking_id}"
