"""Signature request model."""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class SignatureRequest(models.Model):
    """
    An envelope sent to a client for a booking's documents.

    Requests are never deleted. Sending a new request for the same booking
    marks the outstanding ones as superseded by it.
    """

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        SENT = "sent", _("Sent")
        VIEWED = "viewed", _("Viewed")
        SIGNED = "signed", _("Signed")
        DECLINED = "declined", _("Declined")

    OUTSTANDING_STATUSES = (Status.PENDING, Status.SENT, Status.VIEWED)

    booking = models.ForeignKey(
        "studio.Booking",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="signature_requests",
    )
    client = models.ForeignKey(
        "clients.Client",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="signature_requests",
    )
    document_type = models.CharField(max_length=64, default="studio_rules")
    envelope_id = models.CharField(max_length=128, unique=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    recipient_email = models.EmailField()
    recipient_name = models.CharField(max_length=255, blank=True)
    signed_at = models.DateTimeField(null=True, blank=True)
    superseded_by = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="supersedes",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="signature_requests",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Signature request")
        verbose_name_plural = _("Signature requests")
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["status"])]

    def __str__(self) -> str:
        return f"{self.document_type} for booking {self.booking_id} ({self.status})"

    @property
    def is_outstanding(self) -> bool:
        return self.status in self.OUTSTANDING_STATUSES and self.superseded_by_id is None
