"""Notification model.

Defines a simple notification entity shown to users in the dashboard.
Notifications are created by domain event handlers (new venue inquiries,
signed documents) and consumed by recipients. Each notification can be
marked as read.
"""

from __future__ import annotations

from django.db import models  # type: ignore


class Notification(models.Model):
    """A message sent to a user about some event."""

    class Kind(models.TextChoices):
        BOOKING_APPROVAL = 'booking_approval', 'Booking approval'
        DOCUMENT_SIGNED = 'document_signed', 'Document signed'
        SIGNATURE_SENT = 'signature_sent', 'Signature sent'
        GENERAL = 'general', 'General'

    user = models.ForeignKey(
        'users.CustomUser', on_delete=models.CASCADE, related_name='notifications'
    )
    kind = models.CharField(max_length=32, choices=Kind.choices, default=Kind.GENERAL)
    title = models.CharField(max_length=255)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    # Same key for the same user means the same notification.
    dedupe_key = models.CharField(max_length=255, null=True, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['user', 'dedupe_key'], name='unique_notification_dedupe_key'),
        ]

    def __str__(self) -> str:
        return f"Notification to {self.user_id}: {self.title}"
