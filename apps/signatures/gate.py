"""
Signature gate.

Couples booking confirmation to the e-signature workflow: a new booking
with client contact details gets a studio rules envelope, and the
provider's completion event confirms the booking. Every transition is a
conditional UPDATE, so redelivered webhooks and concurrent polls change
state at most once.
"""

from __future__ import annotations

import logging

from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore

from apps.studio.domain.events import BookingCreated

from .esign_client import create_envelope, get_envelope_status
from .models import SignatureRequest

logger = logging.getLogger(__name__)

# Webhook event type -> request status
EVENT_STATUSES = {
    "envelope-sent": SignatureRequest.Status.SENT,
    "envelope-delivered": SignatureRequest.Status.VIEWED,
    "envelope-completed": SignatureRequest.Status.SIGNED,
    "envelope-declined": SignatureRequest.Status.DECLINED,
    "envelope-voided": SignatureRequest.Status.DECLINED,
}

# Provider envelope status -> request status
PROVIDER_STATUSES = {
    "created": SignatureRequest.Status.PENDING,
    "sent": SignatureRequest.Status.SENT,
    "delivered": SignatureRequest.Status.VIEWED,
    "completed": SignatureRequest.Status.SIGNED,
    "declined": SignatureRequest.Status.DECLINED,
    "voided": SignatureRequest.Status.DECLINED,
}

# Forward order for status updates other than completion
STATUS_PROGRESSION = (
    SignatureRequest.Status.PENDING,
    SignatureRequest.Status.SENT,
    SignatureRequest.Status.VIEWED,
    SignatureRequest.Status.DECLINED,
)


def request_signature(
    booking,
    recipient_email: str,
    recipient_name: str = "",
    *,
    created_by=None,
    document_type: str = "studio_rules",
) -> SignatureRequest:
    """
    Send ``document_type`` to the recipient and record the request.

    Outstanding requests for the same booking are superseded by the new one.
    Raises SignatureProviderError when the provider refuses the envelope.
    """
    from apps.notifications.models import Notification
    from apps.notifications.services import create_in_app_notification

    envelope = create_envelope(
        recipient_email,
        recipient_name,
        document_type=document_type,
        booking_id=booking.pk,
    )
    status = PROVIDER_STATUSES.get(envelope["status"], SignatureRequest.Status.SENT)

    with transaction.atomic():
        signature_request = SignatureRequest.objects.create(
            booking=booking,
            client_id=booking.client_id,
            document_type=document_type,
            envelope_id=envelope["envelope_id"],
            status=status,
            recipient_email=recipient_email,
            recipient_name=recipient_name,
            created_by=created_by,
        )
        superseded = (
            SignatureRequest.objects.filter(booking=booking, superseded_by__isnull=True)
            .exclude(pk=signature_request.pk)
            .exclude(status=SignatureRequest.Status.SIGNED)
            .update(superseded_by=signature_request)
        )

    if superseded:
        logger.info(f"Signature request {signature_request.pk} supersedes {superseded} older request(s)")
    logger.info(f"Signature request {signature_request.envelope_id} sent for booking {booking.pk}")

    if created_by is not None and booking.client_id:
        create_in_app_notification(
            created_by,
            "Signature Request Sent",
            f"Studio rules sent to {recipient_name or recipient_email} for signing",
            kind=Notification.Kind.SIGNATURE_SENT,
            data={"bookingId": booking.pk, "envelopeId": signature_request.envelope_id},
            dedupe_key=f"signature_sent:{signature_request.envelope_id}",
        )
    return signature_request


def request_signature_for_new_booking(event: BookingCreated) -> None:
    """Ask the new booking's client to sign; never fails the booking."""
    from apps.studio.models import Booking
    from apps.users.models import CustomUser

    if not event.recipient_email:
        return

    booking = Booking.objects.filter(pk=event.booking_id).first()
    if booking is None:
        logger.warning(f"Booking {event.booking_id} vanished before its signature request")
        return

    created_by = None
    if event.created_by_id is not None:
        created_by = CustomUser.objects.filter(pk=event.created_by_id).first()

    try:
        request_signature(booking, event.recipient_email, event.recipient_name, created_by=created_by)
    except Exception:
        logger.exception(f"Signature request for booking {event.booking_id} failed, booking stays pending")


def complete_signature(envelope_id: str) -> bool:
    """
    Mark the envelope signed and confirm its booking.

    Only the first call for an envelope changes anything: it confirms the
    booking and notifies staff. Returns whether this call made the change.
    """
    from apps.notifications.models import Notification
    from apps.notifications.services import notify_role
    from apps.studio.services import confirm_booking
    from apps.users.models import CustomUser

    with transaction.atomic():
        updated = (
            SignatureRequest.objects.filter(envelope_id=envelope_id)
            .exclude(status=SignatureRequest.Status.SIGNED)
            .update(status=SignatureRequest.Status.SIGNED, signed_at=timezone.now())
        )
        if not updated:
            logger.info(f"Envelope {envelope_id} already signed or unknown, nothing to do")
            return False

        signature_request = SignatureRequest.objects.get(envelope_id=envelope_id)
        if signature_request.booking_id is not None:
            confirm_booking(signature_request.booking_id, source="signature")

        notify_role(
            [CustomUser.RoleChoices.STAFF],
            "Document Signed",
            "Client signed the studio rules document",
            kind=Notification.Kind.DOCUMENT_SIGNED,
            data={"bookingId": signature_request.booking_id, "envelopeId": envelope_id},
            dedupe_key=f"document_signed:{envelope_id}",
        )

    logger.info(f"Envelope {envelope_id} signed, booking {signature_request.booking_id} confirmed")
    return True


def apply_status(envelope_id: str, status: str) -> bool:
    """
    Move a request forward to ``status``.

    ``signed`` goes through the completion transition. Requests only move
    along STATUS_PROGRESSION, so a late ``sent`` never undoes ``viewed`` and
    signed requests are never moved back. Returns whether anything changed.
    """
    if status == SignatureRequest.Status.SIGNED:
        return complete_signature(envelope_id)

    earlier = STATUS_PROGRESSION[: STATUS_PROGRESSION.index(status)]
    updated = SignatureRequest.objects.filter(envelope_id=envelope_id, status__in=earlier).update(status=status)
    if updated:
        logger.info(f"Envelope {envelope_id} moved to {status}")
    return bool(updated)


def handle_webhook_event(event_type: str, envelope_id: str) -> dict:
    """
    Apply a provider event to the matching request.

    Unknown envelopes and unrecognised events are acknowledged without
    changes so redelivery and out-of-order delivery are harmless.
    """
    if not SignatureRequest.objects.filter(envelope_id=envelope_id).exists():
        logger.info(f"Webhook {event_type} for unknown envelope {envelope_id}, ignoring")
        return {"envelope_id": envelope_id, "known": False, "changed": False}

    status = EVENT_STATUSES.get(event_type)
    if status is None:
        logger.info(f"Webhook event {event_type} for {envelope_id} does not change anything")
        return {"envelope_id": envelope_id, "known": True, "changed": False}

    changed = apply_status(envelope_id, status)
    return {"envelope_id": envelope_id, "known": True, "changed": changed, "status": str(status)}


def refresh_status(envelope_id: str) -> SignatureRequest:
    """Ask the provider for the envelope's status and apply it."""
    signature_request = SignatureRequest.objects.get(envelope_id=envelope_id)
    provider_status = get_envelope_status(envelope_id)
    status = PROVIDER_STATUSES.get(provider_status)
    if status is None:
        logger.warning(f"Unknown provider status {provider_status!r} for envelope {envelope_id}")
        return signature_request

    apply_status(envelope_id, status)
    signature_request.refresh_from_db()
    return signature_request


def outstanding_requests():
    """Requests still waiting on the client, newest first."""
    return (
        SignatureRequest.objects.filter(
            status__in=SignatureRequest.OUTSTANDING_STATUSES,
            superseded_by__isnull=True,
        )
        .select_related("booking", "client")
        .order_by("-created_at", "-id")
    )
