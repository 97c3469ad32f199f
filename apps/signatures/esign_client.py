"""
E-signature provider integration.

Thin client for an envelope-based e-signature REST API (DocuSign eSignature
v2.1 shaped). Without credentials, or with ``DEBUG`` on, envelopes are
emulated so bookings can be created end to end in development.
"""

import logging
import uuid

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

SIGNER_ROLE = "Signer"


class SignatureProviderError(Exception):
    """Custom exception for e-signature provider errors."""

    pass


def _is_emulated() -> bool:
    return bool(
        settings.DEBUG
        or not getattr(settings, "ESIGN_ACCESS_TOKEN", "")
        or not getattr(settings, "ESIGN_ACCOUNT_ID", "")
    )


def _envelopes_url() -> str:
    base_url = settings.ESIGN_API_BASE_URL.rstrip("/")
    return f"{base_url}/v2.1/accounts/{settings.ESIGN_ACCOUNT_ID}/envelopes"


def _headers() -> dict:
    return {
        "Authorization": f"Bearer {settings.ESIGN_ACCESS_TOKEN}",
        "Content-Type": "application/json",
    }


def create_envelope(
    recipient_email: str,
    recipient_name: str = "",
    *,
    document_type: str = "studio_rules",
    booking_id=None,
) -> dict:
    """
    Send the document template to the recipient for signing.

    Returns:
        dict: ``{"envelope_id": ..., "status": ...}`` with the provider's status
    """
    logger.info(f"Requesting {document_type} signature from {recipient_email} for booking {booking_id}")

    if _is_emulated():
        logger.warning("E-signature provider is emulated (DEBUG mode or missing credentials)")
        return {"envelope_id": f"emulated-{uuid.uuid4().hex}", "status": "sent"}

    payload = {
        "templateId": settings.ESIGN_TEMPLATE_ID,
        "templateRoles": [
            {
                "email": recipient_email,
                "name": recipient_name or recipient_email,
                "roleName": SIGNER_ROLE,
            }
        ],
        "emailSubject": "Please sign the studio rules",
        "customFields": {
            "textCustomFields": [
                {"name": "bookingId", "value": str(booking_id or ""), "show": "false"},
                {"name": "documentType", "value": document_type, "show": "false"},
            ]
        },
        "status": "sent",
    }

    try:
        response = requests.post(
            _envelopes_url(),
            json=payload,
            headers=_headers(),
            timeout=settings.ESIGN_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        result = response.json()
    except requests.exceptions.RequestException as e:
        logger.error(f"E-signature API request failed: {e}")
        raise SignatureProviderError(f"Failed to create envelope: {e}") from e
    except ValueError as e:
        raise SignatureProviderError(f"Unexpected envelope response: {e}") from e

    envelope_id = result.get("envelopeId")
    if not envelope_id:
        raise SignatureProviderError(f"Envelope response has no envelopeId: {result}")

    logger.info(f"Envelope {envelope_id} created with status {result.get('status')}")
    return {"envelope_id": envelope_id, "status": result.get("status", "sent")}


def get_envelope_status(envelope_id: str) -> str:
    """Return the provider's status string for ``envelope_id``."""
    if _is_emulated():
        logger.warning(f"E-signature provider is emulated, envelope {envelope_id} reported as sent")
        return "sent"

    try:
        response = requests.get(
            f"{_envelopes_url()}/{envelope_id}",
            headers=_headers(),
            timeout=settings.ESIGN_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        result = response.json()
    except requests.exceptions.RequestException as e:
        logger.error(f"E-signature status request for {envelope_id} failed: {e}")
        raise SignatureProviderError(f"Failed to get envelope status: {e}") from e
    except ValueError as e:
        raise SignatureProviderError(f"Unexpected envelope response: {e}") from e

    status = result.get("status")
    if not status:
        raise SignatureProviderError(f"Envelope {envelope_id} response has no status")
    return status
