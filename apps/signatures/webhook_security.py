"""Authentication of e-signature webhook deliveries."""

import base64
import hashlib
import hmac
import logging

from django.conf import settings

logger = logging.getLogger(__name__)

# The provider sends one header per active HMAC key.
SIGNATURE_HEADERS = tuple(f"HTTP_X_DOCUSIGN_SIGNATURE_{n}" for n in range(1, 6))


class WebhookAuthenticationError(Exception):
    """Raised when a webhook delivery cannot be authenticated."""

    pass


def compute_signature(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def verify_webhook(request) -> None:
    """
    Authenticate the raw request body against the configured HMAC secret.

    With no secret configured the outcome depends on
    ``ESIGN_WEBHOOK_REQUIRE_SIGNATURE``: reject, or accept with a warning.
    """
    secret = getattr(settings, "ESIGN_WEBHOOK_SECRET", "")
    if not secret:
        if getattr(settings, "ESIGN_WEBHOOK_REQUIRE_SIGNATURE", True):
            raise WebhookAuthenticationError("Webhook secret is not configured")
        logger.warning("ESIGN_WEBHOOK_SECRET is not set, accepting unauthenticated e-signature webhook")
        return

    provided = [request.META[header] for header in SIGNATURE_HEADERS if request.META.get(header)]
    if not provided:
        raise WebhookAuthenticationError("Missing signature header")

    expected = compute_signature(request.body, secret)
    if not any(hmac.compare_digest(expected, signature.strip()) for signature in provided):
        raise WebhookAuthenticationError("Signature mismatch")
