import logging

from celery import shared_task

from .esign_client import SignatureProviderError
from .gate import outstanding_requests, refresh_status

logger = logging.getLogger(__name__)


@shared_task(name="signatures.refresh_outstanding_envelopes")
def refresh_outstanding_envelopes():
    """Poll the provider for envelopes whose webhook may have been missed."""
    envelope_ids = list(outstanding_requests().values_list("envelope_id", flat=True))
    refreshed = 0
    failed = 0
    for envelope_id in envelope_ids:
        try:
            refresh_status(envelope_id)
            refreshed += 1
        except SignatureProviderError as e:
            failed += 1
            logger.warning(f"Could not refresh envelope {envelope_id}: {e}")

    logger.info(f"Refreshed {refreshed} outstanding envelope(s), {failed} failed")
    return {"refreshed": refreshed, "failed": failed}
