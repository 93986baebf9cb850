import logging

from celery import shared_task

from core.exceptions import DomainError

from .models import PayoutRequest
from .services import sync_transfer_status

logger = logging.getLogger(__name__)


@shared_task
def sync_processing_payouts() -> dict:
    """Poll the payment rail for Stripe transfers still in processing."""
    results = {"checked": 0, "completed": 0, "failed": 0, "errors": 0}
    pending = PayoutRequest.objects.filter(
        status="processing",
        payment_method="stripe_connect",
        transfer_reference__isnull=False,
    ).values_list("id", flat=True)

    for payout_id in pending:
        results["checked"] += 1
        try:
            payout = sync_transfer_status(payout_id)
        except DomainError:
            results["errors"] += 1
            logger.exception("Failed to sync transfer status for payout %s", payout_id)
            continue
        if payout.status in ("completed", "failed"):
            results[payout.status] += 1

    if results["checked"]:
        logger.info("Payout transfer sync: %s", results)
    return results
