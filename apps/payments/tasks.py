import logging

from celery import shared_task
from django.utils import timezone

from apps.notifications.tasks import send_expired_escrow_alert

from .models import Payment

logger = logging.getLogger(__name__)


@shared_task
def report_expired_escrow_holds() -> int:
    """
    Report rent payments still held after their escrow window.

    Only reports; releasing or refunding stays a manual admin decision.
    """
    expired = list(
        Payment.objects.filter(
            is_escrow=True,
            escrow_status="held",
            escrow_expires_at__lte=timezone.now(),
        )
        .order_by("escrow_expires_at")
        .values_list("id", flat=True)
    )
    if not expired:
        return 0

    logger.warning("%s escrow payment(s) held past expiry: %s", len(expired), ", ".join(str(pk) for pk in expired))
    send_expired_escrow_alert.delay([str(pk) for pk in expired])
    return len(expired)
