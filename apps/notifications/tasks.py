import logging

from celery import shared_task
from django.conf import settings

from .services import notify, notify_admins

logger = logging.getLogger(__name__)


def _money(currency: str, amount: int) -> str:
    return f"{currency} {amount / 100:,.2f}"


@shared_task
def send_payment_received(payment_id: str) -> None:
    from apps.payments.models import Payment

    payment = Payment.objects.select_related("application__client", "application__landlord").filter(pk=payment_id).first()
    if payment is None:
        return
    application = payment.application
    amount = _money(payment.currency, payment.amount)
    escrow_note = ""
    if payment.is_escrow:
        escrow_note = f" Funds are held in escrow until {payment.escrow_expires_at:%Y-%m-%d} pending the property visit and document handover."

    for user, kind, title, body in (
        (
            application.client,
            "payment_success",
            "Payment received",
            f"Your payment of {amount} for {application.property_title} was successful.{escrow_note}",
        ),
        (
            application.landlord,
            "payment_received",
            "Payment Received",
            f"{application.client.full_name or 'A client'} has paid {amount} for {application.property_title}.{escrow_note}",
        ),
    ):
        try:
            notify(user, kind, title, body)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to send %s notification for payment %s", kind, payment_id)

    notify_admins(
        "payment_received",
        "New Payment Received",
        f"{amount} received for {application.property_title} ({payment.get_payment_type_display()}).",
    )


@shared_task
def send_payment_failed(payment_id: str) -> None:
    from apps.payments.models import Payment

    payment = Payment.objects.select_related("application__client").filter(pk=payment_id).first()
    if payment is None:
        return
    try:
        notify(
            payment.application.client,
            "payment_failed",
            "Payment failed",
            f"Your payment of {_money(payment.currency, payment.amount)} for {payment.application.property_title} "
            f"could not be processed: {payment.failure_reason or 'Payment processing failed'}.",
        )
    except Exception:  # noqa: BLE001
        logger.exception("Failed to send payment failed notification for %s", payment_id)


@shared_task
def send_escrow_released(payment_id: str) -> None:
    from apps.payments.models import Payment

    payment = Payment.objects.select_related("application__landlord").filter(pk=payment_id).first()
    if payment is None:
        return
    try:
        notify(
            payment.application.landlord,
            "escrow_released",
            "Escrow released",
            f"{_money(payment.currency, payment.landlord_net_amount or 0)} from {payment.application.property_title} "
            f"is now available in your balance (commission {_money(payment.currency, payment.commission_amount)}).",
        )
    except Exception:  # noqa: BLE001
        logger.exception("Failed to send escrow release notification for %s", payment_id)


@shared_task
def send_payout_status(payout_request_id: str) -> None:
    from apps.payouts.models import PayoutRequest

    payout = PayoutRequest.objects.select_related("landlord").filter(pk=payout_request_id).first()
    if payout is None:
        return
    body = f"Your payout request of {_money(payout.currency, payout.amount)} is now {payout.status}."
    reason = payout.rejection_reason or payout.failure_reason
    if reason:
        body += f" Reason: {reason}"
    try:
        notify(payout.landlord, f"payout_{payout.status}", "Payout update", body)
    except Exception:  # noqa: BLE001
        logger.exception("Failed to send payout notification for %s", payout_request_id)


@shared_task
def send_expired_escrow_alert(payment_ids: list[str]) -> int:
    if not payment_ids:
        return 0
    return notify_admins(
        "escrow_expired",
        "Escrow holds past expiry",
        f"{len(payment_ids)} escrow payment(s) are past their hold window and still held. "
        f"Review them at {settings.FRONTEND_BASE_URL}/dashboard/admin/transactions.",
    )
