from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from apps.accounts.services import create_or_get_account, update_balance
from apps.audit.services import create_audit_log, log_commission_calculation
from apps.commissions.calculator import calculate_commission, calculate_net_amount
from apps.commissions.models import PlatformSettings
from apps.notifications.services import dispatch_after_commit
from apps.notifications.tasks import send_escrow_released
from core.exceptions import InvalidTransition

from .models import Payment
from .rail import get_payment_rail

logger = logging.getLogger(__name__)


def _lock(payment) -> Payment:
    pk = payment.pk if isinstance(payment, Payment) else payment
    return Payment.objects.select_for_update().select_related("application").get(pk=pk)


def _require_held(payment: Payment, action: str) -> None:
    if not payment.is_escrow or payment.escrow_status != "held":
        raise InvalidTransition(f"Cannot {action}: escrow is {payment.escrow_state}")


def _confirm(payment, actor, field: str) -> Payment:
    with transaction.atomic():
        locked = _lock(payment)
        _require_held(locked, "confirm release condition")
        if not getattr(locked, field):
            setattr(locked, field, True)
            locked.save(update_fields=[field, "updated_at"])
            logger.info("Payment %s: %s confirmed by %s", locked.pk, field, getattr(actor, "pk", None))
    return locked


def confirm_property_visit(payment, actor) -> Payment:
    return _confirm(payment, actor, "property_visited")


def confirm_documents_received(payment, actor) -> Payment:
    return _confirm(payment, actor, "documents_received")


def release_escrow(payment, actor) -> Payment:
    """
    Release held funds to the landlord's available balance.

    Commission uses the rate in effect now, not the one at payment time.
    """
    with transaction.atomic():
        locked = _lock(payment)
        _require_held(locked, "release escrow")
        if locked.status != "completed":
            raise InvalidTransition(f"Cannot release escrow on a {locked.status} payment")
        missing = locked.missing_release_conditions()
        if missing:
            raise InvalidTransition(f"Release conditions not met: {', '.join(missing)}")

        rate = PlatformSettings.objects.get_current().commission_rate
        commission = calculate_commission(locked.amount, rate)
        net = calculate_net_amount(locked.amount, rate, locked.escrow_interest)
        landlord = locked.application.landlord
        account = create_or_get_account(landlord)

        locked.escrow_status = "released"
        locked.escrow_released_at = timezone.now()
        locked.released_by = actor
        locked.commission_rate = rate
        locked.commission_amount = commission
        locked.landlord_net_amount = net
        locked.landlord_account = account
        locked.save(
            update_fields=[
                "escrow_status",
                "escrow_released_at",
                "released_by",
                "commission_rate",
                "commission_amount",
                "landlord_net_amount",
                "landlord_account",
                "updated_at",
            ]
        )

        update_balance(landlord, locked.amount, commission, net)
        log_commission_calculation(actor, locked, landlord)
        create_audit_log(
            "escrow_released",
            entity_type="Payment",
            entity_id=locked.pk,
            user=actor,
            details={"net_amount": net, "commission_amount": commission},
        )
        dispatch_after_commit(send_escrow_released, str(locked.pk))

    logger.info(
        "Released escrow for payment %s: gross=%s commission=%s net=%s",
        locked.pk,
        locked.amount,
        commission,
        net,
    )
    return locked


def refund_escrow(payment, actor, reason: str) -> Payment:
    with transaction.atomic():
        locked = _lock(payment)
        _require_held(locked, "refund escrow")

        # Raises PaymentRailError, which rolls back and leaves the hold intact.
        refund_id = get_payment_rail().create_refund(
            locked.provider_payment_intent_id,
            locked.amount,
            idempotency_key=f"refund-{locked.pk}",
        )

        locked.status = "refunded"
        locked.escrow_status = "refunded"
        locked.refund_amount = locked.amount
        locked.refund_reason = reason
        locked.refunded_at = timezone.now()
        locked.commission_rate = 0
        locked.commission_amount = 0
        locked.landlord_net_amount = None
        locked.save(
            update_fields=[
                "status",
                "escrow_status",
                "refund_amount",
                "refund_reason",
                "refunded_at",
                "commission_rate",
                "commission_amount",
                "landlord_net_amount",
                "updated_at",
            ]
        )
        create_audit_log(
            "escrow_refunded",
            entity_type="Payment",
            entity_id=locked.pk,
            user=actor,
            details={"refund_id": refund_id, "amount": locked.amount, "reason": reason},
        )

    logger.info("Refunded escrow payment %s (%s)", locked.pk, refund_id)
    return locked
