"""Idempotent handlers for payment provider webhook events."""

from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from typing import Callable

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Max
from django.utils import timezone

from apps.applications.models import Application
from apps.applications.services import mark_application_fee_paid
from apps.audit.services import create_audit_log
from apps.notifications.services import dispatch_after_commit
from apps.notifications.tasks import send_payment_failed, send_payment_received

from .models import Payment

logger = logging.getLogger(__name__)

HANDLERS: dict[str, Callable[[dict], Payment | None]] = {}


def register_handler(event_type: str):
    def decorator(func):
        HANDLERS[event_type] = func
        return func

    return decorator


def dispatch_event(event: dict) -> Payment | None:
    event_type = event.get("type") or ""
    handler = HANDLERS.get(event_type)
    if handler is None:
        logger.info("Ignoring unhandled webhook event %s (%s)", event.get("id"), event_type)
        return None
    obj = (event.get("data") or {}).get("object") or {}
    return handler(obj)


def resolve_intent_type(metadata: dict, application: Application) -> str:
    declared = metadata.get("type") or metadata.get("intentType")
    if declared:
        if declared in ("rent", "application_fee"):
            return declared
        return "other"
    if application.is_rent_payable:
        return "rent"
    return "application_fee"


def compute_rent_period(application: Application) -> tuple[date, date]:
    """
    Next rent period for an application.

    Starts the day after the latest completed rent period, or at move-in
    (falling back to the approval date, then today) for the first payment.
    """
    last_end = Payment.objects.filter(
        application=application,
        payment_type="rent",
        status="completed",
        rent_period_end__isnull=False,
    ).aggregate(last_end=Max("rent_period_end"))["last_end"]

    if last_end:
        start = last_end + timedelta(days=1)
    elif application.move_in_date:
        start = application.move_in_date
    elif application.reviewed_at:
        start = timezone.localdate(application.reviewed_at)
    else:
        start = timezone.localdate()

    months = application.lease_length_months or settings.DEFAULT_LEASE_MONTHS
    end = start + relativedelta(months=months) - timedelta(days=1)
    return start, end


def _find_application(application_id) -> Application | None:
    if not application_id:
        return None
    try:
        return Application.objects.select_related("client", "landlord").get(pk=uuid.UUID(str(application_id)))
    except (Application.DoesNotExist, ValueError, ValidationError):
        return None


def _resolve_payer(metadata: dict, application: Application):
    user_id = metadata.get("userId") or metadata.get("user_id")
    if user_id and str(user_id) != str(application.client_id):
        # The application's client is the only payer we accept.
        logger.warning("Webhook payer %s does not match application client %s", user_id, application.client_id)
    return application.client


def _find_recorded_payment(session_id: str, intent_id: str | None) -> Payment | None:
    payment = Payment.objects.filter(provider_session_id=session_id).first()
    if payment is None and intent_id:
        payment = Payment.objects.filter(provider_payment_intent_id=intent_id).first()
    return payment


@register_handler("checkout.session.completed")
def handle_checkout_session_completed(session: dict) -> Payment | None:
    session_id = session.get("id")
    if not session_id:
        logger.warning("checkout.session.completed without session id; ignoring")
        return None

    intent_id = session.get("payment_intent") or None
    existing = _find_recorded_payment(session_id, intent_id)
    if existing is not None:
        logger.info("Duplicate checkout session %s; payment %s already recorded", session_id, existing.pk)
        return existing

    metadata = session.get("metadata") or {}
    application_id = metadata.get("applicationId") or metadata.get("application_id")
    application = _find_application(application_id)
    if application is None:
        logger.warning("Checkout session %s references unknown application %r; ignoring", session_id, application_id)
        return None

    payment_type = resolve_intent_type(metadata, application)
    now = timezone.now()
    defaults = {
        "application": application,
        "user": _resolve_payer(metadata, application),
        "amount": int(session.get("amount_total") or 0),
        "currency": (session.get("currency") or settings.DEFAULT_CURRENCY).upper(),
        "status": "completed",
        "payment_type": payment_type,
        "description": f"{dict(Payment.TYPE_CHOICES)[payment_type]} for {application.property_title}",
        "provider_payment_intent_id": intent_id,
        "metadata": metadata,
        "created_at": now,
    }
    if payment_type == "rent":
        start, end = compute_rent_period(application)
        defaults.update(
            is_escrow=True,
            escrow_status="held",
            escrow_held_at=now,
            escrow_expires_at=now + timedelta(days=settings.ESCROW_HOLD_DAYS),
            rent_period_start=start,
            rent_period_end=end,
        )

    try:
        with transaction.atomic():
            payment, created = Payment.objects.get_or_create(provider_session_id=session_id, defaults=defaults)
            if not created:
                logger.info("Checkout session %s recorded concurrently as payment %s", session_id, payment.pk)
                return payment

            if payment_type == "application_fee":
                mark_application_fee_paid(application.pk, session_id)

            create_audit_log(
                "payment_created",
                entity_type="Payment",
                entity_id=payment.pk,
                user=payment.user,
                details={
                    "provider_session_id": session_id,
                    "payment_type": payment_type,
                    "amount": payment.amount,
                    "currency": payment.currency,
                    "is_escrow": payment.is_escrow,
                },
            )
            dispatch_after_commit(send_payment_received, str(payment.pk))
    except IntegrityError:
        # Another delivery inserted the same session or payment intent first.
        existing = _find_recorded_payment(session_id, intent_id)
        if existing is None:
            raise
        logger.info("Checkout session %s lost insert race to payment %s", session_id, existing.pk)
        return existing

    logger.info(
        "Recorded %s payment %s for application %s (%s %s)",
        payment_type,
        payment.pk,
        application.pk,
        payment.amount,
        payment.currency,
    )
    return payment


@register_handler("payment_intent.succeeded")
def handle_payment_intent_succeeded(intent: dict) -> Payment | None:
    intent_id = intent.get("id")
    if not intent_id:
        return None
    updated = Payment.objects.filter(
        provider_payment_intent_id=intent_id,
        status__in=("pending", "failed"),
    ).update(status="completed", failure_reason=None, failure_code=None, updated_at=timezone.now())
    if updated:
        logger.info("Payment intent %s succeeded", intent_id)
    return Payment.objects.filter(provider_payment_intent_id=intent_id).first()


@register_handler("payment_intent.payment_failed")
def handle_payment_intent_failed(intent: dict) -> Payment | None:
    intent_id = intent.get("id")
    if not intent_id:
        return None
    error = intent.get("last_payment_error") or {}
    reason = error.get("message") or "Payment processing failed"
    code = error.get("code") or error.get("decline_code")

    with transaction.atomic():
        payment = (
            Payment.objects.select_for_update()
            .filter(provider_payment_intent_id=intent_id)
            .first()
        )
        if payment is None:
            return None
        # A late failure never overrides a completed or refunded payment.
        if payment.status in ("completed", "refunded", "failed"):
            return payment

        payment.status = "failed"
        payment.failure_reason = reason
        payment.failure_code = code
        payment.save(update_fields=["status", "failure_reason", "failure_code", "updated_at"])
        create_audit_log(
            "payment_failed",
            entity_type="Payment",
            entity_id=payment.pk,
            user=payment.user,
            details={"payment_intent": intent_id, "reason": reason, "code": code},
        )
        dispatch_after_commit(send_payment_failed, str(payment.pk))

    logger.warning("Payment intent %s failed: %s", intent_id, reason)
    return payment
