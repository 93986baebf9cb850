from __future__ import annotations

import logging

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from apps.accounts.models import LandlordAccount
from apps.accounts.services import can_request_payout, create_or_get_account
from apps.audit.services import create_audit_log
from apps.notifications.services import dispatch_after_commit
from apps.notifications.tasks import send_payout_status
from apps.payments.models import Payment
from apps.payments.rail import TRANSFER_PENDING, TRANSFER_SUCCEEDED, get_payment_rail
from core.exceptions import (
    InsufficientFunds,
    InvalidArgument,
    InvalidTransition,
    LedgerInconsistency,
    PaymentRailError,
    PayoutNotAllowed,
)

from .models import PayoutRequest

logger = logging.getLogger(__name__)

# Stripe reports transfers still moving through the network with these.
IN_FLIGHT_TRANSFER_STATUSES = (TRANSFER_PENDING, "in_transit")


def _payout_details(landlord, method: str, details: dict) -> tuple[str | None, dict]:
    if method == "stripe_connect":
        destination = details.get("destination_account_id") or landlord.stripe_account_id
        if not destination:
            raise InvalidArgument("destination_account_id", "A connected Stripe account is required")
        return destination, {}

    bank_details = {
        "bank_name": details.get("bank_name") or landlord.bank_name,
        "account_number": details.get("account_number") or landlord.account_number,
        "account_name": details.get("account_name") or landlord.account_name or landlord.full_name,
    }
    if not bank_details["bank_name"] or not bank_details["account_number"]:
        raise InvalidArgument("bank_details", "Bank details not configured")
    return None, bank_details


def _allocatable_payments(account: LandlordAccount):
    return Payment.objects.filter(
        landlord_account=account,
        status="completed",
        escrow_status="released",
        allocated_to_payout=False,
        landlord_net_amount__gt=0,
    ).order_by("created_at", "id")


def create_payout_request(landlord, amount: int, method: str = "stripe_connect", details: dict | None = None) -> PayoutRequest:
    """
    Reserve released payments (oldest first) covering `amount` and record a
    pending payout request against them.
    """
    details = details or {}
    if method not in dict(PayoutRequest.METHOD_CHOICES):
        raise InvalidArgument("payment_method", f"Unsupported payout method {method!r}")

    eligibility = can_request_payout(landlord, amount)
    if not eligibility.can_request:
        raise PayoutNotAllowed(eligibility.reasons)

    account = create_or_get_account(landlord)
    destination, bank_details = _payout_details(account.landlord, method, details)

    with transaction.atomic():
        selected: list[Payment] = []
        running_total = 0
        for payment in _allocatable_payments(account):
            selected.append(payment)
            running_total += payment.landlord_net_amount
            if running_total >= amount:
                break

        if running_total < amount:
            raise InsufficientFunds(
                f"Unallocated released earnings ({running_total:,}) do not cover the requested amount ({amount:,})"
            )

        payout = PayoutRequest.objects.create(
            landlord=account.landlord,
            landlord_account=account,
            amount=amount,
            currency=settings.DEFAULT_CURRENCY,
            payment_method=method,
            bank_details=bank_details,
            destination_account_id=destination,
            status="pending",
        )
        payout.idempotency_key = f"payout-{payout.pk}"
        payout.save(update_fields=["idempotency_key"])

        now = timezone.now()
        for payment in selected:
            claimed = Payment.objects.filter(pk=payment.pk, allocated_to_payout=False).update(
                allocated_to_payout=True,
                payout_request=payout,
                payout_allocated_at=now,
                updated_at=now,
            )
            if claimed != 1:
                # Another request reserved this payment first.
                raise InsufficientFunds("Earnings were allocated to another payout request; please retry")
        payout.related_payments.set(selected)

        create_audit_log(
            "payout_requested",
            entity_type="PayoutRequest",
            entity_id=payout.pk,
            user=account.landlord,
            details={
                "amount": amount,
                "payment_method": method,
                "allocated_total": running_total,
                "payment_ids": [payment.pk for payment in selected],
            },
        )
        dispatch_after_commit(send_payout_status, str(payout.pk))

    logger.info(
        "Payout request %s for %s: %s allocated across %s payment(s)",
        payout.pk,
        account.landlord_id,
        running_total,
        len(selected),
    )
    return payout


def _deallocate(payout: PayoutRequest) -> int:
    return Payment.objects.filter(payout_request=payout).update(
        allocated_to_payout=False,
        payout_request=None,
        payout_allocated_at=None,
        updated_at=timezone.now(),
    )


def _transition(payout, from_statuses: tuple[str, ...], to_status: str, actor=None, **fields) -> PayoutRequest:
    """
    Move a payout between states with a conditional update, so two callers
    racing on the same request cannot both succeed.
    """
    pk = payout.pk if isinstance(payout, PayoutRequest) else payout
    updated = PayoutRequest.objects.filter(pk=pk, status__in=from_statuses).update(
        status=to_status,
        updated_at=timezone.now(),
        **fields,
    )
    if not updated:
        current = PayoutRequest.objects.filter(pk=pk).values_list("status", flat=True).first()
        raise InvalidTransition(f"Cannot move payout from {current or 'unknown'} to {to_status}")

    payout = PayoutRequest.objects.select_related("landlord", "landlord_account").get(pk=pk)
    create_audit_log(
        "payout_status_changed",
        entity_type="PayoutRequest",
        entity_id=pk,
        user=actor,
        details={"from": list(from_statuses), "to": to_status, "amount": payout.amount},
    )
    dispatch_after_commit(send_payout_status, str(pk))
    return payout


def approve_payout_request(payout, admin, notes: str = "") -> PayoutRequest:
    now = timezone.now()
    with transaction.atomic():
        payout = _transition(
            payout,
            ("pending",),
            "approved",
            actor=admin,
            reviewed_by=admin,
            reviewed_at=now,
            approved_at=now,
            admin_notes=notes or "",
        )
    logger.info("Payout %s approved by %s", payout.pk, admin.pk)
    return payout


def reject_payout_request(payout, admin, reason: str) -> PayoutRequest:
    if not reason or not reason.strip():
        raise InvalidArgument("reason", "A rejection reason is required")
    with transaction.atomic():
        payout = _transition(
            payout,
            ("pending",),
            "rejected",
            actor=admin,
            reviewed_by=admin,
            reviewed_at=timezone.now(),
            rejection_reason=reason.strip(),
        )
        released = _deallocate(payout)
    logger.info("Payout %s rejected; %s payment(s) released", payout.pk, released)
    return payout


def cancel_payout_request(payout, landlord) -> PayoutRequest:
    if payout.landlord_id != landlord.pk:
        raise InvalidTransition("Only the requesting landlord can cancel this payout")
    with transaction.atomic():
        payout = _transition(
            payout,
            ("pending",),
            "rejected",
            actor=landlord,
            rejection_reason="Cancelled by landlord",
        )
        _deallocate(payout)
    logger.info("Payout %s cancelled by landlord", payout.pk)
    return payout


def _complete(payout, actor=None, transfer_reference: str | None = None) -> PayoutRequest:
    """
    Finish a processing payout and debit the landlord's available balance.

    The status update only matches a processing row, so the debit happens
    at most once per request.
    """
    now = timezone.now()
    fields = {"completed_at": now}
    if transfer_reference:
        fields["transfer_reference"] = transfer_reference

    with transaction.atomic():
        payout = _transition(payout, ("processing",), "completed", actor=actor, **fields)
        debited = LandlordAccount.objects.filter(
            pk=payout.landlord_account_id,
            available_balance__gte=payout.amount,
        ).update(
            available_balance=F("available_balance") - payout.amount,
            total_payouts=F("total_payouts") + payout.amount,
            last_payout_at=now,
            updated_at=now,
        )
        if debited != 1:
            raise LedgerInconsistency(
                f"Available balance of account {payout.landlord_account_id} cannot cover payout {payout.pk}"
            )

    logger.info("Payout %s completed (%s %s)", payout.pk, payout.amount, payout.currency)
    return payout


def _fail(payout, reason: str, actor=None) -> PayoutRequest:
    with transaction.atomic():
        payout = _transition(payout, ("processing",), "failed", actor=actor, failure_reason=reason)
        released = _deallocate(payout)
    logger.warning("Payout %s failed: %s (%s payment(s) released)", payout.pk, reason, released)
    return payout


def process_payout(payout, admin, transfer_reference: str | None = None) -> PayoutRequest:
    """
    Start settlement of an approved payout.

    Stripe Connect payouts are transferred immediately; bank transfers wait
    in processing until an operator marks them completed or failed.
    """
    with transaction.atomic():
        payout = _transition(
            payout,
            ("approved",),
            "processing",
            actor=admin,
            processed_at=timezone.now(),
            transfer_reference=transfer_reference or None,
        )

    if payout.payment_method == "bank_transfer":
        return payout

    try:
        result = get_payment_rail().initiate_transfer(
            payout.destination_account_id,
            payout.amount,
            payout.currency,
            idempotency_key=payout.idempotency_key or f"payout-{payout.pk}",
        )
    except PaymentRailError as exc:
        return _fail(payout, str(exc), actor=admin)

    PayoutRequest.objects.filter(pk=payout.pk).update(transfer_reference=result.transfer_id)
    payout.transfer_reference = result.transfer_id
    return _apply_transfer_status(payout, result.status, actor=admin)


def _apply_transfer_status(payout: PayoutRequest, transfer_status: str, actor=None) -> PayoutRequest:
    if transfer_status == TRANSFER_SUCCEEDED:
        return _complete(payout, actor=actor)
    if transfer_status in IN_FLIGHT_TRANSFER_STATUSES:
        logger.info("Payout %s transfer %s still %s", payout.pk, payout.transfer_reference, transfer_status)
        return payout
    return _fail(payout, f"Transfer {payout.transfer_reference} {transfer_status}", actor=actor)


def sync_transfer_status(payout) -> PayoutRequest:
    if not isinstance(payout, PayoutRequest):
        payout = PayoutRequest.objects.get(pk=payout)
    if payout.status != "processing" or payout.payment_method != "stripe_connect" or not payout.transfer_reference:
        return payout
    transfer_status = get_payment_rail().get_transfer_status(payout.transfer_reference)
    return _apply_transfer_status(payout, transfer_status)


def _require_manual_settlement(payout: PayoutRequest) -> None:
    # Connect payouts with a transfer id follow the provider via sync_transfer_status.
    if payout.payment_method == "stripe_connect" and payout.transfer_reference:
        raise InvalidTransition("Connect payouts with a transfer are settled from the transfer status")


def mark_payout_completed(payout, admin, transfer_reference: str | None = None) -> PayoutRequest:
    _require_manual_settlement(payout)
    return _complete(payout, actor=admin, transfer_reference=transfer_reference)


def mark_payout_failed(payout, admin, reason: str) -> PayoutRequest:
    _require_manual_settlement(payout)
    if not reason or not reason.strip():
        raise InvalidArgument("reason", "A failure reason is required")
    return _fail(payout, reason.strip(), actor=admin)
