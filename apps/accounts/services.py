from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from django.conf import settings
from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from apps.authentication.models import User
from core.exceptions import InvalidArgument, NotALandlord

from .models import LandlordAccount

logger = logging.getLogger(__name__)

BALANCE_BUCKETS = ("available", "pending")


@dataclass
class PayoutEligibility:
    can_request: bool = True
    reasons: list[str] = field(default_factory=list)

    def reject(self, reason: str) -> None:
        self.can_request = False
        self.reasons.append(reason)


def _as_user(landlord) -> User:
    if isinstance(landlord, User):
        return landlord
    return User.objects.get(pk=landlord)


def create_or_get_account(landlord) -> LandlordAccount:
    """
    Return the landlord's account, creating it on first use.

    The cached KYC flag is re-synced from the user record on every call.
    """
    user = _as_user(landlord)
    if user.role != "landlord":
        raise NotALandlord("User is not a landlord")

    verified = user.is_kyc_verified
    account, created = LandlordAccount.objects.get_or_create(
        landlord=user,
        defaults={
            "kyc_verified": verified,
            "kyc_verified_at": (user.kyc_verified_at or timezone.now()) if verified else None,
        },
    )
    if created:
        logger.info("Created landlord account %s for %s", account.pk, user.pk)
    elif account.kyc_verified != verified:
        account.kyc_verified = verified
        account.kyc_verified_at = (user.kyc_verified_at or timezone.now()) if verified else None
        LandlordAccount.objects.filter(pk=account.pk).update(
            kyc_verified=account.kyc_verified,
            kyc_verified_at=account.kyc_verified_at,
        )
    return account


def update_balance(landlord, gross_amount: int, commission_amount: int, net_amount: int, bucket: str = "available") -> LandlordAccount:
    """
    Add a released payment to the landlord's running totals.

    Not idempotent: the escrow release transition guarantees it runs once
    per payment.
    """
    if bucket not in BALANCE_BUCKETS:
        raise InvalidArgument("bucket", f"Balance bucket must be one of {', '.join(BALANCE_BUCKETS)}")
    if min(gross_amount, commission_amount, net_amount) < 0:
        raise InvalidArgument("amount", "Balance updates cannot be negative")

    account = create_or_get_account(landlord)
    changes = {
        "total_gross_earnings": F("total_gross_earnings") + gross_amount,
        "total_commission_paid": F("total_commission_paid") + commission_amount,
        "total_net_earnings": F("total_net_earnings") + net_amount,
        "updated_at": timezone.now(),
    }
    if bucket == "available":
        changes["available_balance"] = F("available_balance") + net_amount
    else:
        changes["pending_balance"] = F("pending_balance") + net_amount

    LandlordAccount.objects.filter(pk=account.pk).update(**changes)
    account.refresh_from_db()
    return account


def get_account_balance(landlord) -> dict:
    account = create_or_get_account(landlord)
    return {
        "available_balance": account.available_balance,
        "pending_balance": account.pending_balance,
        "total_gross_earnings": account.total_gross_earnings,
        "total_commission_paid": account.total_commission_paid,
        "total_net_earnings": account.total_net_earnings,
        "total_payouts": account.total_payouts,
        "kyc_verified": account.kyc_verified,
        "account_status": account.account_status,
        "is_consistent": account.is_consistent,
    }


def can_request_payout(landlord, amount: int) -> PayoutEligibility:
    """Collect every reason the payout is not allowed instead of stopping at the first."""
    account = create_or_get_account(landlord)
    minimum = settings.MINIMUM_PAYOUT_AMOUNT
    checks = PayoutEligibility()

    if not account.kyc_verified:
        checks.reject("KYC verification required")
    if amount < minimum:
        checks.reject(f"Minimum payout amount is {minimum:,}")
    if amount > account.available_balance:
        checks.reject("Insufficient available balance")
    if account.account_status != "active":
        checks.reject(f"Account is {account.account_status}")
    return checks


def _released_payments(account: LandlordAccount):
    from apps.payments.models import Payment

    return Payment.objects.filter(
        landlord_account=account,
        status="completed",
        escrow_status="released",
    )


def get_earnings_breakdown(landlord, start: datetime | None = None, end: datetime | None = None) -> dict:
    account = create_or_get_account(landlord)
    payments = _released_payments(account)
    if start:
        payments = payments.filter(escrow_released_at__gte=start)
    if end:
        payments = payments.filter(escrow_released_at__lte=end)
    payments = payments.select_related("application").order_by("escrow_released_at")

    breakdown = {
        "total_gross_earnings": 0,
        "total_commission_paid": 0,
        "total_net_earnings": 0,
        "payment_count": 0,
        "payments": [],
    }
    for payment in payments:
        net = payment.landlord_net_amount or 0
        breakdown["total_gross_earnings"] += payment.amount
        breakdown["total_commission_paid"] += payment.commission_amount
        breakdown["total_net_earnings"] += net
        breakdown["payment_count"] += 1
        breakdown["payments"].append(
            {
                "id": str(payment.id),
                "property_title": payment.application.property_title,
                "amount": payment.amount,
                "commission_rate": str(payment.commission_rate),
                "commission_amount": payment.commission_amount,
                "net_amount": net,
                "released_at": payment.escrow_released_at,
            }
        )
    return breakdown


def reconcile_account(landlord) -> dict:
    """
    Compare the cached totals with the released payments they came from.

    Reports drift only; correcting it is a manual operation.
    """
    account = create_or_get_account(landlord)
    totals = _released_payments(account).aggregate(
        gross=Sum("amount"),
        commission=Sum("commission_amount"),
        net=Sum("landlord_net_amount"),
    )
    unallocated = (
        _released_payments(account)
        .filter(allocated_to_payout=False)
        .aggregate(net=Sum("landlord_net_amount"))["net"]
        or 0
    )
    gross = totals["gross"] or 0
    commission = totals["commission"] or 0
    net = totals["net"] or 0
    report = {
        "gross_drift": account.total_gross_earnings - gross,
        "commission_drift": account.total_commission_paid - commission,
        "net_drift": account.total_net_earnings - net,
        "unallocated_net": unallocated,
        "available_balance": account.available_balance,
        "is_consistent": account.is_consistent,
    }
    report["ok"] = not (report["gross_drift"] or report["commission_drift"] or report["net_drift"]) and report["is_consistent"]
    if not report["ok"]:
        logger.warning("Ledger drift for landlord account %s: %s", account.pk, report)
    return report


@transaction.atomic
def set_account_status(landlord, status: str) -> LandlordAccount:
    if status not in dict(LandlordAccount.STATUS_CHOICES):
        raise InvalidArgument("account_status", f"Unknown account status {status!r}")
    account = create_or_get_account(landlord)
    LandlordAccount.objects.filter(pk=account.pk).update(account_status=status, updated_at=timezone.now())
    account.account_status = status
    return account
