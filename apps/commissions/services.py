from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from apps.audit.models import AuditLog
from apps.audit.services import log_commission_rate_change
from core.exceptions import InvalidArgument

from .models import PlatformSettings

logger = logging.getLogger(__name__)


@dataclass
class RateChange:
    old_rate: Decimal
    new_rate: Decimal
    effective_from: datetime
    reason: str
    version: int


def get_current_commission_rate() -> Decimal:
    return PlatformSettings.objects.get_current().commission_rate


def parse_rate(value) -> Decimal:
    if value is None or value == "":
        raise InvalidArgument("rate", "Commission rate is required")
    try:
        rate = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidArgument("rate", "Commission rate must be a number")
    if not rate.is_finite() or rate < 0 or rate > 1:
        raise InvalidArgument("rate", "Commission rate must be between 0 and 1")
    # Stored as DECIMAL(5, 4); more places would be rounded on save.
    if rate.as_tuple().exponent < -4:
        raise InvalidArgument("rate", "Commission rate cannot have more than 4 decimal places")
    return rate


def update_commission_rate(
    new_rate,
    actor,
    reason: str | None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> RateChange:
    if not reason or not reason.strip():
        raise InvalidArgument("reason", "Reason is required for commission rate changes")
    rate = parse_rate(new_rate)

    with transaction.atomic():
        current = PlatformSettings.objects.get_current()
        current = PlatformSettings.objects.select_for_update().get(pk=current.pk)
        old_rate = current.commission_rate
        now = timezone.now()

        current.commission_rate = rate
        current.last_updated_by = actor
        current.last_updated_at = now
        current.effective_from = now
        current.change_reason = reason.strip()
        current.version += 1
        current.save()
        current.refresh_from_db()
        rate = current.commission_rate

        log_commission_rate_change(
            actor,
            current.pk,
            old_rate,
            rate,
            now,
            current.change_reason,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    logger.info(
        "Commission rate changed from %s to %s by %s (v%s)",
        old_rate,
        rate,
        getattr(actor, "pk", None),
        current.version,
    )
    return RateChange(
        old_rate=old_rate,
        new_rate=rate,
        effective_from=now,
        reason=current.change_reason,
        version=current.version,
    )


def get_commission_history(start: datetime | None = None, end: datetime | None = None):
    qs = AuditLog.objects.filter(action="commission_rate_changed").select_related("user")
    if start:
        qs = qs.filter(created_at__gte=start)
    if end:
        qs = qs.filter(created_at__lte=end)
    return qs.order_by("-created_at")


def get_total_commission_collected(start: datetime | None = None, end: datetime | None = None) -> int:
    from apps.payments.models import Payment

    qs = Payment.objects.filter(status="completed", commission_amount__gt=0)
    if start:
        qs = qs.filter(escrow_released_at__gte=start)
    if end:
        qs = qs.filter(escrow_released_at__lte=end)
    return qs.aggregate(total=Sum("commission_amount"))["total"] or 0
