from __future__ import annotations

from decimal import Decimal
from typing import Any

from .models import AuditLog


def create_audit_log(
    action: str,
    *,
    entity_type: str = "System",
    entity_id: Any = None,
    user=None,
    details: dict | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> AuditLog:
    """
    Append an audit entry.

    Callers writing money should call this inside their own
    `transaction.atomic()` block so the entry commits or rolls back with it.
    """
    return AuditLog.objects.create(
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        user=user,
        details=_jsonable(details or {}),
        ip_address=ip_address or None,
        user_agent=user_agent or None,
    )


def log_commission_rate_change(user, settings_id, old_rate, new_rate, effective_from, reason, ip_address=None, user_agent=None) -> AuditLog:
    return create_audit_log(
        "commission_rate_changed",
        entity_type="PlatformSettings",
        entity_id=settings_id,
        user=user,
        details={
            "old_rate": old_rate,
            "new_rate": new_rate,
            "effective_from": effective_from,
            "reason": reason,
        },
        ip_address=ip_address,
        user_agent=user_agent,
    )


def log_commission_calculation(user, payment, landlord=None) -> AuditLog:
    return create_audit_log(
        "payment_commission_calculated",
        entity_type="Payment",
        entity_id=payment.pk,
        user=user,
        details={
            "payment_id": payment.pk,
            "gross_amount": payment.amount,
            "commission_rate": payment.commission_rate,
            "commission_amount": payment.commission_amount,
            "net_amount": payment.landlord_net_amount,
            "landlord_id": landlord.pk if landlord is not None else None,
        },
    )


def _jsonable(value):
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)
