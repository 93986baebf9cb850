from __future__ import annotations

from django.utils import timezone

from .models import Application


def mark_application_fee_paid(application_id, payment_reference: str | None) -> bool:
    """
    Flag the application fee as paid.

    Returns True only for the call that actually flipped the flag, so a
    redelivered webhook cannot mark the fee paid twice.
    """
    updated = Application.objects.filter(pk=application_id, application_fee_paid=False).update(
        application_fee_paid=True,
        application_fee_payment_id=payment_reference,
        application_fee_paid_at=timezone.now(),
    )
    return updated == 1
