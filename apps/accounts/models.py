import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models

CONSISTENCY_TOLERANCE = Decimal("0.01")


class LandlordAccount(models.Model):
    """
    Running earnings and balances for one landlord, in minor currency units.

    Balances only move through `apps.accounts.services.update_balance` and
    payout completion, both as single `UPDATE ... SET x = x + n` statements.
    """

    STATUS_CHOICES = [
        ("active", "Active"),
        ("suspended", "Suspended"),
        ("closed", "Closed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    landlord = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="landlord_account",
    )
    total_gross_earnings = models.BigIntegerField(default=0)
    total_commission_paid = models.BigIntegerField(default=0)
    total_net_earnings = models.BigIntegerField(default=0)
    available_balance = models.BigIntegerField(default=0)
    pending_balance = models.BigIntegerField(default=0)
    total_payouts = models.BigIntegerField(default=0)
    account_status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="active")
    kyc_verified = models.BooleanField(default=False)
    kyc_verified_at = models.DateTimeField(blank=True, null=True)
    last_payout_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(available_balance__gte=0),
                name="landlord_account_available_balance_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(pending_balance__gte=0),
                name="landlord_account_pending_balance_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Account for {self.landlord_id} ({self.account_status})"

    @property
    def is_consistent(self) -> bool:
        expected = self.total_gross_earnings - self.total_commission_paid
        return abs(Decimal(self.total_net_earnings - expected)) < CONSISTENCY_TOLERANCE
