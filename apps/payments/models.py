import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class Payment(models.Model):
    """
    Money received from a client through the payment provider.

    Amounts are integers in minor currency units. Created exactly once per
    checkout session by webhook ingestion; afterwards only the escrow
    transitions and payout allocation touch it.
    """

    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("completed", "Completed"),
        ("failed", "Failed"),
        ("refunded", "Refunded"),
    ]

    TYPE_CHOICES = [
        ("rent", "Rent"),
        ("application_fee", "Application Fee"),
        ("other", "Other"),
    ]

    ESCROW_STATUS_CHOICES = [
        ("held", "Held"),
        ("released", "Released"),
        ("refunded", "Refunded"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    application = models.ForeignKey(
        "applications.Application",
        on_delete=models.PROTECT,
        related_name="payments",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments",
    )
    landlord_account = models.ForeignKey(
        "accounts.LandlordAccount",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="payments",
    )
    amount = models.BigIntegerField(validators=[MinValueValidator(0)])
    currency = models.CharField(max_length=3, default="NGN")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    payment_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    description = models.TextField(blank=True)

    provider_session_id = models.CharField(max_length=255, unique=True, blank=True, null=True)
    provider_payment_intent_id = models.CharField(max_length=255, unique=True, blank=True, null=True)

    failure_reason = models.TextField(blank=True, null=True)
    failure_code = models.CharField(max_length=100, blank=True, null=True)

    refund_amount = models.BigIntegerField(blank=True, null=True)
    refund_reason = models.TextField(blank=True, null=True)
    refunded_at = models.DateTimeField(blank=True, null=True)

    is_escrow = models.BooleanField(default=False)
    escrow_status = models.CharField(max_length=20, choices=ESCROW_STATUS_CHOICES, blank=True, null=True)
    escrow_held_at = models.DateTimeField(blank=True, null=True)
    escrow_expires_at = models.DateTimeField(blank=True, null=True)
    escrow_released_at = models.DateTimeField(blank=True, null=True)
    # Deducted from net at release. Nothing accrues it yet; a non-zero value
    # makes total_net_earnings fall short of gross minus commission.
    escrow_interest = models.BigIntegerField(default=0)
    property_visited = models.BooleanField(default=False)
    documents_received = models.BooleanField(default=False)
    released_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )

    rent_period_start = models.DateField(blank=True, null=True)
    rent_period_end = models.DateField(blank=True, null=True)

    # Zero until escrow release; filled from the rate in effect at release.
    commission_rate = models.DecimalField(max_digits=5, decimal_places=4, default=Decimal("0"))
    commission_amount = models.BigIntegerField(default=0)
    landlord_net_amount = models.BigIntegerField(blank=True, null=True)

    allocated_to_payout = models.BooleanField(default=False)
    payout_request = models.ForeignKey(
        "payouts.PayoutRequest",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="allocated_payments",
    )
    payout_allocated_at = models.DateTimeField(blank=True, null=True)

    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["application", "payment_type", "status"], name="payment_app_type_status_idx"),
            models.Index(fields=["landlord_account", "status", "allocated_to_payout"], name="payment_account_alloc_idx"),
            models.Index(fields=["escrow_status", "escrow_expires_at"], name="payment_escrow_expiry_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(allocated_to_payout=True, payout_request__isnull=False)
                    | models.Q(allocated_to_payout=False, payout_request__isnull=True)
                ),
                name="payment_allocation_matches_payout_reference",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(escrow_status="released")
                    | models.Q(commission_amount=0, commission_rate=0, landlord_net_amount__isnull=True)
                ),
                name="payment_commission_only_after_release",
            ),
        ]

    def __str__(self) -> str:
        return f"Payment {self.id} ({self.payment_type}, {self.status})"

    @property
    def formatted_amount(self) -> str:
        return f"{self.currency} {Decimal(self.amount) / 100:,.2f}"

    @property
    def escrow_state(self) -> str:
        if not self.is_escrow:
            return "none"
        return self.escrow_status or "none"

    @property
    def is_escrow_expired(self) -> bool:
        return (
            self.escrow_status == "held"
            and self.escrow_expires_at is not None
            and self.escrow_expires_at <= timezone.now()
        )

    def missing_release_conditions(self) -> list[str]:
        missing = []
        if not self.property_visited:
            missing.append("property visit not confirmed")
        if not self.documents_received:
            missing.append("documents not received")
        return missing


class WebhookEvent(models.Model):
    """Raw provider event, stored for audit/debugging."""

    provider = models.CharField(max_length=50)
    event_id = models.CharField(max_length=255, unique=True)
    event_type = models.CharField(max_length=100)
    raw_payload = models.JSONField()
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.provider}:{self.event_type} {self.event_id}"
