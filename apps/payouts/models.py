import uuid

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class PayoutRequest(models.Model):
    """
    A landlord's request to withdraw part of their available balance.

    Specific released payments are reserved against the request when it is
    created and released again if it is rejected or fails.
    """

    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("approved", "Approved"),
        ("processing", "Processing"),
        ("completed", "Completed"),
        ("rejected", "Rejected"),
        ("failed", "Failed"),
    ]

    METHOD_CHOICES = [
        ("stripe_connect", "Stripe Connect"),
        ("bank_transfer", "Bank Transfer"),
    ]

    ACTIVE_STATUSES = ("pending", "approved", "processing")
    TERMINAL_STATUSES = ("completed", "rejected", "failed")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    landlord = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payout_requests",
    )
    landlord_account = models.ForeignKey(
        "accounts.LandlordAccount",
        on_delete=models.PROTECT,
        related_name="payout_requests",
    )
    amount = models.BigIntegerField(validators=[MinValueValidator(1)])
    currency = models.CharField(max_length=3, default="NGN")
    payment_method = models.CharField(max_length=20, choices=METHOD_CHOICES, default="stripe_connect")
    bank_details = models.JSONField(default=dict, blank=True)
    destination_account_id = models.CharField(max_length=255, blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")

    # Every payment ever reserved for this request; Payment.payout_request
    # holds only the live reservations.
    related_payments = models.ManyToManyField(
        "payments.Payment",
        blank=True,
        related_name="payout_history",
    )

    idempotency_key = models.CharField(max_length=100, blank=True, null=True, unique=True)
    transfer_reference = models.CharField(max_length=255, blank=True, null=True)
    failure_reason = models.TextField(blank=True, null=True)
    rejection_reason = models.TextField(blank=True, null=True)
    admin_notes = models.TextField(blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    reviewed_at = models.DateTimeField(blank=True, null=True)
    requested_at = models.DateTimeField(auto_now_add=True)
    approved_at = models.DateTimeField(blank=True, null=True)
    processed_at = models.DateTimeField(blank=True, null=True)
    completed_at = models.DateTimeField(blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-requested_at"]
        indexes = [
            models.Index(fields=["landlord", "status"], name="payout_landlord_status_idx"),
            models.Index(fields=["status", "requested_at"], name="payout_status_requested_idx"),
        ]

    def __str__(self) -> str:
        return f"Payout {self.id} ({self.amount} {self.currency}, {self.status})"

    @property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUSES
