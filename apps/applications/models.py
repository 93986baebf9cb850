import uuid

from django.conf import settings
from django.db import models


class Application(models.Model):
    """
    Rental application linking a client to a landlord's property.

    Owned by the listings/applications service; settlement code only reads
    the status and lease terms and flips the application-fee flag.
    """

    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("under_review", "Under Review"),
        ("approved", "Approved"),
        ("accepted", "Accepted"),
        ("rejected", "Rejected"),
        ("withdrawn", "Withdrawn"),
    ]

    PAYABLE_RENT_STATUSES = ("approved", "accepted")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="client_applications",
    )
    landlord = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="landlord_applications",
    )
    property_title = models.CharField(max_length=255)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    lease_length_months = models.PositiveIntegerField(blank=True, null=True)
    move_in_date = models.DateField(blank=True, null=True)
    reviewed_at = models.DateTimeField(blank=True, null=True)
    application_fee_paid = models.BooleanField(default=False)
    application_fee_payment_id = models.CharField(max_length=255, blank=True, null=True)
    application_fee_paid_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.property_title} ({self.status})"

    @property
    def is_rent_payable(self) -> bool:
        return self.status in self.PAYABLE_RENT_STATUSES
