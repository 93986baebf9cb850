import uuid

from django.conf import settings
from django.db import models


class AuditLog(models.Model):
    """Append-only record of financially relevant actions."""

    ACTION_CHOICES = [
        ("commission_rate_changed", "Commission rate changed"),
        ("payment_commission_calculated", "Payment commission calculated"),
        ("payment_created", "Payment created"),
        ("payment_failed", "Payment failed"),
        ("escrow_released", "Escrow released"),
        ("escrow_refunded", "Escrow refunded"),
        ("payout_requested", "Payout requested"),
        ("payout_status_changed", "Payout status changed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    entity_type = models.CharField(max_length=50, default="System")
    entity_id = models.CharField(max_length=64, blank=True, null=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="audit_logs",
    )
    details = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(blank=True, null=True)
    user_agent = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["entity_type", "entity_id"], name="audit_entity_idx"),
            models.Index(fields=["action", "created_at"], name="audit_action_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.action} {self.entity_type}:{self.entity_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Audit log entries are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Audit log entries cannot be deleted")
