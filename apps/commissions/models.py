from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone


class PlatformSettingsManager(models.Manager):
    def get_current(self) -> "PlatformSettings":
        current = self.order_by("-effective_from", "-version").first()
        if current is None:
            current = self.create(
                commission_rate=settings.DEFAULT_COMMISSION_RATE,
                effective_from=timezone.now(),
            )
        return current


class PlatformSettings(models.Model):
    """
    The platform's current commission rate.

    A single row, changed in place by `update_commission_rate`; every change
    bumps `version` and is mirrored into the audit log.
    """

    commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal("0.10"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("1"))],
    )
    effective_from = models.DateTimeField(default=timezone.now)
    version = models.PositiveIntegerField(default=1)
    last_updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    last_updated_at = models.DateTimeField(blank=True, null=True)
    change_reason = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = PlatformSettingsManager()

    class Meta:
        verbose_name_plural = "platform settings"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(commission_rate__gte=0) & models.Q(commission_rate__lte=1),
                name="platform_settings_rate_in_unit_interval",
            ),
        ]

    def __str__(self) -> str:
        return f"Commission {self.commission_rate} (v{self.version})"
