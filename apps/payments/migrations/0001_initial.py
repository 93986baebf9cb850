import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("applications", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("provider", models.CharField(max_length=50)),
                ("event_id", models.CharField(max_length=255, unique=True)),
                ("event_type", models.CharField(max_length=100)),
                ("raw_payload", models.JSONField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("amount", models.BigIntegerField(validators=[django.core.validators.MinValueValidator(0)])),
                ("currency", models.CharField(default="NGN", max_length=3)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("completed", "Completed"), ("failed", "Failed"), ("refunded", "Refunded")], default="pending", max_length=20)),
                ("payment_type", models.CharField(choices=[("rent", "Rent"), ("application_fee", "Application Fee"), ("other", "Other")], max_length=20)),
                ("description", models.TextField(blank=True)),
                ("provider_session_id", models.CharField(blank=True, max_length=255, null=True, unique=True)),
                ("provider_payment_intent_id", models.CharField(blank=True, max_length=255, null=True, unique=True)),
                ("failure_reason", models.TextField(blank=True, null=True)),
                ("failure_code", models.CharField(blank=True, max_length=100, null=True)),
                ("refund_amount", models.BigIntegerField(blank=True, null=True)),
                ("refund_reason", models.TextField(blank=True, null=True)),
                ("refunded_at", models.DateTimeField(blank=True, null=True)),
                ("is_escrow", models.BooleanField(default=False)),
                ("escrow_status", models.CharField(blank=True, choices=[("held", "Held"), ("released", "Released"), ("refunded", "Refunded")], max_length=20, null=True)),
                ("escrow_held_at", models.DateTimeField(blank=True, null=True)),
                ("escrow_expires_at", models.DateTimeField(blank=True, null=True)),
                ("escrow_released_at", models.DateTimeField(blank=True, null=True)),
                ("escrow_interest", models.BigIntegerField(default=0)),
                ("property_visited", models.BooleanField(default=False)),
                ("documents_received", models.BooleanField(default=False)),
                ("rent_period_start", models.DateField(blank=True, null=True)),
                ("rent_period_end", models.DateField(blank=True, null=True)),
                ("commission_rate", models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=5)),
                ("commission_amount", models.BigIntegerField(default=0)),
                ("landlord_net_amount", models.BigIntegerField(blank=True, null=True)),
                ("allocated_to_payout", models.BooleanField(default=False)),
                ("payout_allocated_at", models.DateTimeField(blank=True, null=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("application", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="applications.application")),
                ("landlord_account", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="accounts.landlordaccount")),
                ("released_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["application", "payment_type", "status"], name="payment_app_type_status_idx"),
                    models.Index(fields=["landlord_account", "status", "allocated_to_payout"], name="payment_account_alloc_idx"),
                    models.Index(fields=["escrow_status", "escrow_expires_at"], name="payment_escrow_expiry_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("escrow_status", "released"), models.Q(("commission_amount", 0), ("commission_rate", 0), ("landlord_net_amount__isnull", True)), _connector="OR"), name="payment_commission_only_after_release"),
                ],
            },
        ),
    ]
