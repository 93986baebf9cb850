import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("payments", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PayoutRequest",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("amount", models.BigIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ("currency", models.CharField(default="NGN", max_length=3)),
                ("payment_method", models.CharField(choices=[("stripe_connect", "Stripe Connect"), ("bank_transfer", "Bank Transfer")], default="stripe_connect", max_length=20)),
                ("bank_details", models.JSONField(blank=True, default=dict)),
                ("destination_account_id", models.CharField(blank=True, max_length=255, null=True)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("approved", "Approved"), ("processing", "Processing"), ("completed", "Completed"), ("rejected", "Rejected"), ("failed", "Failed")], default="pending", max_length=20)),
                ("idempotency_key", models.CharField(blank=True, max_length=100, null=True, unique=True)),
                ("transfer_reference", models.CharField(blank=True, max_length=255, null=True)),
                ("failure_reason", models.TextField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True, null=True)),
                ("admin_notes", models.TextField(blank=True)),
                ("reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("requested_at", models.DateTimeField(auto_now_add=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("landlord", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payout_requests", to=settings.AUTH_USER_MODEL)),
                ("landlord_account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payout_requests", to="accounts.landlordaccount")),
                ("related_payments", models.ManyToManyField(blank=True, related_name="payout_history", to="payments.payment")),
                ("reviewed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-requested_at"],
                "indexes": [
                    models.Index(fields=["landlord", "status"], name="payout_landlord_status_idx"),
                    models.Index(fields=["status", "requested_at"], name="payout_status_requested_idx"),
                ],
            },
        ),
    ]
