import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("action", models.CharField(choices=[("commission_rate_changed", "Commission rate changed"), ("payment_commission_calculated", "Payment commission calculated"), ("payment_created", "Payment created"), ("payment_failed", "Payment failed"), ("escrow_released", "Escrow released"), ("escrow_refunded", "Escrow refunded"), ("payout_requested", "Payout requested"), ("payout_status_changed", "Payout status changed")], max_length=50)),
                ("entity_type", models.CharField(default="System", max_length=50)),
                ("entity_id", models.CharField(blank=True, max_length=64, null=True)),
                ("details", models.JSONField(blank=True, default=dict)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("user_agent", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="audit_logs", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["entity_type", "entity_id"], name="audit_entity_idx"),
                    models.Index(fields=["action", "created_at"], name="audit_action_created_idx"),
                ],
            },
        ),
    ]
