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
            name="LandlordAccount",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("total_gross_earnings", models.BigIntegerField(default=0)),
                ("total_commission_paid", models.BigIntegerField(default=0)),
                ("total_net_earnings", models.BigIntegerField(default=0)),
                ("available_balance", models.BigIntegerField(default=0)),
                ("pending_balance", models.BigIntegerField(default=0)),
                ("total_payouts", models.BigIntegerField(default=0)),
                ("account_status", models.CharField(choices=[("active", "Active"), ("suspended", "Suspended"), ("closed", "Closed")], default="active", max_length=20)),
                ("kyc_verified", models.BooleanField(default=False)),
                ("kyc_verified_at", models.DateTimeField(blank=True, null=True)),
                ("last_payout_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("landlord", models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name="landlord_account", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("available_balance__gte", 0)), name="landlord_account_available_balance_non_negative"),
                    models.CheckConstraint(condition=models.Q(("pending_balance__gte", 0)), name="landlord_account_pending_balance_non_negative"),
                ],
            },
        ),
    ]
