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
            name="Application",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("property_title", models.CharField(max_length=255)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("under_review", "Under Review"), ("approved", "Approved"), ("accepted", "Accepted"), ("rejected", "Rejected"), ("withdrawn", "Withdrawn")], default="pending", max_length=20)),
                ("lease_length_months", models.PositiveIntegerField(blank=True, null=True)),
                ("move_in_date", models.DateField(blank=True, null=True)),
                ("reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("application_fee_paid", models.BooleanField(default=False)),
                ("application_fee_payment_id", models.CharField(blank=True, max_length=255, null=True)),
                ("application_fee_paid_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("client", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="client_applications", to=settings.AUTH_USER_MODEL)),
                ("landlord", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="landlord_applications", to=settings.AUTH_USER_MODEL)),
            ],
        ),
    ]
