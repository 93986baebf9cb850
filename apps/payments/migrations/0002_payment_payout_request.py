import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("payments", "0001_initial"),
        ("payouts", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="payment",
            name="payout_request",
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="allocated_payments", to="payouts.payoutrequest"),
        ),
        migrations.AddConstraint(
            model_name="payment",
            constraint=models.CheckConstraint(condition=models.Q(models.Q(("allocated_to_payout", True), ("payout_request__isnull", False)), models.Q(("allocated_to_payout", False), ("payout_request__isnull", True)), _connector="OR"), name="payment_allocation_matches_payout_reference"),
        ),
    ]
