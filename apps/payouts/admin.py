from django.contrib import admin

from .models import PayoutRequest


@admin.register(PayoutRequest)
class PayoutRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "landlord", "amount", "currency", "payment_method", "status", "requested_at")
    list_filter = ("status", "payment_method")
    search_fields = ("landlord__email", "transfer_reference")
    raw_id_fields = ("landlord", "landlord_account", "reviewed_by")
    filter_horizontal = ("related_payments",)
    # Status moves only through the payout API so allocations stay in sync.
    readonly_fields = (
        "status",
        "amount",
        "idempotency_key",
        "transfer_reference",
        "requested_at",
        "approved_at",
        "processed_at",
        "completed_at",
    )
