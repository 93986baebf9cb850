from django.contrib import admin

from .models import Payment, WebhookEvent


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "payment_type",
        "amount",
        "currency",
        "status",
        "escrow_status",
        "allocated_to_payout",
        "created_at",
    )
    list_filter = ("status", "payment_type", "escrow_status", "allocated_to_payout")
    search_fields = ("provider_session_id", "provider_payment_intent_id", "application__property_title")
    raw_id_fields = ("application", "user", "landlord_account", "payout_request", "released_by")
    readonly_fields = (
        "provider_session_id",
        "provider_payment_intent_id",
        "commission_rate",
        "commission_amount",
        "landlord_net_amount",
        "created_at",
        "updated_at",
    )


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    list_display = ("provider", "event_type", "event_id", "created_at")
    search_fields = ("event_id", "event_type")
