from django.contrib import admin

from .models import LandlordAccount


@admin.register(LandlordAccount)
class LandlordAccountAdmin(admin.ModelAdmin):
    list_display = (
        "landlord",
        "available_balance",
        "pending_balance",
        "total_net_earnings",
        "total_payouts",
        "kyc_verified",
        "account_status",
    )
    search_fields = ("landlord__email",)
    list_filter = ("account_status", "kyc_verified")
    # Balances are ledger-managed; only the status is editable here.
    readonly_fields = (
        "landlord",
        "total_gross_earnings",
        "total_commission_paid",
        "total_net_earnings",
        "available_balance",
        "pending_balance",
        "total_payouts",
        "kyc_verified",
        "kyc_verified_at",
        "last_payout_at",
    )
