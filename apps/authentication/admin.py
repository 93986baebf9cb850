from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    fieldsets = (
        (None, {"fields": ("email", "password", "role")}),
        ("Personal info", {"fields": ("first_name", "last_name", "phone_number")}),
        # KYC status is what payout eligibility reads.
        ("KYC", {"fields": ("kyc_status", "kyc_verified_at")}),
        ("Payout destination", {"fields": ("stripe_account_id", "bank_name", "account_number", "account_name")}),
        ("Permissions", {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")}),
        ("Important dates", {"fields": ("last_login", "created_at", "updated_at")}),
    )
    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "first_name", "last_name", "role", "password1", "password2"),
            },
        ),
    )
    list_display = ("email", "first_name", "last_name", "role", "kyc_status", "is_active")
    search_fields = ("email", "first_name", "last_name")
    list_filter = ("role", "kyc_status", "is_active")
    ordering = ("email",)
    readonly_fields = ("created_at", "updated_at")
