from django.contrib import admin

from .models import PlatformSettings


@admin.register(PlatformSettings)
class PlatformSettingsAdmin(admin.ModelAdmin):
    list_display = ("commission_rate", "version", "effective_from", "last_updated_by", "last_updated_at")
    # Rate changes must go through update_commission_rate so they are audited.
    readonly_fields = (
        "commission_rate",
        "effective_from",
        "version",
        "last_updated_by",
        "last_updated_at",
        "change_reason",
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
