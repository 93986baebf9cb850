from django.contrib import admin

from .models import Application


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ("id", "property_title", "client", "landlord", "status", "application_fee_paid", "created_at")
    search_fields = ("property_title", "client__email", "landlord__email")
    list_filter = ("status", "application_fee_paid")
