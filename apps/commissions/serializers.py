from rest_framework import serializers

from apps.audit.models import AuditLog

from .models import PlatformSettings


class PlatformSettingsSerializer(serializers.ModelSerializer):
    last_updated_by_email = serializers.CharField(source="last_updated_by.email", read_only=True, default=None)

    class Meta:
        model = PlatformSettings
        fields = [
            "commission_rate",
            "effective_from",
            "version",
            "last_updated_by",
            "last_updated_by_email",
            "last_updated_at",
            "change_reason",
        ]


class CommissionRateUpdateSerializer(serializers.Serializer):
    rate = serializers.CharField()
    reason = serializers.CharField(allow_blank=True, required=False, default="")


class RateChangeLogSerializer(serializers.ModelSerializer):
    changed_by = serializers.CharField(source="user.email", read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ["id", "changed_by", "details", "ip_address", "created_at"]
