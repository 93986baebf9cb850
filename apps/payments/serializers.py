from rest_framework import serializers

from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    property_title = serializers.CharField(source="application.property_title", read_only=True)
    formatted_amount = serializers.CharField(read_only=True)
    escrow_state = serializers.CharField(read_only=True)
    is_escrow_expired = serializers.BooleanField(read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "application",
            "property_title",
            "user",
            "amount",
            "formatted_amount",
            "currency",
            "status",
            "payment_type",
            "description",
            "is_escrow",
            "escrow_state",
            "escrow_held_at",
            "escrow_expires_at",
            "escrow_released_at",
            "is_escrow_expired",
            "property_visited",
            "documents_received",
            "rent_period_start",
            "rent_period_end",
            "commission_rate",
            "commission_amount",
            "landlord_net_amount",
            "allocated_to_payout",
            "payout_request",
            "refund_amount",
            "refund_reason",
            "refunded_at",
            "failure_reason",
            "created_at",
        ]
        read_only_fields = fields


class EscrowRefundSerializer(serializers.Serializer):
    reason = serializers.CharField()
