from rest_framework import serializers

from .models import PayoutRequest


class PayoutRequestSerializer(serializers.ModelSerializer):
    landlord_email = serializers.CharField(source="landlord.email", read_only=True)
    related_payments = serializers.PrimaryKeyRelatedField(many=True, read_only=True)

    class Meta:
        model = PayoutRequest
        fields = [
            "id",
            "landlord",
            "landlord_email",
            "amount",
            "currency",
            "payment_method",
            "bank_details",
            "destination_account_id",
            "status",
            "related_payments",
            "transfer_reference",
            "failure_reason",
            "rejection_reason",
            "admin_notes",
            "reviewed_at",
            "requested_at",
            "approved_at",
            "processed_at",
            "completed_at",
        ]
        read_only_fields = fields


class PayoutCreateSerializer(serializers.Serializer):
    amount = serializers.IntegerField(min_value=1)
    payment_method = serializers.ChoiceField(choices=PayoutRequest.METHOD_CHOICES, default="stripe_connect")
    destination_account_id = serializers.CharField(required=False, allow_blank=True)
    bank_name = serializers.CharField(required=False, allow_blank=True)
    account_number = serializers.CharField(required=False, allow_blank=True)
    account_name = serializers.CharField(required=False, allow_blank=True)


class PayoutReviewSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class PayoutReasonSerializer(serializers.Serializer):
    reason = serializers.CharField()


class PayoutReferenceSerializer(serializers.Serializer):
    transfer_reference = serializers.CharField(required=False, allow_blank=True)
