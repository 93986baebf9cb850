from django.contrib.auth import get_user_model
from rest_framework import serializers

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "role",
            "first_name",
            "last_name",
            "phone_number",
            "kyc_status",
            "bank_name",
            "account_number",
            "account_name",
            "stripe_account_id",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "email", "role", "kyc_status", "is_active", "created_at", "updated_at"]
