from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from rest_framework import serializers

User = get_user_model()


class LinkedAffiliateSerializer(serializers.Serializer):
    """Just enough of the affiliate profile for the client to pick a landing page."""

    id = serializers.UUIDField()
    code = serializers.CharField()
    active = serializers.BooleanField()
    status = serializers.CharField()


class UserSerializer(serializers.ModelSerializer):
    affiliate = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "role",
            "full_name",
            "phone_number",
            "is_active",
            "affiliate",
            "created_at",
            "updated_at",
        ]
        # Role and email changes go through the operator admin, not self-service.
        read_only_fields = ["id", "email", "role", "is_active", "affiliate", "created_at", "updated_at"]

    def get_affiliate(self, obj):
        affiliate = linked_affiliate(obj)
        if affiliate is None:
            return None
        return LinkedAffiliateSerializer(affiliate).data


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)

    def validate_email(self, value):
        return value.strip().lower()


def linked_affiliate(user):
    """Return the affiliate profile behind a login, or None for operators and customers."""
    if getattr(user, "role", None) != "affiliate":
        return None
    try:
        return user.affiliate
    except ObjectDoesNotExist:
        return None
