from rest_framework import serializers

from .models import Affiliate, AffiliateTier


class AffiliateSignupSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=Affiliate.TYPE_CHOICES, default="individual")
    name = serializers.CharField(max_length=255)
    parlour_name = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=20)
    city = serializers.CharField(max_length=100)
    password = serializers.CharField(write_only=True, min_length=6)
    how_heard = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate(self, attrs):
        if attrs.get("type") == "parlour" and not (attrs.get("parlour_name") or "").strip():
            raise serializers.ValidationError({"parlour_name": "Parlour name is required for parlour affiliates."})
        for field in ("name", "phone", "city"):
            attrs[field] = attrs[field].strip()
            if not attrs[field]:
                raise serializers.ValidationError({field: "This field may not be blank."})
        return attrs


class AffiliateProfileSerializer(serializers.ModelSerializer):
    """Fields an affiliate may change about themselves."""

    payout_method = serializers.ChoiceField(
        choices=[("easypaisa", "EasyPaisa"), ("bank_transfer", "Bank transfer"), ("", "Not set")],
        required=False,
        allow_blank=True,
    )

    class Meta:
        model = Affiliate
        fields = [
            "name",
            "parlour_name",
            "phone",
            "whatsapp_number",
            "city",
            "address",
            "payout_method",
            "easypaisa_number",
            "bank_name",
            "bank_account_name",
            "bank_account_number",
            "bank_iban",
            "profile_updated_at",
        ]
        read_only_fields = ["profile_updated_at"]

    def validate(self, attrs):
        method = attrs.get("payout_method", self.instance.payout_method if self.instance else "")
        easypaisa = attrs.get("easypaisa_number", getattr(self.instance, "easypaisa_number", None))
        account = attrs.get("bank_account_number", getattr(self.instance, "bank_account_number", None))
        if method == "easypaisa" and not easypaisa:
            raise serializers.ValidationError({"easypaisa_number": "EasyPaisa number is required for EasyPaisa payouts."})
        if method == "bank_transfer" and not account:
            raise serializers.ValidationError({"bank_account_number": "Account number is required for bank transfers."})
        return attrs


class AdminAffiliateSerializer(serializers.ModelSerializer):
    stats = serializers.SerializerMethodField()

    class Meta:
        model = Affiliate
        fields = [
            "id",
            "type",
            "name",
            "parlour_name",
            "email",
            "phone",
            "city",
            "code",
            "active",
            "status",
            "strike_count",
            "commission_rate",
            "payout_method",
            "easypaisa_number",
            "bank_name",
            "bank_account_name",
            "bank_account_number",
            "bank_iban",
            "notes",
            "created_at",
            "stats",
        ]
        read_only_fields = [
            "id",
            "type",
            "name",
            "parlour_name",
            "email",
            "phone",
            "city",
            "code",
            "active",
            "strike_count",
            "payout_method",
            "easypaisa_number",
            "bank_name",
            "bank_account_name",
            "bank_account_number",
            "bank_iban",
            "created_at",
        ]

    def get_stats(self, obj):
        return self.context.get("stats", {}).get(obj.id)

    def validate_commission_rate(self, value):
        if value < 0 or value > 1:
            raise serializers.ValidationError("Commission rate must be between 0 and 1.")
        return value


class ToggleStatusSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=255)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class AffiliateTierSerializer(serializers.ModelSerializer):
    class Meta:
        model = AffiliateTier
        fields = ["id", "name", "min_delivered_orders_30d", "rate_multiplier", "active", "created_at"]
        read_only_fields = ["id", "created_at"]

    def validate_rate_multiplier(self, value):
        if value <= 0:
            raise serializers.ValidationError("Multiplier must be greater than zero.")
        return value
