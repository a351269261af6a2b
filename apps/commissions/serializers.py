from rest_framework import serializers

from .models import Commission, PayoutBatch


class CommissionSerializer(serializers.ModelSerializer):
    affiliate_code = serializers.CharField(source="affiliate.code", read_only=True)
    order_number = serializers.CharField(source="order.order_number", read_only=True)
    order_total = serializers.DecimalField(source="order.total_amount", max_digits=12, decimal_places=2, read_only=True)
    delivery_status = serializers.CharField(source="order.delivery_status", read_only=True)

    class Meta:
        model = Commission
        fields = [
            "id",
            "affiliate",
            "affiliate_code",
            "order",
            "order_number",
            "order_total",
            "delivery_status",
            "base_commission",
            "commission_rate",
            "tier_name",
            "tier_multiplier",
            "commission_amount",
            "status",
            "payable_at",
            "paid_at",
            "voided_at",
            "void_reason",
            "payout_batch",
            "created_at",
            "updated_at",
        ]


class PayoutBatchSerializer(serializers.ModelSerializer):
    created_by_email = serializers.EmailField(source="created_by.email", read_only=True, default=None)
    processed_by_email = serializers.EmailField(source="processed_by.email", read_only=True, default=None)

    class Meta:
        model = PayoutBatch
        fields = [
            "id",
            "batch_date",
            "period_start",
            "period_end",
            "total_commissions",
            "total_affiliates",
            "commission_count",
            "status",
            "notes",
            "created_by_email",
            "processed_by_email",
            "created_at",
            "processed_at",
        ]


class CreatePayoutBatchSerializer(serializers.Serializer):
    batch_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=2000)
