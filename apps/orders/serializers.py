from decimal import Decimal

from rest_framework import serializers

from .models import Order


class OrderSerializer(serializers.ModelSerializer):
    affiliate_code = serializers.CharField(source="affiliate.code", read_only=True, allow_null=True, default=None)
    commission_status = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = "__all__"
        read_only_fields = [
            "id",
            "order_number",
            "affiliate",
            "affiliate_ref_code",
            "affiliate_commission_amount",
            "delivered_at",
            "failed_at",
            "created_at",
            "updated_at",
        ]

    def get_commission_status(self, obj: Order) -> str | None:
        commission = getattr(obj, "commission", None)
        return commission.status if commission else None


class OrderCreateSerializer(serializers.Serializer):
    """
    Storefront checkout payload. ``ref_code`` is the code typed in at
    checkout, if any; it overrides the attribution cookie.
    """

    customer_name = serializers.CharField(max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    phone = serializers.CharField(max_length=20)
    city = serializers.CharField(max_length=100)
    address = serializers.CharField()
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.01"))
    shipping_amount = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal("0"),
        required=False,
        default=Decimal("0"),
    )
    ref_code = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=32)


class DeliveryStatusSerializer(serializers.Serializer):
    delivery_status = serializers.ChoiceField(choices=Order.DELIVERY_STATUS_CHOICES)
    delivered_at = serializers.DateTimeField(required=False, allow_null=True)
