from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.authentication.permissions import IsAdmin

from .models import Order
from .serializers import DeliveryStatusSerializer, OrderCreateSerializer, OrderSerializer
from .services import apply_delivery_status, place_order


class OrderViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Storefront order creation is public; everything else is operator-only.
    """

    queryset = Order.objects.select_related("affiliate", "commission").all()
    serializer_class = OrderSerializer
    filterset_fields = ["affiliate", "delivery_status", "city"]
    search_fields = ["order_number", "customer_name", "phone", "affiliate_ref_code"]
    ordering_fields = ["created_at", "total_amount"]

    def get_permissions(self):
        if self.action == "create":
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated(), IsAdmin()]

    def create(self, request, *args, **kwargs):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        order = place_order(
            customer={
                "name": data["customer_name"],
                "email": data.get("email"),
                "phone": data["phone"],
                "city": data["city"],
                "address": data["address"],
            },
            total_amount=data["total_amount"],
            shipping_amount=data.get("shipping_amount"),
            ref_code=data.get("ref_code"),
            request=request,
        )
        return Response(
            {
                "ok": True,
                "order_id": order.id,
                "order_number": order.order_number,
                "affiliate_code": order.affiliate_ref_code,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["patch"], url_path="delivery-status")
    def delivery_status(self, request, pk=None):
        order = self.get_object()
        serializer = DeliveryStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = apply_delivery_status(
            order,
            serializer.validated_data["delivery_status"],
            delivered_at=serializer.validated_data.get("delivered_at"),
        )
        order.refresh_from_db()
        return Response(OrderSerializer(order).data)
