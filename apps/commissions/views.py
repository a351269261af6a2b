from django.utils import timezone
from rest_framework import permissions, status, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authentication.permissions import IsAdmin

from .models import Commission
from .serializers import CommissionSerializer, CreatePayoutBatchSerializer, PayoutBatchSerializer
from .services import (
    create_payout_batch,
    get_batch_detail,
    list_batches,
    list_payable_candidates,
    mark_batch_paid,
    payout_summary,
)


class CommissionViewSet(viewsets.ReadOnlyModelViewSet):
    """Operator view of the commission ledger."""

    queryset = Commission.objects.select_related("affiliate", "order").all()
    serializer_class = CommissionSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdmin]
    filterset_fields = ["status", "affiliate", "payout_batch"]
    search_fields = ["affiliate__code", "order__order_number"]
    ordering_fields = ["created_at", "commission_amount", "payable_at"]


class PayoutCandidatesView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    def get(self, request):
        return Response({"ok": True, **list_payable_candidates(timezone.now())})


class PayoutSummaryView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    def get(self, request):
        data = payout_summary(timezone.now())
        last_batch = data["last_batch"]
        return Response(
            {
                "ok": True,
                "summary": data["summary"],
                "last_batch": PayoutBatchSerializer(last_batch).data if last_batch else None,
                "recent_batches": PayoutBatchSerializer(data["recent_batches"], many=True).data,
            }
        )


class PayoutBatchListView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    def get(self, request):
        return Response({"ok": True, "batches": PayoutBatchSerializer(list_batches(), many=True).data})

    def post(self, request):
        serializer = CreatePayoutBatchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        batch = create_payout_batch(
            batch_date=serializer.validated_data.get("batch_date"),
            notes=serializer.validated_data.get("notes"),
            created_by=request.user,
        )
        return Response(
            {"ok": True, "batch": PayoutBatchSerializer(batch).data},
            status=status.HTTP_201_CREATED,
        )


class PayoutBatchDetailView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    def get(self, request, batch_id):
        detail = get_batch_detail(batch_id)
        return Response(
            {
                "ok": True,
                "batch": PayoutBatchSerializer(detail["batch"]).data,
                "affiliates": detail["affiliates"],
                "totals": detail["totals"],
            }
        )


class PayoutBatchMarkPaidView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    def post(self, request, batch_id):
        batch, paid = mark_batch_paid(batch_id, processed_by=request.user)
        return Response(
            {
                "ok": True,
                "batch": PayoutBatchSerializer(batch).data,
                "commissions_paid": paid,
            }
        )
