from django.urls import path
from rest_framework.routers import SimpleRouter

from .views import (
    CommissionViewSet,
    PayoutBatchDetailView,
    PayoutBatchListView,
    PayoutBatchMarkPaidView,
    PayoutCandidatesView,
    PayoutSummaryView,
)

router = SimpleRouter()
router.register("", CommissionViewSet, basename="commission")

urlpatterns = [
    path("payouts/candidates/", PayoutCandidatesView.as_view(), name="payout-candidates"),
    path("payouts/summary/", PayoutSummaryView.as_view(), name="payout-summary"),
    path("payouts/batches/", PayoutBatchListView.as_view(), name="payout-batch-list"),
    path("payouts/batches/<uuid:batch_id>/", PayoutBatchDetailView.as_view(), name="payout-batch-detail"),
    path(
        "payouts/batches/<uuid:batch_id>/mark-paid/",
        PayoutBatchMarkPaidView.as_view(),
        name="payout-batch-mark-paid",
    ),
] + router.urls
