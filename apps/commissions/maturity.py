"""
Commission maturity.

A commission's status follows the delivery outcome of its order:

    pending --(order failed/returned/cancelled)--> void      (terminal)
    pending --(delivered and holding period over)--> payable
    payable --(claimed by a batch, batch marked paid)--> paid (terminal)

There is no scheduler behind this. ``derive_status`` is a pure function of
the stored timestamps, and the ledger is brought in line with it whenever it
is read (``sync_maturity``) or when an order's delivery status changes
(``on_delivery_status_changed``). The hourly Celery task only calls the same
sync so that stored rows stay fresh for ad-hoc SQL reporting.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from apps.orders.models import Order

from .models import Commission

logger = logging.getLogger(__name__)

VOID_DELIVERY_STATUSES = ("failed", "returned", "cancelled")


def holding_period() -> timedelta:
    return timedelta(days=settings.AFFILIATE_COMMISSION_HOLD_DAYS)


def derive_status(
    current: str,
    delivery_status: str,
    delivered_at: datetime | None,
    now: datetime,
    claimed: bool = False,
) -> str:
    if current in Commission.TERMINAL_STATUSES:
        return current
    if claimed:
        # A batch owns it now; only mark-paid moves it on.
        return current
    if delivery_status in VOID_DELIVERY_STATUSES:
        return "void"
    if delivery_status == "delivered" and delivered_at is not None and now - delivered_at >= holding_period():
        return "payable"
    return "pending"


def expected_payable_at(order: Order) -> datetime | None:
    if order.delivery_status == "delivered" and order.delivered_at is not None:
        return order.delivered_at + holding_period()
    return None


def refresh_commission(commission: Commission, now: datetime | None = None) -> Commission:
    now = now or timezone.now()
    order = commission.order
    claimed = commission.payout_batch_id is not None
    if commission.status in Commission.TERMINAL_STATUSES or claimed:
        return commission

    new_status = derive_status(commission.status, order.delivery_status, order.delivered_at, now)
    update_fields = []

    payable_at = expected_payable_at(order)
    if new_status != "void" and commission.payable_at != payable_at:
        commission.payable_at = payable_at
        update_fields.append("payable_at")

    if new_status != commission.status:
        logger.info(
            "Commission %s (order %s) %s -> %s",
            commission.id,
            order.id,
            commission.status,
            new_status,
        )
        commission.status = new_status
        update_fields.append("status")
        if new_status == "void":
            commission.voided_at = now
            commission.void_reason = f"order {order.delivery_status}"
            update_fields += ["voided_at", "void_reason"]

    if update_fields:
        commission.save(update_fields=update_fields + ["updated_at"])
    return commission


def on_delivery_status_changed(order: Order, now: datetime | None = None) -> Commission | None:
    commission = Commission.objects.select_related("order").filter(order=order).first()
    if commission is None:
        return None

    if commission.payout_batch_id is not None and commission.status != "paid" and order.delivery_status in VOID_DELIVERY_STATUSES:
        logger.warning(
            "Order %s became %s but its commission %s is already claimed by batch %s; needs manual review",
            order.id,
            order.delivery_status,
            commission.id,
            commission.payout_batch_id,
        )
    return refresh_commission(commission, now)


def sync_maturity(now: datetime | None = None, affiliate=None) -> tuple[int, int]:
    """
    Persist every derived transition for unclaimed commissions.

    Returns ``(voided, matured)`` counts.
    """
    now = now or timezone.now()
    threshold = now - holding_period()

    unclaimed = Commission.objects.filter(payout_batch__isnull=True)
    if affiliate is not None:
        unclaimed = unclaimed.filter(affiliate=affiliate)

    voided = 0
    for delivery_status in VOID_DELIVERY_STATUSES:
        voided += unclaimed.filter(
            status__in=["pending", "payable"],
            order__delivery_status=delivery_status,
        ).update(status="void", voided_at=now, void_reason=f"order {delivery_status}", updated_at=now)

    # Payable rows whose order moved back out of a matured delivery.
    reverted = list(
        unclaimed.select_related("order")
        .filter(status="payable")
        .exclude(Q(order__delivery_status="delivered") & Q(order__delivered_at__lte=threshold))
    )
    for commission in reverted:
        commission.status = "pending"
        commission.payable_at = expected_payable_at(commission.order)
        commission.updated_at = now
    if reverted:
        Commission.objects.bulk_update(reverted, ["status", "payable_at", "updated_at"])

    maturing = list(
        unclaimed.select_related("order").filter(
            status="pending",
            order__delivery_status="delivered",
            order__delivered_at__lte=threshold,
        )
    )
    for commission in maturing:
        commission.status = "payable"
        commission.payable_at = expected_payable_at(commission.order)
        commission.updated_at = now
    if maturing:
        Commission.objects.bulk_update(maturing, ["status", "payable_at", "updated_at"])

    if voided or maturing:
        logger.info("Maturity sync at %s: %s voided, %s matured", now.isoformat(), voided, len(maturing))
    return voided, len(maturing)
