from __future__ import annotations

import logging
import uuid
from datetime import datetime
from decimal import Decimal

from django.db import transaction
from django.http import HttpRequest
from django.utils import timezone

from apps.affiliates.attribution import read_campaign, resolve_order_affiliate
from apps.affiliates.services import refresh_strikes
from apps.commissions.calculator import accrue_commission
from apps.commissions.maturity import on_delivery_status_changed
from apps.commissions.tasks import accrue_order_commission
from core.exceptions import ValidationFailed

from .models import Order

logger = logging.getLogger(__name__)

DELIVERY_STATUSES = {choice for choice, _ in Order.DELIVERY_STATUS_CHOICES}


def _generate_order_number(prefix: str = "ORD") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10].upper()}"


def place_order(
    *,
    customer: dict,
    total_amount: Decimal,
    shipping_amount: Decimal = Decimal("0"),
    ref_code: str | None = None,
    request: HttpRequest | None = None,
) -> Order:
    """
    Persist a storefront order and attach its affiliate commission.

    The order is committed before any commission bookkeeping happens. If
    accrual fails the order still stands; the failure is logged and handed
    to the ``accrue_order_commission`` task for retry.
    """
    affiliate = resolve_order_affiliate(request, explicit_code=ref_code)
    campaign = read_campaign(request) if request is not None else {}

    with transaction.atomic():
        order = Order.objects.create(
            order_number=_generate_order_number(),
            affiliate=affiliate,
            affiliate_ref_code=affiliate.code if affiliate else None,
            customer_name=customer["name"],
            email=customer.get("email") or None,
            phone=customer["phone"],
            city=customer["city"],
            address=customer["address"],
            total_amount=total_amount,
            shipping_amount=shipping_amount,
            grand_total=total_amount + shipping_amount,
            **campaign,
        )

    if affiliate is not None:
        _attach_commission(order)
    return order


def _attach_commission(order: Order) -> None:
    try:
        with transaction.atomic():
            accrue_commission(order)
    except Exception:  # noqa: BLE001
        logger.exception(
            "Commission accrual failed for order %s (affiliate %s, total %s); queued for retry",
            order.id,
            order.affiliate_id,
            order.total_amount,
        )
        try:
            accrue_order_commission.delay(str(order.id))
        except Exception:  # noqa: BLE001
            logger.exception("Could not queue commission retry for order %s", order.id)


def apply_delivery_status(
    order: Order,
    delivery_status: str,
    delivered_at: datetime | None = None,
    now: datetime | None = None,
) -> Order:
    if delivery_status not in DELIVERY_STATUSES:
        raise ValidationFailed(f"Unknown delivery status '{delivery_status}'", code="invalid_delivery_status")

    now = now or timezone.now()
    order.delivery_status = delivery_status
    update_fields = ["delivery_status", "updated_at"]
    if delivery_status == "delivered":
        order.delivered_at = delivered_at or order.delivered_at or now
        update_fields.append("delivered_at")
    elif delivery_status == "failed":
        order.failed_at = now
        update_fields.append("failed_at")

    with transaction.atomic():
        order.save(update_fields=update_fields)
        on_delivery_status_changed(order, now=now)
        if delivery_status == "failed" and order.affiliate_id:
            refresh_strikes(order.affiliate, now=now)

    logger.info("Order %s delivery status -> %s", order.order_number, delivery_status)
    return order
