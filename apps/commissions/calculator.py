from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.utils import timezone

from apps.affiliates.models import Affiliate, AffiliateTier
from apps.orders.models import Order

from .models import Commission

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")


@dataclass(frozen=True)
class TierResult:
    name: str | None
    multiplier: Decimal
    delivered_count_30d: int


def delivered_count(affiliate: Affiliate, now: datetime | None = None) -> int:
    now = now or timezone.now()
    since = now - timedelta(days=settings.AFFILIATE_TIER_WINDOW_DAYS)
    return Order.objects.filter(
        affiliate=affiliate,
        delivery_status="delivered",
        delivered_at__gte=since,
        delivered_at__lte=now,
    ).count()


def pick_tier(tiers, count: int) -> AffiliateTier | None:
    """Highest threshold that ``count`` reaches; tiers must be sorted ascending."""
    chosen = None
    for tier in tiers:
        if count >= tier.min_delivered_orders_30d:
            chosen = tier
    return chosen


def resolve_tier(affiliate: Affiliate, now: datetime | None = None) -> TierResult:
    count = delivered_count(affiliate, now)
    tiers = AffiliateTier.objects.filter(active=True).order_by("min_delivered_orders_30d", "id")
    tier = pick_tier(tiers, count)
    if tier is None:
        return TierResult(name=None, multiplier=Decimal("1"), delivered_count_30d=count)
    return TierResult(name=tier.name, multiplier=tier.rate_multiplier, delivered_count_30d=count)


def effective_rate(affiliate: Affiliate, now: datetime | None = None) -> tuple[Decimal, TierResult]:
    """Tier-scaled rate, unrounded. Only the stored column is cut to four places."""
    tier = resolve_tier(affiliate, now)
    return affiliate.commission_rate * tier.multiplier, tier


def accrue_commission(order: Order, now: datetime | None = None) -> Commission | None:
    """
    Record the pending commission for an affiliated order.

    Returns the existing row if the order already has one, and None when
    the order has no affiliate or the affiliate is no longer eligible.
    """
    if order.affiliate_id is None:
        return None

    existing = Commission.objects.filter(order=order).first()
    if existing:
        return existing

    affiliate = order.affiliate
    if not affiliate.is_attribution_eligible:
        logger.info(
            "Skipping commission for order %s: affiliate %s is not eligible (active=%s, status=%s)",
            order.id,
            affiliate.code,
            affiliate.active,
            affiliate.status,
        )
        return None

    rate, tier = effective_rate(affiliate, now)
    base_commission = (order.total_amount * affiliate.commission_rate).quantize(CENTS, rounding=ROUND_HALF_UP)
    commission_amount = (order.total_amount * rate).quantize(CENTS, rounding=ROUND_HALF_UP)

    commission = Commission.objects.create(
        affiliate=affiliate,
        order=order,
        base_commission=base_commission,
        commission_rate=rate.quantize(RATE_PLACES, rounding=ROUND_HALF_UP),
        tier_name=tier.name,
        tier_multiplier=tier.multiplier,
        commission_amount=commission_amount,
        status="pending",
    )

    Order.objects.filter(pk=order.pk).update(affiliate_commission_amount=commission_amount)
    order.affiliate_commission_amount = commission_amount

    logger.info(
        "Accrued commission %s for order %s: %s x %s = %s (tier %s)",
        commission.id,
        order.id,
        order.total_amount,
        rate,
        commission_amount,
        tier.name or "none",
    )
    return commission
