"""
Read-side views of the ledger for affiliates and operators.

Every entry point syncs maturity first so that the statuses reported here
match what a payout batch would see.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from django.conf import settings
from django.db.models import Count, Max, Q, Sum
from django.utils import timezone

from apps.commissions.calculator import pick_tier, resolve_tier
from apps.commissions.maturity import sync_maturity
from apps.commissions.models import Commission
from apps.commissions.services import next_payout_date, payout_destination
from apps.orders.models import Order

from .models import Affiliate, AffiliateTier
from .services import masked_customer

ORDER_RANGES = ("this_month", "last_month", "last_2_months")
COMMISSION_STATUSES = ("pending", "payable", "paid", "void")
ZERO = Decimal("0")


def _month_start(moment: datetime, months_back: int = 0) -> datetime:
    year, month = moment.year, moment.month - months_back
    while month <= 0:
        year -= 1
        month += 12
    return moment.replace(year=year, month=month, day=1, hour=0, minute=0, second=0, microsecond=0)


def range_bounds(range_name: str, now: datetime) -> tuple[datetime, datetime]:
    local_now = timezone.localtime(now)
    if range_name == "last_month":
        return _month_start(local_now, 1), _month_start(local_now)
    if range_name == "last_2_months":
        return _month_start(local_now, 2), local_now
    return _month_start(local_now), local_now


def clamp_limit(raw, default: int = 20) -> int:
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        return default
    return max(10, min(50, limit))


def _positive_int(raw, default: int = 1) -> int:
    try:
        return max(1, int(raw))
    except (TypeError, ValueError):
        return default


def status_totals(commissions) -> dict:
    rows = commissions.values("status").annotate(count=Count("id"), amount=Sum("commission_amount"))
    totals = {status: {"count": 0, "amount": ZERO} for status in COMMISSION_STATUSES}
    for row in rows:
        totals[row["status"]] = {"count": row["count"], "amount": row["amount"] or ZERO}
    return totals


def affiliate_dashboard(affiliate: Affiliate, now: datetime | None = None) -> dict:
    now = now or timezone.now()
    sync_maturity(now, affiliate=affiliate)
    tier = resolve_tier(affiliate, now)
    orders = Order.objects.filter(affiliate=affiliate).aggregate(count=Count("id"), sales=Sum("total_amount"))
    by_status = status_totals(Commission.objects.filter(affiliate=affiliate))
    method, account = payout_destination(affiliate)

    return {
        "affiliate": {
            "id": affiliate.id,
            "name": affiliate.name,
            "parlour_name": affiliate.parlour_name,
            "city": affiliate.city,
            "code": affiliate.code,
            "active": affiliate.active,
            "status": affiliate.status,
            "strike_count": affiliate.strike_count,
            "commission_rate": affiliate.commission_rate,
            "payout_method": method,
            "payout_account": account,
        },
        "tier": {
            "name": tier.name,
            "multiplier": tier.multiplier,
            "delivered_count_30d": tier.delivered_count_30d,
        },
        "stats": {
            "total_orders": orders["count"] or 0,
            "total_sales": orders["sales"] or ZERO,
            "total_commission": sum((v["amount"] for k, v in by_status.items() if k != "void"), ZERO),
            "by_status": by_status,
        },
        "next_payout_date": next_payout_date(timezone.localdate(now)),
    }


def order_history(
    affiliate: Affiliate,
    range_name: str | None = None,
    page=1,
    limit=20,
    now: datetime | None = None,
) -> dict:
    """
    One page of the affiliate's commissions in a calendar range, newest
    first, with customer details masked.
    """
    now = now or timezone.now()
    range_name = range_name if range_name in ORDER_RANGES else "this_month"
    page = _positive_int(page)
    limit = clamp_limit(limit)
    offset = (page - 1) * limit

    sync_maturity(now, affiliate=affiliate)
    start, end = range_bounds(range_name, now)
    in_range = Commission.objects.filter(affiliate=affiliate, created_at__gte=start)
    if range_name == "last_month":
        in_range = in_range.filter(created_at__lt=end)
    else:
        in_range = in_range.filter(created_at__lte=end)

    total = in_range.count()
    rows = in_range.select_related("order", "payout_batch").order_by("-created_at")[offset : offset + limit]

    orders = []
    for commission in rows:
        order = commission.order
        orders.append(
            {
                "id": order.id,
                "order_code": order.order_code,
                "date": order.created_at,
                "delivery_status": order.delivery_status,
                "order_total": order.grand_total or order.total_amount,
                "commission_amount": commission.commission_amount,
                "commission_status": commission.status,
                "customer": masked_customer(order),
                "paid_in": commission.payout_batch.batch_date if commission.payout_batch_id else None,
            }
        )

    by_status = status_totals(in_range)
    return {
        "range": range_name,
        "orders": orders,
        "summary": {
            "total_orders": total,
            "total_commission": sum((v["amount"] for v in by_status.values()), ZERO),
            "pending_commission": by_status["pending"]["amount"],
            "payable_commission": by_status["payable"]["amount"],
            "paid_commission": by_status["paid"]["amount"],
            "void_commission": by_status["void"]["amount"],
        },
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "has_more": total > offset + limit,
        },
    }


def admin_affiliate_stats(affiliate_ids, now: datetime | None = None) -> dict:
    """Per-affiliate operator stats keyed by affiliate id."""
    now = now or timezone.now()
    sync_maturity(now)
    window_start = now - timedelta(days=settings.AFFILIATE_TIER_WINDOW_DAYS)
    affiliate_ids = list(affiliate_ids)

    stats = {
        affiliate_id: {
            "total_orders": 0,
            "total_sales": ZERO,
            "total_commission": ZERO,
            "last_order_date": None,
            "delivered_count_30d": 0,
            "payable_amount": ZERO,
            "void_rate_30d": 0.0,
        }
        for affiliate_id in affiliate_ids
    }

    order_rows = (
        Order.objects.filter(affiliate_id__in=affiliate_ids)
        .values("affiliate_id")
        .annotate(
            total_orders=Count("id"),
            total_sales=Sum("total_amount"),
            total_commission=Sum("affiliate_commission_amount"),
            last_order_date=Max("created_at"),
            delivered_count_30d=Count(
                "id",
                filter=Q(delivery_status="delivered", delivered_at__gte=window_start),
            ),
        )
    )
    for row in order_rows:
        entry = stats[row["affiliate_id"]]
        entry["total_orders"] = row["total_orders"]
        entry["total_sales"] = row["total_sales"] or ZERO
        entry["total_commission"] = row["total_commission"] or ZERO
        entry["last_order_date"] = row["last_order_date"]
        entry["delivered_count_30d"] = row["delivered_count_30d"]

    payable_rows = (
        Commission.objects.filter(affiliate_id__in=affiliate_ids, status="payable", payout_batch__isnull=True)
        .values("affiliate_id")
        .annotate(amount=Sum("commission_amount"))
    )
    for row in payable_rows:
        stats[row["affiliate_id"]]["payable_amount"] = row["amount"] or ZERO

    void_rows = (
        Commission.objects.filter(affiliate_id__in=affiliate_ids, created_at__gte=window_start)
        .values("affiliate_id")
        .annotate(total=Count("id"), voided=Count("id", filter=Q(status="void")))
    )
    for row in void_rows:
        if row["total"]:
            stats[row["affiliate_id"]]["void_rate_30d"] = round(row["voided"] * 100 / row["total"], 1)

    tiers = list(AffiliateTier.objects.filter(active=True).order_by("min_delivered_orders_30d", "id"))
    for entry in stats.values():
        tier = pick_tier(tiers, entry["delivered_count_30d"])
        entry["tier"] = tier.name if tier else None

    return stats
