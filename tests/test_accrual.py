from datetime import timedelta
from decimal import Decimal
from unittest import mock

import pytest

from apps.affiliates.models import AffiliateTier
from apps.commissions.calculator import accrue_commission, pick_tier, resolve_tier
from apps.commissions.models import Commission
from apps.commissions.tasks import backfill_missing_commissions
from apps.orders.models import Order
from apps.orders.services import place_order

CUSTOMER = {
    "name": "Ayesha Malik",
    "email": None,
    "phone": "03211234567",
    "city": "Karachi",
    "address": "House 1, Street 2",
}


@pytest.mark.django_db
def test_accrues_pending_commission_at_affiliate_rate(affiliate, make_order, now):
    order = make_order(affiliate=affiliate, total="2500.00")

    commission = accrue_commission(order, now=now)

    assert commission.status == "pending"
    assert commission.commission_amount == Decimal("250.00")
    assert commission.commission_rate == Decimal("0.1000")
    assert commission.tier_name is None
    assert commission.payout_batch is None
    order.refresh_from_db()
    assert order.affiliate_commission_amount == Decimal("250.00")


@pytest.mark.django_db
def test_amount_rounds_half_up_to_cents(affiliate, make_order, now):
    order = make_order(affiliate=affiliate, total="333.35")

    assert accrue_commission(order, now=now).commission_amount == Decimal("33.34")


@pytest.mark.django_db
def test_accrual_is_idempotent(affiliate, make_order, now):
    order = make_order(affiliate=affiliate)

    first = accrue_commission(order, now=now)
    second = accrue_commission(order, now=now)

    assert first.pk == second.pk
    assert Commission.objects.filter(order=order).count() == 1


@pytest.mark.django_db
def test_no_commission_without_eligible_affiliate(make_affiliate, make_order, now):
    inactive = make_affiliate(code="IDLE001", active=False)

    assert accrue_commission(make_order(), now=now) is None
    assert accrue_commission(make_order(affiliate=inactive), now=now) is None
    assert Commission.objects.count() == 0


def test_pick_tier_uses_highest_reached_threshold():
    bronze = AffiliateTier(name="Bronze", min_delivered_orders_30d=0, rate_multiplier=Decimal("1.00"))
    silver = AffiliateTier(name="Silver", min_delivered_orders_30d=5, rate_multiplier=Decimal("1.20"))
    gold = AffiliateTier(name="Gold", min_delivered_orders_30d=10, rate_multiplier=Decimal("1.50"))
    tiers = [bronze, silver, gold]

    assert pick_tier(tiers, 0) is bronze
    assert pick_tier(tiers, 9) is silver
    assert pick_tier(tiers, 10) is gold
    assert pick_tier([silver], 3) is None


@pytest.mark.django_db
def test_tier_multiplier_applies_to_recent_delivered_volume(affiliate, make_order, gold_tier, now):
    make_order(affiliate=affiliate, delivery_status="delivered", delivered_at=now - timedelta(days=3))
    make_order(affiliate=affiliate, delivery_status="delivered", delivered_at=now - timedelta(days=29))
    make_order(affiliate=affiliate, delivery_status="delivered", delivered_at=now - timedelta(days=45))

    tier = resolve_tier(affiliate, now)
    assert tier.name == "Gold"
    assert tier.delivered_count_30d == 2

    commission = accrue_commission(make_order(affiliate=affiliate, total="1000.00"), now=now)
    assert commission.commission_rate == Decimal("0.1500")
    assert commission.base_commission == Decimal("100.00")
    assert commission.commission_amount == Decimal("150.00")
    assert commission.tier_name == "Gold"


@pytest.mark.django_db
def test_inactive_tier_is_ignored(affiliate, make_order, gold_tier, now):
    gold_tier.active = False
    gold_tier.save()
    make_order(affiliate=affiliate, delivery_status="delivered", delivered_at=now - timedelta(days=1))
    make_order(affiliate=affiliate, delivery_status="delivered", delivered_at=now - timedelta(days=2))

    tier = resolve_tier(affiliate, now)

    assert tier.name is None
    assert tier.multiplier == Decimal("1")


@pytest.mark.django_db
def test_place_order_attaches_commission(affiliate):
    order = place_order(customer=CUSTOMER, total_amount=Decimal("2500.00"), ref_code="sara123")

    assert order.affiliate == affiliate
    assert order.affiliate_ref_code == "SARA123"
    assert order.grand_total == Decimal("2500.00")
    assert order.commission.commission_amount == Decimal("250.00")


@pytest.mark.django_db
def test_accrual_failure_keeps_order_and_queues_retry(affiliate):
    with mock.patch("apps.orders.services.accrue_commission", side_effect=RuntimeError("db hiccup")), mock.patch(
        "apps.orders.services.accrue_order_commission"
    ) as task:
        order = place_order(
            customer=CUSTOMER,
            total_amount=Decimal("2500.00"),
            shipping_amount=Decimal("200.00"),
            ref_code="SARA123",
        )

    assert Order.objects.filter(pk=order.pk).exists()
    assert order.grand_total == Decimal("2700.00")
    assert not Commission.objects.filter(order=order).exists()
    task.delay.assert_called_once_with(str(order.id))


@pytest.mark.django_db
def test_backfill_creates_missing_commissions(affiliate, make_order):
    missing = make_order(affiliate=affiliate)
    make_order()

    assert backfill_missing_commissions() == 1
    assert Commission.objects.get(order=missing).commission_amount == Decimal("250.00")
    assert backfill_missing_commissions() == 0


@pytest.mark.django_db
def test_tier_scaled_amount_is_rounded_once(make_affiliate, make_order, now):
    AffiliateTier.objects.create(name="Silver", min_delivered_orders_30d=0, rate_multiplier=Decimal("1.25"))
    odd_rate = make_affiliate(code="ODD0001", commission_rate=Decimal("0.0333"))

    commission = accrue_commission(make_order(affiliate=odd_rate, total="100000.00"), now=now)

    assert commission.commission_amount == Decimal("4162.50")
    assert commission.commission_rate == Decimal("0.0416")
    assert commission.tier_multiplier == Decimal("1.25")
