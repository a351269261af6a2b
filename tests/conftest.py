import uuid
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from apps.affiliates.models import Affiliate, AffiliateTier
from apps.commissions.calculator import accrue_commission
from apps.orders.models import Order

User = get_user_model()

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=dt_timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email="ops@example.com",
        password="Admin123!",
        full_name="Ops Admin",
        role="admin",
        is_staff=True,
    )


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture
def make_affiliate(db):
    def _make(code="SARA123", active=True, email=None, user=None, **extra):
        defaults = {
            "name": "Sara Khan",
            "phone": "03001234567",
            "city": "Lahore",
            "commission_rate": Decimal("0.10"),
        }
        defaults.update(extra)
        return Affiliate.objects.create(
            code=code,
            active=active,
            email=email or f"{code.lower()}@example.com",
            user=user,
            **defaults,
        )

    return _make


@pytest.fixture
def affiliate(make_affiliate):
    return make_affiliate()


@pytest.fixture
def affiliate_user(db):
    return User.objects.create_user(
        email="sara@example.com",
        password="Affiliate123!",
        full_name="Sara Khan",
        role="affiliate",
    )


@pytest.fixture
def affiliate_client(affiliate_user):
    client = APIClient()
    client.force_authenticate(user=affiliate_user)
    return client


@pytest.fixture
def make_order(db):
    def _make(affiliate=None, total="2500.00", delivery_status="pending", delivered_at=None, **extra):
        defaults = {
            "customer_name": "Ayesha Malik",
            "phone": "03211234567",
            "city": "Karachi",
            "address": "House 1, Street 2",
            "shipping_amount": Decimal("200.00"),
        }
        defaults.update(extra)
        total = Decimal(total)
        return Order.objects.create(
            order_number=f"ORD-{uuid.uuid4().hex[:10].upper()}",
            affiliate=affiliate,
            affiliate_ref_code=affiliate.code if affiliate else None,
            total_amount=total,
            grand_total=total + defaults["shipping_amount"],
            delivery_status=delivery_status,
            delivered_at=delivered_at,
            **defaults,
        )

    return _make


@pytest.fixture
def make_commission(make_order):
    def _make(affiliate, total="2500.00", delivery_status="pending", delivered_at=None, now=NOW):
        order = make_order(
            affiliate=affiliate,
            total=total,
            delivery_status=delivery_status,
            delivered_at=delivered_at,
        )
        return accrue_commission(order, now=now)

    return _make


@pytest.fixture
def gold_tier(db):
    return AffiliateTier.objects.create(name="Gold", min_delivered_orders_30d=2, rate_multiplier=Decimal("1.50"))
