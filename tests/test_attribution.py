from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.conf import settings
from django.http import HttpResponse
from django.test import RequestFactory
from freezegun import freeze_time

from apps.affiliates.attribution import (
    capture_referral,
    find_eligible_affiliate,
    normalize_code,
    read_attribution_code,
    resolve_order_affiliate,
)
from apps.orders.models import Order

ORDER_PAYLOAD = {
    "customer_name": "Ayesha Malik",
    "phone": "03211234567",
    "city": "Karachi",
    "address": "House 1, Street 2",
    "total_amount": "2500.00",
}


def _signed_request(code):
    """A request that already carries a signed attribution cookie for ``code``."""
    response = HttpResponse()
    response.set_signed_cookie(settings.AFFILIATE_ATTRIBUTION_COOKIE, code, salt=settings.AFFILIATE_COOKIE_SALT)
    request = RequestFactory().get("/")
    request.COOKIES[settings.AFFILIATE_ATTRIBUTION_COOKIE] = response.cookies[settings.AFFILIATE_ATTRIBUTION_COOKIE].value
    return request


@pytest.mark.parametrize(
    "raw, expected",
    [
        (" sara123 ", "SARA123"),
        ("ABCD", "ABCD"),
        ("ABC", None),
        ("SARA-123", None),
        ("A" * 13, None),
        ("", None),
        (None, None),
    ],
)
def test_normalize_code(raw, expected):
    assert normalize_code(raw) == expected


@pytest.mark.django_db
def test_find_eligible_affiliate_skips_inactive_and_blocked(make_affiliate):
    make_affiliate(code="ACTV001")
    make_affiliate(code="IDLE001", active=False)
    make_affiliate(code="SUSP001", status="suspended")
    make_affiliate(code="WARN001", status="warning")

    assert find_eligible_affiliate("actv001").code == "ACTV001"
    assert find_eligible_affiliate("IDLE001") is None
    assert find_eligible_affiliate("SUSP001") is None
    assert find_eligible_affiliate("WARN001").code == "WARN001"
    assert find_eligible_affiliate("NOPE999") is None


@pytest.mark.django_db
def test_redirect_sets_signed_cookie_and_lands_on_storefront(api_client, affiliate):
    response = api_client.get("/r/sara123/")

    assert response.status_code == 302
    assert response["Location"] == settings.AFFILIATE_REDIRECT_PATH
    morsel = response.cookies[settings.AFFILIATE_ATTRIBUTION_COOKIE]
    assert morsel["httponly"]
    assert morsel["samesite"] == "Lax"
    assert int(morsel["max-age"]) == 7 * 24 * 60 * 60
    assert morsel.value != "SARA123"


@pytest.mark.django_db
def test_unknown_code_redirects_without_cookie(api_client, affiliate):
    response = api_client.get("/r/NOPE999/")

    assert response.status_code == 302
    assert settings.AFFILIATE_ATTRIBUTION_COOKIE not in response.cookies


@pytest.mark.django_db
def test_first_touch_wins(api_client, make_affiliate):
    first = make_affiliate(code="FIRST01")
    make_affiliate(code="SECOND1")

    api_client.get("/r/FIRST01/")
    second = api_client.get("/r/SECOND1/")
    assert settings.AFFILIATE_ATTRIBUTION_COOKIE not in second.cookies

    response = api_client.post("/api/orders/", ORDER_PAYLOAD, format="json")
    assert response.status_code == 201
    order = Order.objects.get(pk=response.data["order_id"])
    assert order.affiliate_id == first.id


@pytest.mark.django_db
def test_capture_referral_does_not_overwrite_existing_cookie(make_affiliate):
    make_affiliate(code="FIRST01")
    make_affiliate(code="SECOND1")
    request = _signed_request("FIRST01")
    response = HttpResponse()

    assert capture_referral(request, response, "SECOND1") is False
    assert read_attribution_code(request) == "FIRST01"
    assert settings.AFFILIATE_ATTRIBUTION_COOKIE not in response.cookies


@pytest.mark.django_db
def test_tampered_cookie_is_ignored(affiliate):
    request = RequestFactory().get("/")
    request.COOKIES[settings.AFFILIATE_ATTRIBUTION_COOKIE] = "SARA123"

    assert read_attribution_code(request) is None
    assert resolve_order_affiliate(request) is None


@pytest.mark.django_db
def test_checkout_code_overrides_cookie(make_affiliate):
    make_affiliate(code="COOKIE1")
    typed = make_affiliate(code="TYPED01")
    request = _signed_request("COOKIE1")

    assert resolve_order_affiliate(request, explicit_code="typed01") == typed


@pytest.mark.django_db
def test_invalid_checkout_code_means_no_attribution(make_affiliate):
    make_affiliate(code="COOKIE1")
    request = _signed_request("COOKIE1")

    assert resolve_order_affiliate(request, explicit_code="bad code!") is None
    assert resolve_order_affiliate(request, explicit_code="   ").code == "COOKIE1"


@pytest.mark.django_db
def test_affiliate_suspended_after_click_gets_nothing(api_client, affiliate):
    api_client.get("/r/SARA123/")
    affiliate.status = "suspended"
    affiliate.save()

    response = api_client.post("/api/orders/", ORDER_PAYLOAD, format="json")

    assert response.status_code == 201
    order = Order.objects.get(pk=response.data["order_id"])
    assert order.affiliate is None
    assert order.affiliate_commission_amount == Decimal("0")


@pytest.mark.django_db
def test_cookie_expires_after_attribution_window(api_client, affiliate):
    start = datetime(2026, 3, 1, 10, 0, tzinfo=dt_timezone.utc)
    with freeze_time(start) as frozen:
        api_client.get("/r/SARA123/")
        frozen.move_to(start + timedelta(days=8))
        response = api_client.post("/api/orders/", ORDER_PAYLOAD, format="json")

    order = Order.objects.get(pk=response.data["order_id"])
    assert order.affiliate is None


@pytest.mark.django_db
def test_campaign_fields_are_stored_on_the_order(api_client, affiliate):
    api_client.get("/r/SARA123/?utm_source=instagram&utm_campaign=spring")
    api_client.get("/r/SARA123/?utm_medium=story")

    response = api_client.post("/api/orders/", ORDER_PAYLOAD, format="json")

    order = Order.objects.get(pk=response.data["order_id"])
    assert order.affiliate == affiliate
    assert order.utm_source == "instagram"
    assert order.utm_campaign == "spring"
    assert order.utm_medium == "story"


@pytest.mark.django_db
def test_validate_endpoint(api_client, make_affiliate):
    make_affiliate(code="SARA123")
    make_affiliate(code="IDLE001", active=False)

    assert api_client.get("/api/affiliates/validate/", {"code": "sara123"}).data == {"ok": True, "valid": True}
    assert api_client.get("/api/affiliates/validate/", {"code": "IDLE001"}).data == {"ok": True, "valid": False}
    assert api_client.get("/api/affiliates/validate/").data == {"ok": True, "valid": False}


@pytest.mark.django_db
def test_only_the_vanity_link_sets_the_referral_cookie(api_client, affiliate):
    response = api_client.get("/api/affiliates/validate/", {"code": "SARA123", "ref": "SARA123"})

    assert response.data["valid"] is True
    assert settings.AFFILIATE_ATTRIBUTION_COOKIE not in response.cookies
