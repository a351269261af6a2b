"""
Referral attribution: turning an inbound short code into an affiliate.

A visitor who arrives through the ``/r/<code>/`` vanity link gets a
signed, httpOnly ``aff_ref`` cookie. The first valid code wins for the
lifetime of the cookie; later codes do not replace it. Campaign (UTM)
parameters live in a separate cookie and are refreshed on every visit.

At checkout the stored code is checked again, so an affiliate that was
suspended after the click no longer receives the order.
"""
from __future__ import annotations

import json
import logging
import re
from datetime import timedelta

from django.conf import settings
from django.http import HttpRequest, HttpResponse

from .models import Affiliate

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"^[A-Z0-9]{4,12}$")
CAMPAIGN_FIELDS = ("utm_source", "utm_medium", "utm_campaign", "utm_content", "utm_term")


def normalize_code(raw: str | None) -> str | None:
    if not raw:
        return None
    code = str(raw).strip().upper()
    if not CODE_PATTERN.match(code):
        return None
    return code


def find_eligible_affiliate(code: str | None) -> Affiliate | None:
    normalized = normalize_code(code)
    if normalized is None:
        return None
    affiliate = Affiliate.objects.filter(code=normalized).first()
    if affiliate is None or not affiliate.is_attribution_eligible:
        return None
    return affiliate


def _cookie_max_age() -> int:
    return int(timedelta(days=settings.AFFILIATE_ATTRIBUTION_DAYS).total_seconds())


def read_attribution_code(request: HttpRequest) -> str | None:
    value = request.get_signed_cookie(
        settings.AFFILIATE_ATTRIBUTION_COOKIE,
        default=None,
        salt=settings.AFFILIATE_COOKIE_SALT,
        max_age=_cookie_max_age(),
    )
    return normalize_code(value)


def capture_referral(request: HttpRequest, response: HttpResponse, raw_code: str | None) -> bool:
    """
    Lock ``raw_code`` into the attribution cookie if nothing is locked yet.

    Returns True only when a new cookie was written.
    """
    code = normalize_code(raw_code)
    if code is None:
        return False

    if read_attribution_code(request):
        # First touch already recorded.
        return False

    if find_eligible_affiliate(code) is None:
        logger.info("Referral code %s is unknown or not eligible; no attribution set", code)
        return False

    response.set_signed_cookie(
        settings.AFFILIATE_ATTRIBUTION_COOKIE,
        code,
        salt=settings.AFFILIATE_COOKIE_SALT,
        max_age=_cookie_max_age(),
        httponly=True,
        secure=settings.ATTRIBUTION_COOKIE_SECURE,
        samesite="Lax",
        path="/",
    )
    return True


def read_campaign(request: HttpRequest) -> dict[str, str]:
    raw = request.get_signed_cookie(
        settings.AFFILIATE_CAMPAIGN_COOKIE,
        default=None,
        salt=settings.AFFILIATE_COOKIE_SALT,
        max_age=_cookie_max_age(),
    )
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        return {}
    if not isinstance(data, dict):
        return {}
    return {key: str(data[key])[:100] for key in CAMPAIGN_FIELDS if data.get(key)}


def capture_campaign(request: HttpRequest, response: HttpResponse) -> dict[str, str]:
    incoming = {key: request.GET[key][:100] for key in CAMPAIGN_FIELDS if request.GET.get(key)}
    if not incoming:
        return read_campaign(request)

    campaign = {**read_campaign(request), **incoming}
    response.set_signed_cookie(
        settings.AFFILIATE_CAMPAIGN_COOKIE,
        json.dumps(campaign),
        salt=settings.AFFILIATE_COOKIE_SALT,
        max_age=_cookie_max_age(),
        httponly=True,
        secure=settings.ATTRIBUTION_COOKIE_SECURE,
        samesite="Lax",
        path="/",
    )
    return campaign


def resolve_order_affiliate(request: HttpRequest | None, explicit_code: str | None = None) -> Affiliate | None:
    """
    Pick the affiliate for a new order.

    A code typed in at checkout takes priority over the cookie. Whatever the
    source, an invalid, unknown or ineligible code means no attribution.
    """
    if explicit_code and str(explicit_code).strip():
        code = normalize_code(explicit_code)
    elif request is not None:
        code = read_attribution_code(request)
    else:
        code = None
    if code is None:
        return None

    affiliate = find_eligible_affiliate(code)
    if affiliate is None:
        logger.info("Dropping attribution for code %s: affiliate missing or not eligible", code)
    return affiliate
