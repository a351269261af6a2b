from __future__ import annotations

import logging
import re
import secrets
import time
from datetime import datetime, timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.analytics.services import record_audit
from apps.orders.models import Order
from core.exceptions import ValidationFailed

from .models import Affiliate

logger = logging.getLogger(__name__)

User = get_user_model()


def code_base_from_name(full_name: str) -> str:
    parts = full_name.split()
    first = parts[0] if parts else full_name
    letters = re.sub(r"[^A-Za-z]", "", first).upper()
    if not letters:
        return "AFF"
    return letters[:4].ljust(3, "X")


def generate_affiliate_code(full_name: str, attempts: int = 10) -> str:
    base = code_base_from_name(full_name)
    for _ in range(attempts):
        candidate = f"{base}{secrets.randbelow(900) + 100}"[:8]
        if not Affiliate.objects.filter(code=candidate).exists():
            return candidate
    return f"{base}{str(int(time.time() * 1000))[-3:]}"


def register_affiliate(
    *,
    name: str,
    email: str,
    phone: str,
    city: str,
    password: str,
    type: str = "individual",
    parlour_name: str | None = None,
    how_heard: str | None = None,
) -> Affiliate:
    """
    Self-service signup. The affiliate starts inactive until an operator
    approves it through the toggle-status endpoint.
    """
    email = email.strip().lower()
    if Affiliate.objects.filter(email=email).exists():
        raise ValidationFailed(
            "An affiliate account with this email already exists. Please log in instead.",
            code="duplicate_email",
        )

    for _ in range(3):
        code = generate_affiliate_code(name)
        try:
            with transaction.atomic():
                user = User.objects.filter(email=email).first()
                if user is None:
                    user = User.objects.create_user(
                        email=email,
                        password=password,
                        full_name=name,
                        role="affiliate",
                        phone_number=phone,
                    )
                elif user.role != "affiliate" or hasattr(user, "affiliate"):
                    raise ValidationFailed(
                        "An account with this email already exists. Please log in instead.",
                        code="duplicate_email",
                    )
                else:
                    # Orphaned login without a profile: reuse it.
                    user.set_password(password)
                    user.save(update_fields=["password"])

                affiliate = Affiliate.objects.create(
                    user=user,
                    type=type,
                    name=name,
                    parlour_name=parlour_name or None,
                    email=email,
                    phone=phone,
                    city=city,
                    code=code,
                    notes=how_heard or None,
                    active=False,
                )
        except IntegrityError:
            logger.warning("Affiliate code %s collided during signup for %s; retrying", code, email)
            continue
        logger.info("Registered affiliate %s with code %s (pending approval)", affiliate.id, affiliate.code)
        return affiliate
    raise RuntimeError("Failed to generate a unique affiliate code")


def toggle_affiliate_active(
    affiliate: Affiliate,
    *,
    reason: str | None = None,
    notes: str | None = None,
    actor=None,
) -> bool:
    affiliate.active = not affiliate.active
    affiliate.save(update_fields=["active"])
    logger.info("Affiliate %s active=%s", affiliate.code, affiliate.active)

    if not affiliate.active and reason:
        record_audit(
            action="affiliate_deactivated",
            entity_type="affiliate",
            entity_id=affiliate.id,
            actor=actor,
            details={"affiliate_name": affiliate.name, "reason": reason, "notes": notes or None},
        )
    return affiliate.active


def refresh_strikes(affiliate: Affiliate, now: datetime | None = None) -> Affiliate:
    """
    Recount failed deliveries in the rolling strike window and escalate the
    affiliate's status. Never downgrades, never touches a revoked affiliate.
    """
    now = now or timezone.now()
    since = now - timedelta(days=settings.AFFILIATE_STRIKE_WINDOW_DAYS)
    strikes = Order.objects.filter(
        affiliate=affiliate,
        delivery_status="failed",
        failed_at__gte=since,
    ).count()

    new_status = affiliate.status
    if strikes >= settings.AFFILIATE_STRIKE_SUSPEND and affiliate.status in ("active", "warning"):
        new_status = "suspended"
    elif strikes >= settings.AFFILIATE_STRIKE_WARNING and affiliate.status == "active":
        new_status = "warning"

    update_fields = []
    if strikes != affiliate.strike_count:
        affiliate.strike_count = strikes
        update_fields.append("strike_count")
    if new_status != affiliate.status:
        previous = affiliate.status
        affiliate.status = new_status
        update_fields.append("status")
        logger.warning("Affiliate %s escalated %s -> %s after %s strikes", affiliate.code, previous, new_status, strikes)
        record_audit(
            action="affiliate_strike_escalation",
            entity_type="affiliate",
            entity_id=affiliate.id,
            details={"from": previous, "to": new_status, "strikes": strikes},
        )
    if update_fields:
        affiliate.save(update_fields=update_fields)
    return affiliate


def mask_phone(phone: str | None) -> str:
    if not phone:
        return ""
    digits = re.sub(r"\D", "", phone)
    if len(digits) < 6:
        return "***"
    return f"{digits[:2]}XX-***{digits[-3:]}"


def first_name(full_name: str | None) -> str:
    if not full_name or not full_name.strip():
        return "Customer"
    return full_name.split()[0]


def masked_customer(order: Order) -> str:
    parts = [first_name(order.customer_name), order.city or "", mask_phone(order.phone)]
    return " • ".join(part for part in parts if part)
