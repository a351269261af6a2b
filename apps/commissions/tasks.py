import logging

from celery import shared_task
from django.db import transaction
from django.utils import timezone

from apps.orders.models import Order

from .calculator import accrue_commission
from .maturity import sync_maturity

logger = logging.getLogger(__name__)


@shared_task
def sync_commission_maturity() -> dict:
    voided, matured = sync_maturity(timezone.now())
    return {"voided": voided, "matured": matured}


@shared_task(bind=True, max_retries=5, default_retry_delay=60)
def accrue_order_commission(self, order_id: str) -> str | None:
    try:
        order = Order.objects.select_related("affiliate").get(id=order_id)
    except Order.DoesNotExist:
        logger.warning("Commission retry skipped: order %s no longer exists", order_id)
        return None

    try:
        with transaction.atomic():
            commission = accrue_commission(order)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Commission accrual retry for order %s failed: %s", order_id, exc)
        raise self.retry(exc=exc)
    return str(commission.id) if commission else None


@shared_task
def backfill_missing_commissions(limit: int = 200) -> int:
    """Accrue commissions for affiliated orders that ended up without one."""
    orders = (
        Order.objects.select_related("affiliate")
        .filter(affiliate__isnull=False, commission__isnull=True)
        .order_by("-created_at")[:limit]
    )
    created = 0
    for order in orders:
        try:
            with transaction.atomic():
                if accrue_commission(order):
                    created += 1
        except Exception:  # noqa: BLE001
            logger.exception("Backfill could not accrue commission for order %s", order.id)
    if created:
        logger.info("Backfilled %s missing commissions", created)
    return created
