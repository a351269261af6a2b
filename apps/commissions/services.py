from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from django.core.exceptions import ValidationError as DjangoValidationError
from django.conf import settings
from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone

from apps.affiliates.models import Affiliate
from apps.analytics.services import record_audit

from .exceptions import BatchAlreadyPaid, BatchConflict, BatchNotFound, NoPayableCommissions
from .maturity import sync_maturity
from .models import Commission, PayoutBatch

logger = logging.getLogger(__name__)


def payout_destination(affiliate: Affiliate) -> tuple[str, str | None]:
    if affiliate.payout_method == "easypaisa":
        return "easypaisa", affiliate.easypaisa_number
    if affiliate.payout_method == "bank_transfer":
        return "bank_transfer", f"{affiliate.bank_name} - {affiliate.bank_account_number}"
    return "not_set", None


def group_by_affiliate(commissions: Iterable[Commission], include_status: bool = False) -> list[dict]:
    """
    Regroup ledger rows per affiliate with subtotals and payout destination,
    largest payout first.
    """
    groups: "OrderedDict[object, dict]" = OrderedDict()
    for commission in commissions:
        entry = groups.get(commission.affiliate_id)
        if entry is None:
            affiliate = commission.affiliate
            method, account = payout_destination(affiliate)
            entry = groups[commission.affiliate_id] = {
                "affiliate_id": affiliate.id,
                "name": affiliate.name,
                "code": affiliate.code,
                "email": affiliate.email,
                "payout_method": method,
                "payout_account": account,
                "commission_count": 0,
                "total_amount": Decimal("0"),
                "commissions": [],
            }
        row = {
            "id": commission.id,
            "order_id": commission.order_id,
            "commission_amount": commission.commission_amount,
            "payable_at": commission.payable_at,
        }
        if include_status:
            row["status"] = commission.status
            row["paid_at"] = commission.paid_at
        entry["commissions"].append(row)
        entry["commission_count"] += 1
        entry["total_amount"] += commission.commission_amount

    return sorted(groups.values(), key=lambda group: group["total_amount"], reverse=True)


def _payable_unclaimed():
    return Commission.objects.filter(status="payable", payout_batch__isnull=True)


def list_payable_candidates(now: datetime | None = None) -> dict:
    sync_maturity(now)
    rows = list(_payable_unclaimed().select_related("affiliate").order_by("affiliate_id", "payable_at"))
    candidates = group_by_affiliate(rows)
    return {
        "candidates": candidates,
        "totals": {
            "total_amount": sum((c["total_amount"] for c in candidates), Decimal("0")),
            "total_commissions": len(rows),
            "total_affiliates": len(candidates),
        },
    }


def _select_payable_candidates() -> list[Commission]:
    return list(_payable_unclaimed().select_for_update().order_by("payable_at", "id"))


def create_payout_batch(
    batch_date: date | None = None,
    notes: str | None = None,
    created_by=None,
    now: datetime | None = None,
) -> PayoutBatch:
    """
    Claim every payable, unbatched commission into a new batch.

    Candidates are locked, the batch row is inserted, then the claim is
    applied with the same precondition. If another writer got to any of the
    rows first the claimed count comes up short, and the whole transaction
    (batch row included) is rolled back with ``BatchConflict``.
    """
    now = now or timezone.now()
    batch_date = batch_date or timezone.localdate(now)
    if created_by is not None and not getattr(created_by, "is_authenticated", False):
        created_by = None

    with transaction.atomic():
        sync_maturity(now)
        candidates = _select_payable_candidates()
        if not candidates:
            raise NoPayableCommissions()

        total = sum((c.commission_amount for c in candidates), Decimal("0"))
        affiliate_ids = {c.affiliate_id for c in candidates}
        payable_dates = [timezone.localdate(c.payable_at) for c in candidates if c.payable_at]

        batch = PayoutBatch.objects.create(
            batch_date=batch_date,
            period_start=min(payable_dates) if payable_dates else batch_date,
            period_end=max(payable_dates) if payable_dates else batch_date,
            total_commissions=total,
            total_affiliates=len(affiliate_ids),
            commission_count=len(candidates),
            status="pending",
            notes=notes or None,
            created_by=created_by,
        )

        ids = [c.id for c in candidates]
        claimed = Commission.objects.filter(
            id__in=ids,
            status="payable",
            payout_batch__isnull=True,
        ).update(payout_batch=batch, updated_at=now)

        if claimed != len(ids):
            logger.warning(
                "Payout batch %s claimed %s of %s commissions; rolling back. Candidate ids: %s",
                batch.id,
                claimed,
                len(ids),
                [str(i) for i in ids],
            )
            raise BatchConflict(
                "Some payable commissions were claimed by another batch. Reload and try again."
            )

    logger.info(
        "Created payout batch %s: %s commissions, %s affiliates, total %s",
        batch.id,
        batch.commission_count,
        batch.total_affiliates,
        batch.total_commissions,
    )
    record_audit(
        action="payout_batch_created",
        entity_type="payout_batch",
        entity_id=batch.id,
        actor=created_by,
        details={
            "total_commissions": str(batch.total_commissions),
            "total_affiliates": batch.total_affiliates,
            "commission_count": batch.commission_count,
        },
    )
    return batch


def _get_batch(batch_id, for_update: bool = False) -> PayoutBatch:
    qs = PayoutBatch.objects.all()
    if for_update:
        qs = qs.select_for_update()
    try:
        batch = qs.filter(pk=batch_id).first()
    except (DjangoValidationError, ValueError):
        batch = None
    if batch is None:
        raise BatchNotFound(batch_id)
    return batch


def mark_batch_paid(batch_id, processed_by=None, now: datetime | None = None) -> tuple[PayoutBatch, int]:
    """
    Close a batch: every claimed commission becomes ``paid`` with one shared
    ``paid_at`` and the batch becomes ``completed``. A second call is
    rejected and changes nothing.
    """
    now = now or timezone.now()
    if processed_by is not None and not getattr(processed_by, "is_authenticated", False):
        processed_by = None

    with transaction.atomic():
        batch = _get_batch(batch_id, for_update=True)
        if batch.is_paid:
            raise BatchAlreadyPaid(batch.id)

        paid = Commission.objects.filter(payout_batch=batch).update(status="paid", paid_at=now, updated_at=now)

        batch.status = "completed"
        batch.processed_at = now
        batch.processed_by = processed_by
        batch.save(update_fields=["status", "processed_at", "processed_by"])

    logger.info("Payout batch %s marked paid: %s commissions at %s", batch.id, paid, now.isoformat())
    record_audit(
        action="payout_batch_paid",
        entity_type="payout_batch",
        entity_id=batch.id,
        actor=processed_by,
        details={"commission_count": paid, "total_commissions": str(batch.total_commissions)},
    )
    return batch, paid


def list_batches(limit: int = 50) -> list[PayoutBatch]:
    return list(PayoutBatch.objects.select_related("created_by", "processed_by").order_by("-created_at")[:limit])


def get_batch_detail(batch_id) -> dict:
    batch = _get_batch(batch_id)
    rows = list(
        Commission.objects.select_related("affiliate")
        .filter(payout_batch=batch)
        .order_by("affiliate_id", "payable_at")
    )
    affiliates = group_by_affiliate(rows, include_status=True)
    return {
        "batch": batch,
        "affiliates": affiliates,
        "totals": {
            "commission_count": len(rows),
            "total_amount": sum((a["total_amount"] for a in affiliates), Decimal("0")),
        },
    }


def next_payout_date(today: date) -> date:
    payout_day = settings.AFFILIATE_PAYOUT_DAY
    if today.day < payout_day:
        return date(today.year, today.month, payout_day)
    if today.month == 12:
        return date(today.year + 1, 1, payout_day)
    return date(today.year, today.month + 1, payout_day)


def payout_summary(now: datetime | None = None) -> dict:
    now = now or timezone.now()
    sync_maturity(now)
    payable = _payable_unclaimed().aggregate(
        total=Sum("commission_amount"),
        affiliates=Count("affiliate", distinct=True),
    )
    return {
        "summary": {
            "total_payable": payable["total"] or Decimal("0"),
            "affiliates_payable": payable["affiliates"] or 0,
            "next_payout_date": next_payout_date(timezone.localdate(now)),
        },
        "last_batch": PayoutBatch.objects.filter(status="completed").order_by("-batch_date", "-processed_at").first(),
        "recent_batches": list_batches(10),
    }
