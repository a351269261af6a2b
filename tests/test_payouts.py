from datetime import date, timedelta
from decimal import Decimal
from unittest import mock

import pytest

from apps.analytics.models import AuditLog
from apps.commissions import services
from apps.commissions.exceptions import BatchAlreadyPaid, BatchConflict, BatchNotFound, NoPayableCommissions
from apps.commissions.models import Commission, PayoutBatch
from apps.commissions.services import (
    create_payout_batch,
    get_batch_detail,
    list_payable_candidates,
    mark_batch_paid,
    next_payout_date,
    payout_destination,
    payout_summary,
)

DAY = timedelta(days=1)


@pytest.fixture
def payable_ledger(make_affiliate, make_commission, now):
    """Two affiliates with matured commissions, plus rows that must not be batched."""
    sara = make_affiliate(code="SARA123", payout_method="easypaisa", easypaisa_number="03001234567")
    hina = make_affiliate(
        code="HINA456",
        name="Hina Ali",
        payout_method="bank_transfer",
        bank_name="Meezan",
        bank_account_number="0101-22",
    )
    rows = {
        "sara_a": make_commission(sara, total="1000.00", delivery_status="delivered", delivered_at=now - 20 * DAY),
        "sara_b": make_commission(sara, total="500.00", delivery_status="delivered", delivered_at=now - 11 * DAY),
        "hina_a": make_commission(hina, total="3000.00", delivery_status="delivered", delivered_at=now - 12 * DAY),
        "hina_young": make_commission(hina, total="900.00", delivery_status="delivered", delivered_at=now - 2 * DAY),
        "sara_returned": make_commission(sara, total="700.00", delivery_status="returned"),
    }
    return {"sara": sara, "hina": hina, **rows}


def test_payout_destination(make_affiliate):
    easypaisa = make_affiliate(code="EASY001", payout_method="easypaisa", easypaisa_number="03001234567")
    bank = make_affiliate(code="BANK001", payout_method="bank_transfer", bank_name="HBL", bank_account_number="1234")
    unset = make_affiliate(code="NONE001")

    assert payout_destination(easypaisa) == ("easypaisa", "03001234567")
    assert payout_destination(bank) == ("bank_transfer", "HBL - 1234")
    assert payout_destination(unset) == ("not_set", None)


@pytest.mark.parametrize(
    "today, expected",
    [
        (date(2026, 3, 1), date(2026, 3, 10)),
        (date(2026, 3, 9), date(2026, 3, 10)),
        (date(2026, 3, 10), date(2026, 4, 10)),
        (date(2026, 12, 25), date(2027, 1, 10)),
    ],
)
def test_next_payout_date(today, expected):
    assert next_payout_date(today) == expected


@pytest.mark.django_db
def test_candidates_grouped_by_affiliate_largest_first(payable_ledger, now):
    data = list_payable_candidates(now)

    candidates = data["candidates"]
    assert [c["code"] for c in candidates] == ["HINA456", "SARA123"]
    assert candidates[0]["total_amount"] == Decimal("300.00")
    assert candidates[0]["payout_method"] == "bank_transfer"
    assert candidates[0]["payout_account"] == "Meezan - 0101-22"
    assert candidates[1]["total_amount"] == Decimal("150.00")
    assert candidates[1]["commission_count"] == 2
    assert data["totals"] == {
        "total_amount": Decimal("450.00"),
        "total_commissions": 3,
        "total_affiliates": 2,
    }


@pytest.mark.django_db
def test_create_batch_claims_every_payable_commission(payable_ledger, admin_user, now):
    batch = create_payout_batch(notes="March run", created_by=admin_user, now=now)

    assert batch.status == "pending"
    assert batch.total_commissions == Decimal("450.00")
    assert batch.total_affiliates == 2
    assert batch.commission_count == 3
    assert batch.batch_date == date(2026, 3, 15)
    assert batch.period_start == date(2026, 3, 5)
    assert batch.period_end == date(2026, 3, 14)
    assert batch.created_by == admin_user

    claimed = set(Commission.objects.filter(payout_batch=batch).values_list("pk", flat=True))
    expected = {payable_ledger[key].pk for key in ("sara_a", "sara_b", "hina_a")}
    assert claimed == expected
    assert Commission.objects.get(pk=payable_ledger["hina_young"].pk).payout_batch is None
    assert Commission.objects.get(pk=payable_ledger["sara_returned"].pk).status == "void"
    assert AuditLog.objects.filter(action="payout_batch_created", entity_id=str(batch.id)).exists()


@pytest.mark.django_db
def test_second_batch_finds_nothing(payable_ledger, now):
    create_payout_batch(now=now)

    with pytest.raises(NoPayableCommissions):
        create_payout_batch(now=now)
    assert PayoutBatch.objects.count() == 1


@pytest.mark.django_db
def test_empty_ledger_creates_no_batch(now):
    with pytest.raises(NoPayableCommissions) as excinfo:
        create_payout_batch(now=now)

    assert excinfo.value.detail == "No payable commissions found"
    assert PayoutBatch.objects.count() == 0


@pytest.mark.django_db
def test_conflicting_claim_rolls_back_the_batch(payable_ledger, make_commission, now):
    # A row another batch already took, but which a stale read still lists.
    stolen = make_commission(payable_ledger["sara"], delivery_status="delivered", delivered_at=now - 30 * DAY)
    other = PayoutBatch.objects.create(batch_date=now.date())
    Commission.objects.filter(pk=stolen.pk).update(status="payable", payout_batch=other)

    real_select = services._select_payable_candidates

    def stale_select():
        return real_select() + [Commission.objects.get(pk=stolen.pk)]

    with mock.patch.object(services, "_select_payable_candidates", side_effect=stale_select):
        with pytest.raises(BatchConflict) as excinfo:
            create_payout_batch(now=now)

    assert excinfo.value.retryable is True
    assert list(PayoutBatch.objects.all()) == [other]
    assert not Commission.objects.filter(payout_batch__isnull=False).exclude(pk=stolen.pk).exists()

    # The ledger is untouched, so a fresh attempt goes through.
    batch = create_payout_batch(now=now)
    assert batch.commission_count == 3


@pytest.mark.django_db
def test_mark_paid_stamps_every_commission(payable_ledger, admin_user, now):
    batch = create_payout_batch(now=now)
    paid_time = now + DAY

    batch, paid = mark_batch_paid(batch.id, processed_by=admin_user, now=paid_time)

    assert paid == 3
    assert batch.status == "completed"
    assert batch.processed_at == paid_time
    assert batch.processed_by == admin_user
    rows = Commission.objects.filter(payout_batch=batch)
    assert {row.status for row in rows} == {"paid"}
    assert {row.paid_at for row in rows} == {paid_time}


@pytest.mark.django_db
def test_mark_paid_twice_is_rejected(payable_ledger, now):
    batch = create_payout_batch(now=now)
    mark_batch_paid(batch.id, now=now + DAY)

    with pytest.raises(BatchAlreadyPaid):
        mark_batch_paid(batch.id, now=now + 2 * DAY)

    batch.refresh_from_db()
    assert batch.processed_at == now + DAY
    assert set(Commission.objects.filter(payout_batch=batch).values_list("paid_at", flat=True)) == {now + DAY}


@pytest.mark.django_db
def test_mark_paid_unknown_batch():
    with pytest.raises(BatchNotFound):
        mark_batch_paid("5f0c1d8e-1111-4c2b-9a77-000000000000")
    with pytest.raises(BatchNotFound):
        mark_batch_paid("not-a-uuid")


@pytest.mark.django_db
def test_batch_detail_groups_by_affiliate(payable_ledger, now):
    batch = create_payout_batch(now=now)

    detail = get_batch_detail(batch.id)

    assert detail["batch"] == batch
    assert [a["code"] for a in detail["affiliates"]] == ["HINA456", "SARA123"]
    assert detail["affiliates"][1]["payout_account"] == "03001234567"
    assert detail["affiliates"][1]["commissions"][0]["status"] == "payable"
    assert detail["totals"] == {"commission_count": 3, "total_amount": Decimal("450.00")}


@pytest.mark.django_db
def test_payout_summary(payable_ledger, now):
    summary = payout_summary(now)
    assert summary["summary"]["total_payable"] == Decimal("450.00")
    assert summary["summary"]["affiliates_payable"] == 2
    assert summary["summary"]["next_payout_date"] == date(2026, 4, 10)
    assert summary["last_batch"] is None

    batch = create_payout_batch(now=now)
    mark_batch_paid(batch.id, now=now)

    summary = payout_summary(now)
    assert summary["summary"]["total_payable"] == Decimal("0")
    assert summary["last_batch"] == batch
    assert summary["recent_batches"] == [batch]
