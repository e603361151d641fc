from datetime import timedelta
from decimal import Decimal

from conftest import NOW, due_in, mk_loan_type
from promisepoint.schemas.loan import FarmerBorrower, LoanApprove, LoanCreate, LoanDeliveryRecord, LoanFilters, LoanItemIn
from promisepoint.schemas.pickup import PickupApprove, PickupCreate
from promisepoint.services.kpis import get_loan_kpis, get_ops_kpis
from promisepoint.services.loans import (
    activate_loan,
    approve_loan_request,
    create_loan,
    list_loan_deliveries,
    list_loan_requests,
    list_loans,
    record_loan_delivery,
)
from promisepoint.services.pickups import approve_pickup_request, cancel_pickup_request, create_pickup_request
from promisepoint.services.reconciliation import default_loan

ITEMS = [LoanItemIn(name="Urea", quantity=2, unit_price=500_000)]


def _loan(session, lt, farmer_id: str, name: str, principal: int = 1_000_000, due_days: int = 30):
    return create_loan(
        session,
        LoanCreate(
            borrower=FarmerBorrower(farmer_id=farmer_id, name=name),
            loan_type_id=lt.id,
            principal_amount=principal,
            due_date=due_in(due_days),
            items=ITEMS,
        ),
        now=NOW,
    )


def _activate(session, loan):
    approve_loan_request(session, loan.id, LoanApprove(pickup_date=NOW + timedelta(hours=1)), now=NOW)
    record_loan_delivery(session, loan.id, LoanDeliveryRecord(items=ITEMS), now=NOW)
    return activate_loan(session, loan.id, now=NOW + timedelta(hours=1))


def _seed(session):
    lt = mk_loan_type(session, interest_rate=Decimal("10"))
    requested = _loan(session, lt, "F-1", "Bola Ade")
    approved = _loan(session, lt, "F-2", "Chidi Eze")
    approve_loan_request(session, approved.id, LoanApprove(pickup_date=NOW + timedelta(days=1)), now=NOW)
    active = _activate(session, _loan(session, lt, "F-3", "Dayo Ige", principal=2_000_000))
    defaulted = _activate(session, _loan(session, lt, "F-4", "Efe Oke", principal=3_000_000, due_days=5))
    default_loan(session, defaulted.id, now=NOW + timedelta(days=6))
    return requested, approved, active, defaulted


def test_loan_kpis(session):
    _seed(session)
    k = get_loan_kpis(session)
    assert k["total_loans"] == 4
    assert k["pending_requests"] == 1
    assert k["approved_loans"] == 1
    assert k["active_loans"] == 1
    assert k["completed_loans"] == 0
    assert k["defaulted_loans"] == 1
    # outstanding: active 2_200_000 + defaulted 3_300_000
    assert k["total_outstanding"] == 5_500_000
    assert k["total_disbursed"] == 5_000_000
    assert k["default_rate"] == 0.5


def test_loan_kpis_empty(session):
    k = get_loan_kpis(session)
    assert k["total_loans"] == 0
    assert k["default_rate"] == 0.0


def test_loan_kpis_respect_filters(session):
    _seed(session)
    k = get_loan_kpis(session, LoanFilters(search="dayo"))
    assert k["total_loans"] == 1
    assert k["active_loans"] == 1
    assert k["default_rate"] == 0.0


def test_listing_views(session):
    requested, approved, active, defaulted = _seed(session)

    out = list_loan_requests(session)
    assert [ln.id for ln in out["items"]] == [requested.id]

    out = list_loans(session, LoanFilters(sort_by="principal_amount", sort_order="asc"))
    assert [ln.id for ln in out["items"]][:2] == sorted([requested.id, approved.id])
    assert out["items"][-1].id == defaulted.id

    out = list_loans(session, LoanFilters(status="active"))
    assert out["total"] == 1

    out = list_loans(session, LoanFilters(), page=2, limit=3)
    assert out["total"] == 4
    assert out["total_pages"] == 2
    assert len(out["items"]) == 1

    out = list_loan_deliveries(session, LoanFilters(delivery_status="pending"))
    assert [ln.id for ln in out["items"]] == [approved.id]


def test_ops_kpis(session):
    _seed(session)
    base = dict(farmer_name="Musa", farmer_phone="0803")
    p1 = create_pickup_request(session, PickupCreate(farmer_id="F-1", **base), now=NOW)
    p2 = create_pickup_request(session, PickupCreate(farmer_id="F-2", **base), now=NOW)
    create_pickup_request(session, PickupCreate(farmer_id="F-3", **base), now=NOW + timedelta(days=3))
    approve_pickup_request(session, p1.id, PickupApprove(), now=NOW)
    cancel_pickup_request(session, p2.id, now=NOW)

    k = get_ops_kpis(session)
    assert k["deliveries"] == {"pending": 1, "delivered": 1}
    assert k["pickups"]["total"] == 3
    assert k["pickups"]["requested"] == 1
    assert k["pickups"]["approved"] == 1
    assert k["pickups"]["cancelled"] == 1
    assert k["pickups"]["processed"] == 0
    assert k["period"] == {"start_date": None, "end_date": None}

    k = get_ops_kpis(session, NOW.date(), NOW.date())
    assert k["pickups"]["total"] == 2
    assert k["period"]["start_date"] == NOW.date()
