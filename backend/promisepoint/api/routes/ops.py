from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date
from decimal import Decimal

from promisepoint.api.deps import db, actor
from promisepoint.api.routes.loans import loan_filters, to_page
from promisepoint.core.errors import ValidationError
from promisepoint.schemas.loan import LoanDeliveryRecord, LoanFilters, LoanOut, LoanPage
from promisepoint.schemas.pickup import (
    OpsKPIsOut,
    PickupApprove,
    PickupCancel,
    PickupCreate,
    PickupFilters,
    PickupOut,
    PickupPage,
    PickupProcess,
    PickupProcessOut,
    PickupStaffProposal,
    PickupStatus,
)
from promisepoint.schemas.purchase import PurchaseOut
from promisepoint.services import loans as loan_svc
from promisepoint.services import pickups as svc
from promisepoint.services.kpis import get_ops_kpis
from promisepoint.services.money import naira_to_kobo

router = APIRouter(prefix="/ops", tags=["ops"])


def _price_kobo(naira: Decimal | None) -> int | None:
    if naira is None:
        return None
    try:
        return naira_to_kobo(naira)
    except (ValueError, ArithmeticError):
        raise ValidationError("price_per_kg must be a number", code="price_per_kg_invalid")


@router.get("/loan-deliveries", response_model=LoanPage)
def list_loan_deliveries(
    f: LoanFilters = Depends(loan_filters),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    s: Session = Depends(db),
):
    return to_page(loan_svc.list_loan_deliveries(s, f, page, limit))


@router.patch("/loan-deliveries/{loan_id}/record", response_model=LoanOut)
def record_loan_delivery(
    loan_id: int,
    body: LoanDeliveryRecord,
    s: Session = Depends(db),
    who: str = Depends(actor),
):
    return loan_svc.record_loan_delivery(s, loan_id, body, actor=who)


@router.get("/kpis", response_model=OpsKPIsOut)
def ops_kpis(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    s: Session = Depends(db),
):
    if start_date and end_date and end_date < start_date:
        raise ValidationError("end_date must be on or after start_date", code="invalid_date_range")
    return get_ops_kpis(s, start_date, end_date)


@router.get("/pickups", response_model=PickupPage)
def list_pickups(
    status: PickupStatus | None = Query(None),
    search: str | None = Query(None),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    s: Session = Depends(db),
):
    f = PickupFilters(status=status, search=search, start_date=start_date, end_date=end_date)
    out = svc.list_pickup_requests(s, f, page, limit)
    return PickupPage(
        items=[PickupOut.model_validate(p) for p in out["items"]],
        total=out["total"],
        page=out["page"],
        limit=out["limit"],
        total_pages=out["total_pages"],
    )


@router.post("/pickups", response_model=PickupOut)
def create_pickup(body: PickupCreate, s: Session = Depends(db), who: str = Depends(actor)):
    return svc.create_pickup_request(s, body, actor=who)


@router.get("/pickups/{pickup_id}", response_model=PickupOut)
def get_pickup(pickup_id: int, s: Session = Depends(db)):
    return svc.get_pickup_request(s, pickup_id)


@router.patch("/pickups/{pickup_id}/approve", response_model=PickupOut)
def approve_pickup(pickup_id: int, body: PickupApprove, s: Session = Depends(db), who: str = Depends(actor)):
    return svc.approve_pickup_request(s, pickup_id, body, actor=who)


@router.patch("/pickups/{pickup_id}/staff-update", response_model=PickupOut)
def staff_update_pickup(
    pickup_id: int,
    body: PickupStaffProposal,
    s: Session = Depends(db),
    who: str = Depends(actor),
):
    return svc.record_staff_proposal(
        s,
        pickup_id,
        weight_kg=body.weight_kg,
        price_per_kg=_price_kobo(body.price_per_kg),
        staff_notes=body.staff_notes,
        pickup_items=body.pickup_items,
        actor=who,
    )


@router.patch("/pickups/{pickup_id}/process", response_model=PickupProcessOut)
def process_pickup(
    pickup_id: int,
    body: PickupProcess,
    s: Session = Depends(db),
    who: str = Depends(actor),
):
    # Only absent keys fall back to the staff proposal; explicit nulls are rejected.
    for field, code in (("weight_kg", "weight_required"), ("price_per_kg", "price_per_kg_must_be_positive")):
        if field in body.model_fields_set and getattr(body, field) is None:
            raise ValidationError(f"{field} must not be null", code=code)
    pickup, purchase = svc.process_pickup_to_purchase(
        s,
        pickup_id,
        weight_kg=body.weight_kg,
        price_per_kg=_price_kobo(body.price_per_kg),
        location=body.location,
        notes=body.notes,
        payment_method=body.payment_method,
        actor=who,
    )
    return PickupProcessOut(pickup=PickupOut.model_validate(pickup), purchase=PurchaseOut.model_validate(purchase))


@router.patch("/pickups/{pickup_id}/cancel", response_model=PickupOut)
def cancel_pickup(pickup_id: int, body: PickupCancel, s: Session = Depends(db), who: str = Depends(actor)):
    return svc.cancel_pickup_request(s, pickup_id, reason=body.reason, actor=who)
