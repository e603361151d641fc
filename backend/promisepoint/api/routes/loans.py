from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session
from datetime import date

from promisepoint.api.deps import db, actor
from promisepoint.core.config import settings
from promisepoint.schemas.loan import (
    DeliveryStatus,
    LoanApprove,
    LoanCreate,
    LoanFilters,
    LoanKPIsOut,
    LoanOut,
    LoanPage,
    LoanSortBy,
    LoanStatus,
)
from promisepoint.services import loans as svc
from promisepoint.services.background import dispatch_notifications_once
from promisepoint.services.kpis import get_loan_kpis

router = APIRouter(prefix="/admins", tags=["loans"])


def loan_filters(
    status: LoanStatus | None = Query(None),
    user_type: str | None = Query(None, pattern="^(farmer|staff)$"),
    delivery_status: DeliveryStatus | None = Query(None),
    search: str | None = Query(None),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    sort_by: LoanSortBy = Query("created_at", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
) -> LoanFilters:
    return LoanFilters(
        status=status,
        user_type=user_type,
        delivery_status=delivery_status,
        search=search,
        start_date=start_date,
        end_date=end_date,
        sort_by=sort_by,
        sort_order=sort_order,
    )


def to_page(out: dict) -> LoanPage:
    return LoanPage(
        items=[LoanOut.model_validate(ln) for ln in out["items"]],
        total=out["total"],
        page=out["page"],
        limit=out["limit"],
        total_pages=out["total_pages"],
    )


def _notify(background: BackgroundTasks) -> None:
    if settings.sms_enabled:
        background.add_task(dispatch_notifications_once)


@router.get("/loans", response_model=LoanPage)
def list_loans(
    f: LoanFilters = Depends(loan_filters),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    s: Session = Depends(db),
):
    return to_page(svc.list_loans(s, f, page, limit))


@router.get("/loans/kpis", response_model=LoanKPIsOut)
def loan_kpis(f: LoanFilters = Depends(loan_filters), s: Session = Depends(db)):
    return get_loan_kpis(s, f)


@router.get("/loan-requests", response_model=LoanPage)
def list_loan_requests(
    f: LoanFilters = Depends(loan_filters),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    s: Session = Depends(db),
):
    return to_page(svc.list_loan_requests(s, f, page, limit))


@router.get("/loans/{loan_id}", response_model=LoanOut)
def get_loan(loan_id: int, s: Session = Depends(db)):
    return svc.get_loan(s, loan_id)


@router.post("/loans", response_model=LoanOut)
def create_loan(body: LoanCreate, s: Session = Depends(db), who: str = Depends(actor)):
    return svc.create_loan(s, body, actor=who)


@router.patch("/loans/{loan_id}/approve", response_model=LoanOut)
def approve_loan(
    loan_id: int,
    body: LoanApprove,
    background: BackgroundTasks,
    s: Session = Depends(db),
    who: str = Depends(actor),
):
    ln = svc.approve_loan_request(s, loan_id, body, actor=who)
    _notify(background)
    return ln


@router.patch("/loans/{loan_id}/activate", response_model=LoanOut)
def activate_loan(
    loan_id: int,
    background: BackgroundTasks,
    s: Session = Depends(db),
    who: str = Depends(actor),
):
    ln = svc.activate_loan(s, loan_id, actor=who)
    _notify(background)
    return ln
