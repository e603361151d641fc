"""Loan lifecycle: create, approve, record delivery, activate, and listing.

Status path is ``requested -> approved -> active -> completed | defaulted``.
Farmer loans also carry a delivery sub-status (``pending -> delivered``)
that gates activation. Completion and default are driven by
:mod:`promisepoint.services.reconciliation`.
"""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import uuid4

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from promisepoint.core.errors import (
    AlreadyDelivered,
    InvalidStateTransition,
    NotFound,
    PreconditionFailed,
    ValidationError,
)
from promisepoint.models.loan import Loan, LoanItem
from promisepoint.models.loan_type import LoanType
from promisepoint.schemas.loan import LoanApprove, LoanCreate, LoanDeliveryRecord, LoanFilters
from promisepoint.services.audit import log_event
from promisepoint.services.money import interest_for, monthly_payment_for
from promisepoint.services.notifications import enqueue_sms, loan_activated_message, loan_approved_message
from promisepoint.services.pagination import clamp_page, day_bounds, total_pages
from promisepoint.services.state import compare_and_set, current_value, load_for_update
from promisepoint.services.validation import ItemLine, validate_create_loan, validate_items, validate_pickup_date
from promisepoint.utils.timezone import as_naive_utc, utc_now

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ("completed", "defaulted")


def _new_reference(now: datetime) -> str:
    return f"LN-{now:%Y%m%d}-{uuid4().hex[:6].upper()}"


def _item_rows(items: list[ItemLine]) -> list[LoanItem]:
    return [
        LoanItem(
            position=i,
            name=it.name,
            description=it.description,
            quantity=it.quantity,
            unit_price=it.unit_price,
            total_price=it.total_price,
        )
        for i, it in enumerate(items)
    ]


def get_loan(s: Session, loan_id: int) -> Loan:
    loan = s.execute(select(Loan).where(Loan.id == loan_id)).scalar_one_or_none()
    if loan is None:
        raise NotFound(f"loan {loan_id} not found", code="loan_not_found")
    return loan


def _lock_loan(s: Session, loan_id: int) -> Loan:
    loan = load_for_update(s, Loan, loan_id)
    if loan is None:
        raise NotFound(f"loan {loan_id} not found", code="loan_not_found")
    return loan


def create_loan(s: Session, body: LoanCreate, actor: str = "system", now: datetime | None = None) -> Loan:
    now = now or utc_now()
    loan_type = s.execute(select(LoanType).where(LoanType.id == body.loan_type_id)).scalar_one_or_none()
    items = validate_create_loan(body, loan_type, now.date())

    principal = int(body.principal_amount)
    interest = interest_for(principal, loan_type.interest_rate)
    total = principal + interest
    if body.monthly_payment is not None:
        monthly = int(body.monthly_payment)
    else:
        monthly = monthly_payment_for(total, int(loan_type.duration_months))

    b = body.borrower
    is_farmer = b.kind == "farmer"
    loan = Loan(
        reference=_new_reference(now),
        borrower_kind=b.kind,
        farmer_id=b.farmer_id.strip() if is_farmer else None,
        staff_id=None if is_farmer else b.staff_id.strip(),
        borrower_name=(b.name or "").strip() or None,
        borrower_phone=(b.phone or "").strip() or None,
        loan_type_id=loan_type.id,
        loan_type_name=loan_type.name,
        category=loan_type.category,
        principal_amount=principal,
        interest_rate=loan_type.interest_rate,
        duration_months=int(loan_type.duration_months),
        interest_amount=interest,
        total_repayment=total,
        monthly_payment=monthly,
        amount_paid=0,
        amount_outstanding=total,
        status="requested",
        delivery_status="pending" if is_farmer else None,
        purpose=body.purpose,
        notes=body.notes,
        due_date=body.due_date,
        created_at=now,
        updated_at=now,
        created_by=actor,
        items=_item_rows(items),
    )
    s.add(loan)
    s.flush()

    log_event(
        s,
        actor=actor,
        action="loan.create",
        entity_type="loan",
        entity_id=loan.id,
        details={
            "reference": loan.reference,
            "borrower_kind": loan.borrower_kind,
            "borrower_id": loan.borrower_id,
            "loan_type_id": loan.loan_type_id,
            "principal_amount": principal,
            "total_repayment": total,
        },
    )
    s.commit()
    s.refresh(loan)
    logger.info("loan %s created for %s %s", loan.reference, loan.borrower_kind, loan.borrower_id)
    return loan


def approve_loan_request(
    s: Session,
    loan_id: int,
    body: LoanApprove,
    actor: str = "system",
    now: datetime | None = None,
) -> Loan:
    now = now or utc_now()
    loan = _lock_loan(s, loan_id)

    if loan.status != "requested":
        raise InvalidStateTransition(
            f"loan {loan.reference} is {loan.status}; only requested loans can be approved",
            code="loan_not_requested",
        )
    pickup_date = as_naive_utc(body.pickup_date) if body.pickup_date is not None else None
    validate_pickup_date(pickup_date, now)

    ok = compare_and_set(
        s,
        Loan,
        loan.id,
        Loan.status,
        ("requested",),
        {
            "status": "approved",
            "approved_at": now,
            "pickup_date": pickup_date,
            "pickup_location": body.pickup_location,
            "admin_notes": body.admin_notes,
            "updated_at": now,
        },
    )
    if not ok:
        s.rollback()
        status = current_value(s, Loan, loan_id, Loan.status)
        raise InvalidStateTransition(
            f"loan {loan_id} changed to {status} concurrently", code="loan_not_requested"
        )

    enqueue_sms(
        s,
        event="loan.approved",
        entity_type="loan",
        entity_id=loan.id,
        recipient_phone=loan.borrower_phone,
        message=loan_approved_message(loan),
        now=now,
    )
    log_event(
        s,
        actor=actor,
        action="loan.approve",
        entity_type="loan",
        entity_id=loan.id,
        details={"reference": loan.reference, "pickup_date": pickup_date.isoformat(), "pickup_location": body.pickup_location},
    )
    s.commit()
    s.refresh(loan)
    logger.info("loan %s approved, pickup %s", loan.reference, pickup_date.isoformat())
    return loan


def record_loan_delivery(
    s: Session,
    loan_id: int,
    body: LoanDeliveryRecord,
    actor: str = "system",
    now: datetime | None = None,
) -> Loan:
    """Reconcile a farmer loan's items to what was physically handed over.

    Leaves ``status`` alone; a delivered loan becomes eligible for
    :func:`activate_loan`.
    """
    now = now or utc_now()
    loan = _lock_loan(s, loan_id)

    if not loan.is_farmer_loan:
        raise ValidationError(f"loan {loan.reference} is not a farmer loan", code="not_a_farmer_loan")
    if loan.delivery_status == "delivered":
        raise AlreadyDelivered(f"loan {loan.reference} was already delivered")
    if loan.status in TERMINAL_STATUSES:
        raise InvalidStateTransition(f"loan {loan.reference} is {loan.status}", code="loan_closed")

    items = validate_items(body.items, required=True)

    ok = compare_and_set(
        s,
        Loan,
        loan.id,
        Loan.delivery_status,
        ("pending",),
        {
            "delivery_status": "delivered",
            "delivery_confirmed_at": now,
            "delivered_by_staff_id": body.delivered_by_staff_id,
            "delivery_notes": body.delivery_notes,
            "updated_at": now,
        },
    )
    if not ok:
        s.rollback()
        raise AlreadyDelivered(f"loan {loan_id} was already delivered")

    loan.items = _item_rows(items)

    log_event(
        s,
        actor=actor,
        action="loan.deliver",
        entity_type="loan",
        entity_id=loan.id,
        details={
            "reference": loan.reference,
            "delivered_by_staff_id": body.delivered_by_staff_id,
            "items": [{"name": it.name, "quantity": it.quantity, "total_price": it.total_price} for it in items],
        },
    )
    s.commit()
    s.refresh(loan)
    logger.info("loan %s delivered (%d items)", loan.reference, len(items))
    return loan


def activate_loan(s: Session, loan_id: int, actor: str = "system", now: datetime | None = None) -> Loan:
    now = now or utc_now()
    loan = _lock_loan(s, loan_id)

    if loan.status != "approved":
        raise PreconditionFailed(
            f"loan {loan.reference} is {loan.status}; only approved loans can be activated",
            code="loan_not_approved",
        )
    if loan.pickup_date is None or now < loan.pickup_date:
        raise PreconditionFailed(
            f"loan {loan.reference} cannot be activated before its pickup date",
            code="pickup_date_not_reached",
        )
    if loan.is_farmer_loan and loan.delivery_status != "delivered":
        raise PreconditionFailed(
            f"loan {loan.reference} inputs have not been delivered",
            code="delivery_not_confirmed",
        )

    ok = compare_and_set(
        s,
        Loan,
        loan.id,
        Loan.status,
        ("approved",),
        {"status": "active", "disbursed_at": now, "updated_at": now},
    )
    if not ok:
        s.rollback()
        raise PreconditionFailed(f"loan {loan_id} is no longer approved", code="loan_not_approved")

    enqueue_sms(
        s,
        event="loan.activated",
        entity_type="loan",
        entity_id=loan.id,
        recipient_phone=loan.borrower_phone,
        message=loan_activated_message(loan),
        now=now,
    )
    log_event(
        s,
        actor=actor,
        action="loan.activate",
        entity_type="loan",
        entity_id=loan.id,
        details={"reference": loan.reference, "principal_amount": loan.principal_amount},
    )
    s.commit()
    s.refresh(loan)
    logger.info("loan %s activated", loan.reference)
    return loan


_SORT_COLUMNS = {
    "created_at": Loan.created_at,
    "createdAt": Loan.created_at,
    "due_date": Loan.due_date,
    "principal_amount": Loan.principal_amount,
    "borrower_name": Loan.borrower_name,
    # dashboard names; both borrower kinds keep their name in one column
    "farmer_name": Loan.borrower_name,
    "staff_name": Loan.borrower_name,
}


def loan_conditions(f: LoanFilters) -> list:
    conds = []
    if f.status:
        conds.append(Loan.status == f.status)
    if f.user_type:
        conds.append(Loan.borrower_kind == f.user_type)
    if f.delivery_status:
        conds.append(Loan.delivery_status == f.delivery_status)
    if f.search and f.search.strip():
        term = f"%{f.search.strip().lower()}%"
        conds.append(
            or_(
                func.lower(Loan.reference).like(term),
                func.lower(func.coalesce(Loan.borrower_name, "")).like(term),
                func.coalesce(Loan.borrower_phone, "").like(term),
                func.lower(Loan.loan_type_name).like(term),
            )
        )
    lo, hi = day_bounds(f.start_date, f.end_date)
    if lo is not None:
        conds.append(Loan.created_at >= lo)
    if hi is not None:
        conds.append(Loan.created_at < hi)
    return conds


def list_loans(
    s: Session,
    filters: LoanFilters | None = None,
    page: int = 1,
    limit: int = 20,
    extra_conditions: list | None = None,
) -> dict:
    f = filters or LoanFilters()
    page, limit = clamp_page(page, limit)
    conds = loan_conditions(f) + list(extra_conditions or [])

    total = s.execute(select(func.count(Loan.id)).where(*conds)).scalar_one()

    col = _SORT_COLUMNS.get(f.sort_by, Loan.created_at)
    if f.sort_order == "asc":
        order = (col.asc(), Loan.id.asc())
    else:
        order = (col.desc(), Loan.id.desc())

    rows = (
        s.execute(select(Loan).where(*conds).order_by(*order).offset((page - 1) * limit).limit(limit))
        .scalars()
        .all()
    )
    return {
        "items": list(rows),
        "total": int(total),
        "page": page,
        "limit": limit,
        "total_pages": total_pages(int(total), limit),
    }


def list_loan_requests(s: Session, filters: LoanFilters | None = None, page: int = 1, limit: int = 20) -> dict:
    f = (filters or LoanFilters()).model_copy(update={"status": "requested"})
    return list_loans(s, f, page, limit)


def list_loan_deliveries(s: Session, filters: LoanFilters | None = None, page: int = 1, limit: int = 20) -> dict:
    """Ops queue view: farmer loans awaiting or past physical delivery."""
    f = (filters or LoanFilters()).model_copy(update={"user_type": "farmer", "status": None})
    return list_loans(
        s,
        f,
        page,
        limit,
        extra_conditions=[Loan.status.in_(("approved", "active"))],
    )
