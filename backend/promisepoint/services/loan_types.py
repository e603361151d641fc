from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from promisepoint.core.errors import NotFound
from promisepoint.models.loan_type import LoanType
from promisepoint.schemas.loan_type import LoanTypeCreate, LoanTypeUpdate
from promisepoint.services.audit import log_event
from promisepoint.services.validation import validate_create_loan_type, validate_loan_type_fields
from promisepoint.utils.timezone import utc_now

logger = logging.getLogger(__name__)


def _details(lt: LoanType) -> dict:
    return {
        "name": lt.name,
        "user_type": lt.user_type,
        "category": lt.category,
        "interest_rate": str(lt.interest_rate),
        "duration_months": lt.duration_months,
        "min_amount": lt.min_amount,
        "max_amount": lt.max_amount,
        "is_active": lt.is_active,
    }


def get_loan_type(s: Session, loan_type_id: int) -> LoanType:
    lt = s.execute(select(LoanType).where(LoanType.id == loan_type_id)).scalar_one_or_none()
    if lt is None:
        raise NotFound(f"loan type {loan_type_id} not found", code="loan_type_not_found")
    return lt


def list_loan_types(
    s: Session,
    category: str | None = None,
    is_active: bool | None = None,
    user_type: str | None = None,
) -> list[LoanType]:
    q = select(LoanType)
    if category:
        q = q.where(LoanType.category == category)
    if is_active is not None:
        q = q.where(LoanType.is_active == is_active)
    if user_type:
        q = q.where(LoanType.user_type == user_type)
    q = q.order_by(LoanType.user_type.asc(), LoanType.name.asc(), LoanType.id.asc())
    return list(s.execute(q).scalars().all())


def create_loan_type(s: Session, body: LoanTypeCreate, actor: str = "system", now: datetime | None = None) -> LoanType:
    validate_create_loan_type(body)
    now = now or utc_now()

    lt = LoanType(
        name=body.name,
        description=body.description,
        user_type=body.user_type,
        category=body.category,
        interest_rate=body.interest_rate,
        duration_months=int(body.duration_months),
        min_amount=body.min_amount,
        max_amount=body.max_amount,
        is_active=True,
        created_by=actor,
        created_at=now,
        updated_at=now,
    )
    s.add(lt)
    s.flush()
    log_event(s, actor=actor, action="loan_type.create", entity_type="loan_type", entity_id=lt.id, details=_details(lt))
    s.commit()
    s.refresh(lt)
    logger.info("loan type %s created (%s, %s)", lt.id, lt.user_type, lt.category)
    return lt


def update_loan_type(
    s: Session,
    loan_type_id: int,
    body: LoanTypeUpdate,
    actor: str = "system",
    now: datetime | None = None,
) -> LoanType:
    """Apply a partial update.

    Existing loans are unaffected: they froze rate and duration when created.
    """
    lt = get_loan_type(s, loan_type_id)
    changes = body.model_dump(exclude_unset=True)

    merged = {
        "name": lt.name,
        "user_type": lt.user_type,
        "category": lt.category,
        "interest_rate": lt.interest_rate,
        "duration_months": lt.duration_months,
        "min_amount": lt.min_amount,
        "max_amount": lt.max_amount,
    }
    merged.update({k: v for k, v in changes.items() if k in merged})
    validate_loan_type_fields(**merged)

    for k, v in changes.items():
        setattr(lt, k, v)
    lt.updated_at = now or utc_now()

    log_event(
        s,
        actor=actor,
        action="loan_type.update",
        entity_type="loan_type",
        entity_id=lt.id,
        details={k: str(v) if v is not None else None for k, v in changes.items()},
    )
    s.commit()
    s.refresh(lt)
    return lt


def set_loan_type_active(
    s: Session,
    loan_type_id: int,
    is_active: bool,
    actor: str = "system",
    now: datetime | None = None,
) -> LoanType:
    lt = get_loan_type(s, loan_type_id)
    lt.is_active = bool(is_active)
    lt.updated_at = now or utc_now()
    log_event(
        s,
        actor=actor,
        action="loan_type.activate" if lt.is_active else "loan_type.deactivate",
        entity_type="loan_type",
        entity_id=lt.id,
        details={"name": lt.name},
    )
    s.commit()
    s.refresh(lt)
    return lt


def toggle_loan_type_active(s: Session, loan_type_id: int, actor: str = "system", now: datetime | None = None) -> LoanType:
    lt = get_loan_type(s, loan_type_id)
    return set_loan_type_active(s, loan_type_id, not lt.is_active, actor=actor, now=now)


def deactivate_loan_type(s: Session, loan_type_id: int, actor: str = "system", now: datetime | None = None) -> LoanType:
    # Loan types are never hard-deleted; historical loans keep their reference.
    return set_loan_type_active(s, loan_type_id, False, actor=actor, now=now)
