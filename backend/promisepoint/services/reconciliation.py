"""System-driven end states for active loans.

Repayments are recorded by a separate repayment-tracking system that keeps
``amount_paid``/``amount_outstanding`` current. This module only moves
``active`` loans to ``completed`` (nothing outstanding) or ``defaulted``
(past due with a balance), and is meant to run from a scheduled job.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from promisepoint.core.errors import NotFound, PreconditionFailed
from promisepoint.models.loan import Loan
from promisepoint.services.audit import log_event
from promisepoint.services.state import compare_and_set, load_for_update
from promisepoint.utils.timezone import utc_now

logger = logging.getLogger(__name__)


def _lock_active(s: Session, loan_id: int) -> Loan:
    loan = load_for_update(s, Loan, loan_id)
    if loan is None:
        raise NotFound(f"loan {loan_id} not found", code="loan_not_found")
    if loan.status != "active":
        raise PreconditionFailed(f"loan {loan.reference} is {loan.status}, not active", code="loan_not_active")
    return loan


def _finish(s: Session, loan: Loan, status: str, stamp_field: str, actor: str, now: datetime) -> Loan:
    if not compare_and_set(s, Loan, loan.id, Loan.status, ("active",), {"status": status, stamp_field: now, "updated_at": now}):
        s.rollback()
        raise PreconditionFailed(f"loan {loan.id} is no longer active", code="loan_not_active")
    log_event(
        s,
        actor=actor,
        action=f"loan.{status}",
        entity_type="loan",
        entity_id=loan.id,
        details={"reference": loan.reference, "amount_outstanding": loan.amount_outstanding},
    )
    s.commit()
    s.refresh(loan)
    logger.info("loan %s %s", loan.reference, status)
    return loan


def complete_loan(s: Session, loan_id: int, actor: str = "system", now: datetime | None = None) -> Loan:
    now = now or utc_now()
    loan = _lock_active(s, loan_id)
    if loan.amount_outstanding != 0:
        raise PreconditionFailed(f"loan {loan.reference} still has an outstanding balance", code="balance_outstanding")
    return _finish(s, loan, "completed", "completed_at", actor, now)


def default_loan(s: Session, loan_id: int, actor: str = "system", now: datetime | None = None) -> Loan:
    now = now or utc_now()
    loan = _lock_active(s, loan_id)
    if loan.amount_outstanding <= 0:
        raise PreconditionFailed(f"loan {loan.reference} has no outstanding balance", code="no_balance_outstanding")
    if now.date() <= loan.due_date:
        raise PreconditionFailed(f"loan {loan.reference} is not past due", code="loan_not_past_due")
    return _finish(s, loan, "defaulted", "defaulted_at", actor, now)


def reconcile_active_loans(s: Session, now: datetime | None = None) -> dict[str, int]:
    now = now or utc_now()
    candidates = s.execute(
        select(Loan.id, Loan.amount_outstanding, Loan.due_date).where(Loan.status == "active").order_by(Loan.id.asc())
    ).all()

    out = {"completed": 0, "defaulted": 0}
    for loan_id, outstanding, due_date in candidates:
        try:
            if outstanding == 0:
                complete_loan(s, loan_id, now=now)
                out["completed"] += 1
            elif now.date() > due_date:
                default_loan(s, loan_id, now=now)
                out["defaulted"] += 1
        except PreconditionFailed as e:
            # Another writer moved the loan first.
            s.rollback()
            logger.info("reconcile skipped loan %s: %s", loan_id, e)
    return out
