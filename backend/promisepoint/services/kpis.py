from __future__ import annotations

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from promisepoint.models.loan import LOAN_STATUSES, Loan
from promisepoint.models.pickup import PickupRequest
from promisepoint.schemas.loan import LoanFilters
from promisepoint.services.loans import loan_conditions
from promisepoint.services.pagination import day_bounds
from promisepoint.services.pickups import pickup_status_counts


def get_loan_kpis(s: Session, filters: LoanFilters | None = None) -> dict:
    """Counts by status plus money totals (kobo) for the filtered loans.

    ``default_rate`` is defaulted loans over loans that were ever disbursed
    (active, completed or defaulted), as a fraction in ``[0, 1]``.
    """
    conds = loan_conditions(filters or LoanFilters())

    rows = s.execute(
        select(Loan.status, func.count(Loan.id), func.coalesce(func.sum(Loan.amount_outstanding), 0))
        .where(*conds)
        .group_by(Loan.status)
    ).all()

    counts = {st: 0 for st in LOAN_STATUSES}
    outstanding = 0
    for st, n, out in rows:
        counts[st] = int(n)
        if st in ("active", "defaulted"):
            outstanding += int(out)

    disbursed_count, disbursed_sum = s.execute(
        select(func.count(Loan.id), func.coalesce(func.sum(Loan.principal_amount), 0)).where(
            *conds, Loan.disbursed_at.is_not(None)
        )
    ).one()

    ever_active = int(disbursed_count)
    default_rate = round(counts["defaulted"] / ever_active, 4) if ever_active else 0.0

    return {
        "total_loans": sum(counts.values()),
        "pending_requests": counts["requested"],
        "approved_loans": counts["approved"],
        "active_loans": counts["active"],
        "completed_loans": counts["completed"],
        "defaulted_loans": counts["defaulted"],
        "total_outstanding": outstanding,
        "total_disbursed": int(disbursed_sum),
        "default_rate": default_rate,
    }


def get_ops_kpis(s: Session, start: date | None = None, end: date | None = None) -> dict:
    lo, hi = day_bounds(start, end)

    loan_conds = [Loan.borrower_kind == "farmer", Loan.status.in_(("approved", "active"))]
    pickup_conds = []
    if lo is not None:
        loan_conds.append(Loan.created_at >= lo)
        pickup_conds.append(PickupRequest.created_at >= lo)
    if hi is not None:
        loan_conds.append(Loan.created_at < hi)
        pickup_conds.append(PickupRequest.created_at < hi)

    delivery_rows = s.execute(
        select(Loan.delivery_status, func.count(Loan.id)).where(*loan_conds).group_by(Loan.delivery_status)
    ).all()
    deliveries = {"pending": 0, "delivered": 0}
    for st, n in delivery_rows:
        if st in deliveries:
            deliveries[st] = int(n)

    pickups = pickup_status_counts(s, pickup_conds)

    return {
        "period": {"start_date": start, "end_date": end},
        "deliveries": deliveries,
        "pickups": {
            "total": sum(pickups.values()),
            "requested": pickups["requested"],
            "approved": pickups["approved"],
            "staff_updated": pickups["staff_updated"],
            "processed": pickups["processed"],
            "cancelled": pickups["cancelled"],
        },
    }
