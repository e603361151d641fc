"""Pickup request lifecycle.

``requested -> approved -> staff_updated -> processed``, with ``cancelled``
reachable from any non-terminal status. Processing creates exactly one
Purchase through a :class:`PurchaseService`, inside the same transaction that
marks the pickup processed.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from promisepoint.core.errors import AlreadyProcessed, InvalidStateTransition, NotFound
from promisepoint.models.pickup import PICKUP_STATUSES, PickupRequest
from promisepoint.models.purchase import Purchase
from promisepoint.schemas.pickup import PickupApprove, PickupCreate, PickupFilters, PickupItemIn
from promisepoint.services.audit import log_event
from promisepoint.services.pagination import clamp_page, day_bounds, total_pages
from promisepoint.services.purchases import PurchaseService, SqlPurchaseService
from promisepoint.services.state import compare_and_set, current_value, load_for_update
from promisepoint.services.validation import (
    validate_create_pickup,
    validate_pickup_items,
    validate_process_pickup,
    validate_staff_proposal,
)
from promisepoint.utils.timezone import as_naive_utc, utc_now

logger = logging.getLogger(__name__)

APPROVABLE = ("requested", "staff_updated")
PROCESSABLE = ("approved", "staff_updated")
CANCELLABLE = ("requested", "approved", "staff_updated")


def get_pickup_request(s: Session, pickup_id: int) -> PickupRequest:
    p = s.execute(select(PickupRequest).where(PickupRequest.id == pickup_id)).scalar_one_or_none()
    if p is None:
        raise NotFound(f"pickup request {pickup_id} not found", code="pickup_not_found")
    return p


def _lock_pickup(s: Session, pickup_id: int) -> PickupRequest:
    p = load_for_update(s, PickupRequest, pickup_id)
    if p is None:
        raise NotFound(f"pickup request {pickup_id} not found", code="pickup_not_found")
    return p


def _transition_error(pickup_id: int, status: str | None, action: str):
    if status == "processed":
        return AlreadyProcessed(f"pickup request {pickup_id} was already processed")
    return InvalidStateTransition(
        f"pickup request {pickup_id} is {status}; cannot {action}",
        code="pickup_invalid_status",
    )


def create_pickup_request(s: Session, body: PickupCreate, actor: str = "system", now: datetime | None = None) -> PickupRequest:
    validate_create_pickup(body)
    now = now or utc_now()

    p = PickupRequest(
        farmer_id=body.farmer_id,
        farmer_name=body.farmer_name,
        farmer_phone=body.farmer_phone,
        channel=body.channel,
        status="requested",
        request_notes=body.request_notes,
        created_at=now,
        updated_at=now,
    )
    s.add(p)
    s.flush()
    log_event(
        s,
        actor=actor,
        action="pickup.create",
        entity_type="pickup_request",
        entity_id=p.id,
        details={"farmer_id": p.farmer_id, "channel": p.channel},
    )
    s.commit()
    s.refresh(p)
    logger.info("pickup request %s created via %s for farmer %s", p.id, p.channel, p.farmer_id)
    return p


def approve_pickup_request(
    s: Session,
    pickup_id: int,
    body: PickupApprove,
    actor: str = "system",
    now: datetime | None = None,
) -> PickupRequest:
    now = now or utc_now()
    p = _lock_pickup(s, pickup_id)
    if p.status not in APPROVABLE:
        raise InvalidStateTransition(
            f"pickup request {p.id} is {p.status}; cannot approve",
            code="pickup_invalid_status",
        )

    values = {"status": "approved", "updated_at": now}
    if body.scheduled_date is not None:
        values["scheduled_date"] = as_naive_utc(body.scheduled_date)
    if body.approved_notes is not None:
        values["approved_notes"] = body.approved_notes
    if body.assigned_staff_id is not None:
        values["assigned_staff_id"] = body.assigned_staff_id
    if body.assigned_staff_name is not None:
        values["assigned_staff_name"] = body.assigned_staff_name

    if not compare_and_set(s, PickupRequest, p.id, PickupRequest.status, APPROVABLE, values):
        s.rollback()
        status = current_value(s, PickupRequest, pickup_id, PickupRequest.status)
        raise InvalidStateTransition(
            f"pickup request {pickup_id} is {status}; cannot approve",
            code="pickup_invalid_status",
        )

    log_event(
        s,
        actor=actor,
        action="pickup.approve",
        entity_type="pickup_request",
        entity_id=p.id,
        details={k: (v.isoformat() if isinstance(v, datetime) else v) for k, v in values.items() if k != "updated_at"},
    )
    s.commit()
    s.refresh(p)
    return p


def record_staff_proposal(
    s: Session,
    pickup_id: int,
    weight_kg,
    price_per_kg: int,
    staff_notes: str | None = None,
    pickup_items: list[PickupItemIn] | None = None,
    actor: str = "system",
    now: datetime | None = None,
) -> PickupRequest:
    """Assigned staff enter the weight and per-kg price (kobo) they agreed on site."""
    now = now or utc_now()
    weight, price = validate_staff_proposal(weight_kg, price_per_kg)
    items = validate_pickup_items(pickup_items) if pickup_items is not None else None
    p = _lock_pickup(s, pickup_id)
    if p.status != "approved":
        raise _transition_error(p.id, p.status, "record a staff update")

    values = {
        "status": "staff_updated",
        "proposed_weight_kg": weight,
        "proposed_price_per_kg": price,
        "updated_at": now,
    }
    if staff_notes is not None:
        values["staff_notes"] = staff_notes
    if items is not None:
        values["pickup_items"] = items

    if not compare_and_set(s, PickupRequest, p.id, PickupRequest.status, ("approved",), values):
        s.rollback()
        raise _transition_error(pickup_id, current_value(s, PickupRequest, pickup_id, PickupRequest.status), "record a staff update")

    log_event(
        s,
        actor=actor,
        action="pickup.staff_update",
        entity_type="pickup_request",
        entity_id=p.id,
        details={
            "proposed_weight_kg": str(weight),
            "proposed_price_per_kg": price,
            "items": len(items) if items is not None else None,
        },
    )
    s.commit()
    s.refresh(p)
    return p


def process_pickup_to_purchase(
    s: Session,
    pickup_id: int,
    weight_kg=None,
    price_per_kg: int | None = None,
    location: str | None = None,
    notes: str | None = None,
    payment_method: str = "wallet",
    actor: str = "system",
    now: datetime | None = None,
    purchases: PurchaseService | None = None,
) -> tuple[PickupRequest, Purchase]:
    """Turn an approved pickup into a Purchase; ``price_per_kg`` is kobo.

    Omitted weight or price fall back to the staff proposal. Either both the
    purchase row and the pickup's ``processed`` status are committed, or
    neither is.
    """
    now = now or utc_now()
    purchases = purchases or SqlPurchaseService()

    p = _lock_pickup(s, pickup_id)
    if p.status not in PROCESSABLE:
        raise _transition_error(p.id, p.status, "process")

    if weight_kg is None:
        weight_kg = p.proposed_weight_kg
    if price_per_kg is None:
        price_per_kg = p.proposed_price_per_kg
    weight, price = validate_process_pickup(weight_kg, price_per_kg, payment_method)

    try:
        purchase = purchases.create_purchase(
            s,
            pickup_request_id=p.id,
            farmer_id=p.farmer_id,
            farmer_name=p.farmer_name,
            farmer_phone=p.farmer_phone,
            weight_kg=weight,
            price_per_kg=price,
            payment_method=payment_method,
            location=location,
            notes=notes,
            recorded_by=actor,
            now=now,
        )
        ok = compare_and_set(
            s,
            PickupRequest,
            p.id,
            PickupRequest.status,
            PROCESSABLE,
            {
                "status": "processed",
                "linked_purchase_id": purchase.id,
                "processed_at": now,
                "updated_at": now,
            },
        )
        if not ok:
            status = current_value(s, PickupRequest, pickup_id, PickupRequest.status)
            raise _transition_error(pickup_id, status, "process")

        log_event(
            s,
            actor=actor,
            action="pickup.process",
            entity_type="pickup_request",
            entity_id=p.id,
            details={
                "purchase_id": purchase.id,
                "weight_kg": str(weight),
                "price_per_kg": price,
                "total_amount": purchase.total_amount,
            },
        )
        s.commit()
    except IntegrityError:
        s.rollback()
        raise AlreadyProcessed(f"pickup request {pickup_id} was already processed")
    except Exception:
        s.rollback()
        raise

    s.refresh(p)
    s.refresh(purchase)
    logger.info("pickup request %s processed into purchase %s", p.id, purchase.id)
    return p, purchase


def cancel_pickup_request(
    s: Session,
    pickup_id: int,
    reason: str | None = None,
    actor: str = "system",
    now: datetime | None = None,
) -> PickupRequest:
    now = now or utc_now()
    p = _lock_pickup(s, pickup_id)
    if p.status not in CANCELLABLE:
        raise InvalidStateTransition(
            f"pickup request {p.id} is {p.status}; cannot cancel",
            code="pickup_invalid_status",
        )

    values = {"status": "cancelled", "cancelled_at": now, "cancel_reason": reason, "updated_at": now}
    if not compare_and_set(s, PickupRequest, p.id, PickupRequest.status, CANCELLABLE, values):
        s.rollback()
        status = current_value(s, PickupRequest, pickup_id, PickupRequest.status)
        raise InvalidStateTransition(
            f"pickup request {pickup_id} is {status}; cannot cancel",
            code="pickup_invalid_status",
        )

    log_event(
        s,
        actor=actor,
        action="pickup.cancel",
        entity_type="pickup_request",
        entity_id=p.id,
        details={"reason": reason},
    )
    s.commit()
    s.refresh(p)
    return p


def list_pickup_requests(
    s: Session,
    filters: PickupFilters | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    f = filters or PickupFilters()
    page, limit = clamp_page(page, limit)

    conds = []
    if f.status:
        conds.append(PickupRequest.status == f.status)
    if f.search and f.search.strip():
        term = f"%{f.search.strip().lower()}%"
        conds.append(
            or_(
                func.lower(PickupRequest.farmer_name).like(term),
                PickupRequest.farmer_phone.like(term),
                func.lower(PickupRequest.farmer_id).like(term),
            )
        )
    lo, hi = day_bounds(f.start_date, f.end_date)
    if lo is not None:
        conds.append(PickupRequest.created_at >= lo)
    if hi is not None:
        conds.append(PickupRequest.created_at < hi)

    total = s.execute(select(func.count(PickupRequest.id)).where(*conds)).scalar_one()
    rows = (
        s.execute(
            select(PickupRequest)
            .where(*conds)
            .order_by(PickupRequest.created_at.desc(), PickupRequest.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
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


def pickup_status_counts(s: Session, conds: list | None = None) -> dict[str, int]:
    rows = s.execute(
        select(PickupRequest.status, func.count(PickupRequest.id)).where(*(conds or [])).group_by(PickupRequest.status)
    ).all()
    out = {st: 0 for st in PICKUP_STATUSES}
    for st, n in rows:
        out[st] = int(n)
    return out
