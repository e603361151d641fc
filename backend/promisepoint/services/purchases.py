from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from promisepoint.models.purchase import Purchase
from promisepoint.services.money import purchase_total


class PurchaseService(Protocol):
    def create_purchase(
        self,
        s: Session,
        *,
        pickup_request_id: int,
        farmer_id: str,
        farmer_name: str,
        farmer_phone: str,
        weight_kg: Decimal,
        price_per_kg: int,
        payment_method: str,
        location: str | None,
        notes: str | None,
        recorded_by: str | None,
        now: datetime,
    ) -> Purchase: ...


class SqlPurchaseService:
    """Writes purchases into the caller's session without committing.

    Creation is idempotent on ``pickup_request_id``: a second call for the
    same pickup returns the existing row, and the unique key rejects a
    concurrent duplicate at commit.
    """

    def create_purchase(
        self,
        s: Session,
        *,
        pickup_request_id: int,
        farmer_id: str,
        farmer_name: str,
        farmer_phone: str,
        weight_kg: Decimal,
        price_per_kg: int,
        payment_method: str,
        location: str | None,
        notes: str | None,
        recorded_by: str | None,
        now: datetime,
    ) -> Purchase:
        existing = s.execute(
            select(Purchase).where(Purchase.pickup_request_id == pickup_request_id)
        ).scalar_one_or_none()
        if existing is not None:
            return existing

        p = Purchase(
            pickup_request_id=pickup_request_id,
            farmer_id=farmer_id,
            farmer_name=farmer_name,
            farmer_phone=farmer_phone,
            weight_kg=weight_kg,
            unit="kg",
            price_per_kg=int(price_per_kg),
            total_amount=purchase_total(weight_kg, price_per_kg),
            status="pending",
            payment_method=payment_method,
            payment_status="pending",
            recorded_by=recorded_by,
            location=location,
            notes=notes,
            created_at=now,
        )
        s.add(p)
        s.flush()
        return p
