from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, BigInteger, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from promisepoint.db.base import Base

PICKUP_STATUSES = ("requested", "approved", "staff_updated", "processed", "cancelled")
PICKUP_CHANNELS = ("ussd", "admin")


class PickupRequest(Base):
    __tablename__ = "pickup_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    farmer_id: Mapped[str] = mapped_column(String(64), index=True)
    farmer_name: Mapped[str] = mapped_column(String(128))
    farmer_phone: Mapped[str] = mapped_column(String(32))
    channel: Mapped[str] = mapped_column(String(8), default="admin")

    status: Mapped[str] = mapped_column(String(16), default="requested", index=True)
    request_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    scheduled_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    assigned_staff_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    assigned_staff_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    approved_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    staff_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    # [{name, quantity, unit_price, total_price, note}], prices in kobo
    pickup_items: Mapped[list | None] = mapped_column(JSON, nullable=True)

    proposed_weight_kg: Mapped[Decimal | None] = mapped_column(Numeric(12, 3), nullable=True)
    # kobo, entered in naira by staff
    proposed_price_per_kg: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    linked_purchase_id: Mapped[int | None] = mapped_column(Integer, nullable=True, unique=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    cancel_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime)
