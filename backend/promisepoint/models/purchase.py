from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from promisepoint.db.base import Base


class Purchase(Base):
    __tablename__ = "purchases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # One purchase per pickup; the unique key makes creation idempotent.
    pickup_request_id: Mapped[int | None] = mapped_column(
        ForeignKey("pickup_requests.id", ondelete="RESTRICT"), unique=True, nullable=True
    )

    farmer_id: Mapped[str] = mapped_column(String(64), index=True)
    farmer_name: Mapped[str] = mapped_column(String(128))
    farmer_phone: Mapped[str] = mapped_column(String(32))

    weight_kg: Mapped[Decimal] = mapped_column(Numeric(12, 3))
    unit: Mapped[str] = mapped_column(String(8), default="kg")
    price_per_kg: Mapped[int] = mapped_column(BigInteger)
    total_amount: Mapped[int] = mapped_column(BigInteger)

    status: Mapped[str] = mapped_column(String(16), default="pending", index=True)
    payment_method: Mapped[str] = mapped_column(String(16), default="wallet")
    payment_status: Mapped[str] = mapped_column(String(16), default="pending")

    recorded_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    location: Mapped[str | None] = mapped_column(String(256), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, index=True)
