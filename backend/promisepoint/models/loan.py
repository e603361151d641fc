from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from promisepoint.db.base import Base

LOAN_STATUSES = ("requested", "approved", "active", "completed", "defaulted")
DELIVERY_STATUSES = ("pending", "delivered")


class Loan(Base):
    __tablename__ = "loans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    reference: Mapped[str] = mapped_column(String(32), unique=True, index=True)

    borrower_kind: Mapped[str] = mapped_column(String(16), index=True)
    farmer_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    staff_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    borrower_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    borrower_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)

    loan_type_id: Mapped[int] = mapped_column(ForeignKey("loan_types.id", ondelete="RESTRICT"), index=True)
    loan_type_name: Mapped[str] = mapped_column(String(128))
    category: Mapped[str] = mapped_column(String(32))

    # All amounts are kobo.
    principal_amount: Mapped[int] = mapped_column(BigInteger)
    interest_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2))
    duration_months: Mapped[int] = mapped_column(Integer)
    interest_amount: Mapped[int] = mapped_column(BigInteger)
    total_repayment: Mapped[int] = mapped_column(BigInteger)
    monthly_payment: Mapped[int] = mapped_column(BigInteger)
    amount_paid: Mapped[int] = mapped_column(BigInteger, default=0)
    amount_outstanding: Mapped[int] = mapped_column(BigInteger)

    status: Mapped[str] = mapped_column(String(16), default="requested", index=True)
    delivery_status: Mapped[str | None] = mapped_column(String(16), nullable=True, index=True)

    purpose: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    pickup_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    pickup_location: Mapped[str | None] = mapped_column(String(256), nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    due_date: Mapped[date] = mapped_column(Date, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    disbursed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    defaulted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    delivery_confirmed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    delivered_by_staff_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    delivery_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    items: Mapped[list["LoanItem"]] = relationship(
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="LoanItem.position",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            "(borrower_kind = 'farmer' AND farmer_id IS NOT NULL AND staff_id IS NULL) OR "
            "(borrower_kind = 'staff' AND staff_id IS NOT NULL AND farmer_id IS NULL)",
            name="ck_loans_single_borrower",
        ),
        CheckConstraint("principal_amount > 0", name="ck_loans_principal_positive"),
        CheckConstraint("amount_outstanding >= 0", name="ck_loans_outstanding_non_negative"),
        CheckConstraint("amount_paid + amount_outstanding = total_repayment", name="ck_loans_repayment_balance"),
    )

    @property
    def is_farmer_loan(self) -> bool:
        return self.borrower_kind == "farmer"

    @property
    def borrower_id(self) -> str:
        return self.farmer_id if self.is_farmer_loan else self.staff_id


class LoanItem(Base):
    __tablename__ = "loan_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    loan_id: Mapped[int] = mapped_column(ForeignKey("loans.id", ondelete="CASCADE"), index=True)
    position: Mapped[int] = mapped_column(Integer, default=0)

    name: Mapped[str] = mapped_column(String(128))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    quantity: Mapped[int] = mapped_column(Integer)
    unit_price: Mapped[int] = mapped_column(BigInteger)
    total_price: Mapped[int] = mapped_column(BigInteger)

    loan: Mapped[Loan] = relationship(back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_loan_items_quantity_positive"),
        CheckConstraint("total_price = quantity * unit_price", name="ck_loan_items_total_price"),
    )
