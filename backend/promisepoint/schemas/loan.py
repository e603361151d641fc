from pydantic import BaseModel, Field, computed_field, field_validator
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal, Union

from promisepoint.services.money import kobo_to_naira

LoanStatus = Literal["requested", "approved", "active", "completed", "defaulted"]
DeliveryStatus = Literal["pending", "delivered"]
LoanSortBy = Literal[
    "created_at", "createdAt", "due_date", "principal_amount", "borrower_name", "farmer_name", "staff_name"
]


def _trim(v: str | None):
    if v is None:
        return None
    v = v.strip()
    return v or None


class FarmerBorrower(BaseModel):
    kind: Literal["farmer"] = "farmer"
    farmer_id: str
    name: str | None = None
    phone: str | None = None


class StaffBorrower(BaseModel):
    kind: Literal["staff"] = "staff"
    staff_id: str
    name: str | None = None
    phone: str | None = None


Borrower = Annotated[Union[FarmerBorrower, StaffBorrower], Field(discriminator="kind")]


class LoanItemIn(BaseModel):
    name: str
    quantity: int
    unit_price: int  # kobo
    total_price: int | None = None  # kobo; derived when omitted
    description: str | None = None

    @field_validator("name")
    @classmethod
    def name_trim(cls, v: str):
        return (v or "").strip()


class LoanCreate(BaseModel):
    borrower: Borrower
    loan_type_id: int
    principal_amount: int  # kobo
    due_date: date
    items: list[LoanItemIn] = []
    monthly_payment: int | None = None  # kobo
    purpose: str | None = None
    notes: str | None = None

    @field_validator("purpose", "notes")
    @classmethod
    def text_trim(cls, v: str | None):
        return _trim(v)


class LoanApprove(BaseModel):
    pickup_date: datetime
    pickup_location: str | None = None
    admin_notes: str | None = None

    @field_validator("pickup_location", "admin_notes")
    @classmethod
    def text_trim(cls, v: str | None):
        return _trim(v)


class LoanDeliveryRecord(BaseModel):
    items: list[LoanItemIn]
    delivered_by_staff_id: str | None = None
    delivery_notes: str | None = None

    @field_validator("delivered_by_staff_id", "delivery_notes")
    @classmethod
    def text_trim(cls, v: str | None):
        return _trim(v)


class LoanFilters(BaseModel):
    status: LoanStatus | None = None
    user_type: Literal["farmer", "staff"] | None = None
    delivery_status: DeliveryStatus | None = None
    search: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    sort_by: LoanSortBy = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


class LoanItemOut(BaseModel):
    name: str
    description: str | None
    quantity: int
    unit_price: int
    total_price: int

    @computed_field
    @property
    def total_price_naira(self) -> Decimal | None:
        return kobo_to_naira(self.total_price)

    class Config:
        from_attributes = True


class LoanOut(BaseModel):
    id: int
    reference: str
    borrower_kind: Literal["farmer", "staff"]
    farmer_id: str | None
    staff_id: str | None
    borrower_name: str | None
    borrower_phone: str | None

    loan_type_id: int
    loan_type_name: str
    category: str

    principal_amount: int
    interest_rate: Decimal
    duration_months: int
    interest_amount: int
    total_repayment: int
    monthly_payment: int
    amount_paid: int
    amount_outstanding: int

    status: LoanStatus
    delivery_status: DeliveryStatus | None
    items: list[LoanItemOut]

    purpose: str | None
    notes: str | None
    pickup_date: datetime | None
    pickup_location: str | None
    admin_notes: str | None
    due_date: date

    created_at: datetime
    updated_at: datetime
    approved_at: datetime | None
    disbursed_at: datetime | None
    completed_at: datetime | None
    defaulted_at: datetime | None

    delivery_confirmed_at: datetime | None
    delivered_by_staff_id: str | None
    delivery_notes: str | None

    @computed_field
    @property
    def principal_amount_naira(self) -> Decimal | None:
        return kobo_to_naira(self.principal_amount)

    @computed_field
    @property
    def total_repayment_naira(self) -> Decimal | None:
        return kobo_to_naira(self.total_repayment)

    @computed_field
    @property
    def monthly_payment_naira(self) -> Decimal | None:
        return kobo_to_naira(self.monthly_payment)

    @computed_field
    @property
    def amount_outstanding_naira(self) -> Decimal | None:
        return kobo_to_naira(self.amount_outstanding)

    class Config:
        from_attributes = True


class LoanPage(BaseModel):
    items: list[LoanOut]
    total: int
    page: int
    limit: int
    total_pages: int


class LoanKPIsOut(BaseModel):
    total_loans: int
    pending_requests: int
    approved_loans: int
    active_loans: int
    completed_loans: int
    defaulted_loans: int
    total_outstanding: int
    total_disbursed: int
    default_rate: float

    @computed_field
    @property
    def total_outstanding_naira(self) -> Decimal | None:
        return kobo_to_naira(self.total_outstanding)

    @computed_field
    @property
    def total_disbursed_naira(self) -> Decimal | None:
        return kobo_to_naira(self.total_disbursed)
