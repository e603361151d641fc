from pydantic import BaseModel, Field, computed_field, field_validator
from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from promisepoint.schemas.purchase import PurchaseOut
from promisepoint.services.money import kobo_to_naira

PickupStatus = Literal["requested", "approved", "staff_updated", "processed", "cancelled"]
PickupChannel = Literal["ussd", "admin"]
PaymentMethod = Literal["cash", "bank_transfer", "wallet"]


def _trim(v: str | None):
    if v is None:
        return None
    v = v.strip()
    return v or None


class PickupItemIn(BaseModel):
    name: str
    quantity: Decimal | None = None
    unit_price: int | None = None  # kobo
    total_price: int | None = None  # kobo; derived from quantity x unit price when omitted
    note: str | None = None

    @field_validator("name")
    @classmethod
    def name_trim(cls, v: str):
        return (v or "").strip()

    @field_validator("note")
    @classmethod
    def note_trim(cls, v: str | None):
        return _trim(v)


class PickupItemOut(BaseModel):
    name: str
    quantity: Decimal | None = None
    unit_price: int | None = None
    total_price: int | None = None
    note: str | None = None


class PickupCreate(BaseModel):
    farmer_id: str
    farmer_name: str
    farmer_phone: str
    channel: PickupChannel = "admin"
    request_notes: str | None = None

    @field_validator("farmer_id", "farmer_name", "farmer_phone")
    @classmethod
    def required_trim(cls, v: str):
        return (v or "").strip()

    @field_validator("request_notes")
    @classmethod
    def notes_trim(cls, v: str | None):
        return _trim(v)


class PickupApprove(BaseModel):
    scheduled_date: datetime | None = None
    approved_notes: str | None = None
    assigned_staff_id: str | None = None
    assigned_staff_name: str | None = None

    @field_validator("approved_notes", "assigned_staff_id", "assigned_staff_name")
    @classmethod
    def text_trim(cls, v: str | None):
        return _trim(v)


class PickupStaffProposal(BaseModel):
    weight_kg: Decimal = Field(alias="weightKg")
    price_per_kg: Decimal = Field(alias="pricePerKg")  # naira
    staff_notes: str | None = None
    pickup_items: list[PickupItemIn] | None = None

    @field_validator("staff_notes")
    @classmethod
    def notes_trim(cls, v: str | None):
        return _trim(v)

    class Config:
        populate_by_name = True


class PickupProcess(BaseModel):
    # The dashboard sends weightKg / pricePerKg; either may be omitted to use the staff proposal.
    weight_kg: Decimal | None = Field(default=None, alias="weightKg")
    price_per_kg: Decimal | None = Field(default=None, alias="pricePerKg")  # naira
    location: str | None = None
    notes: str | None = None
    payment_method: PaymentMethod = "wallet"

    @field_validator("location", "notes")
    @classmethod
    def text_trim(cls, v: str | None):
        return _trim(v)

    class Config:
        populate_by_name = True


class PickupCancel(BaseModel):
    reason: str | None = None

    @field_validator("reason")
    @classmethod
    def reason_trim(cls, v: str | None):
        return _trim(v)


class PickupFilters(BaseModel):
    status: PickupStatus | None = None
    search: str | None = None
    start_date: date | None = None
    end_date: date | None = None


class PickupOut(BaseModel):
    id: int
    farmer_id: str
    farmer_name: str
    farmer_phone: str
    channel: PickupChannel
    status: PickupStatus
    request_notes: str | None
    scheduled_date: datetime | None
    assigned_staff_id: str | None
    assigned_staff_name: str | None = None
    approved_notes: str | None
    staff_notes: str | None
    pickup_items: list[PickupItemOut] | None = None
    proposed_weight_kg: Decimal | None
    proposed_price_per_kg: int | None
    linked_purchase_id: int | None
    processed_at: datetime | None
    cancelled_at: datetime | None
    cancel_reason: str | None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def proposed_price_per_kg_naira(self) -> Decimal | None:
        return kobo_to_naira(self.proposed_price_per_kg)

    class Config:
        from_attributes = True


class PickupPage(BaseModel):
    items: list[PickupOut]
    total: int
    page: int
    limit: int
    total_pages: int


class PickupProcessOut(BaseModel):
    pickup: PickupOut
    purchase: PurchaseOut


class OpsPeriod(BaseModel):
    start_date: date | None = Field(default=None, alias="startDate")
    end_date: date | None = Field(default=None, alias="endDate")

    class Config:
        populate_by_name = True


class OpsDeliveryCounts(BaseModel):
    pending: int
    delivered: int


class OpsPickupCounts(BaseModel):
    total: int
    requested: int
    approved: int
    staff_updated: int = Field(alias="staffUpdated")
    processed: int
    cancelled: int

    class Config:
        populate_by_name = True


class OpsKPIsOut(BaseModel):
    period: OpsPeriod
    deliveries: OpsDeliveryCounts
    pickups: OpsPickupCounts
