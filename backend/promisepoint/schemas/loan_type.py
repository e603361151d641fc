from pydantic import BaseModel, computed_field, field_validator
from datetime import datetime
from decimal import Decimal
from typing import Literal

from promisepoint.services.money import kobo_to_naira

UserType = Literal["farmer", "staff"]
LoanCategory = Literal["input_credit", "farm_tools", "equipment", "personal_loan", "emergency_loan"]


def _trim(v: str | None):
    if v is None:
        return None
    v = v.strip()
    return v or None


class LoanTypeCreate(BaseModel):
    name: str
    description: str | None = None
    user_type: UserType
    category: LoanCategory
    interest_rate: Decimal
    duration_months: int
    min_amount: int | None = None  # kobo, staff only
    max_amount: int | None = None  # kobo, staff only

    @field_validator("name")
    @classmethod
    def name_trim(cls, v: str):
        return (v or "").strip()

    @field_validator("description")
    @classmethod
    def description_trim(cls, v: str | None):
        return _trim(v)


class LoanTypeUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    user_type: UserType | None = None
    category: LoanCategory | None = None
    interest_rate: Decimal | None = None
    duration_months: int | None = None
    min_amount: int | None = None
    max_amount: int | None = None

    @field_validator("name", "description")
    @classmethod
    def text_trim(cls, v: str | None):
        return _trim(v)


class LoanTypeOut(BaseModel):
    id: int
    name: str
    description: str | None
    user_type: UserType
    category: str
    interest_rate: Decimal
    duration_months: int
    min_amount: int | None
    max_amount: int | None
    is_active: bool
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @computed_field
    @property
    def min_amount_naira(self) -> Decimal | None:
        return kobo_to_naira(self.min_amount)

    @computed_field
    @property
    def max_amount_naira(self) -> Decimal | None:
        return kobo_to_naira(self.max_amount)

    class Config:
        from_attributes = True
