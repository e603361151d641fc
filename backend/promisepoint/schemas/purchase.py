from pydantic import BaseModel, computed_field
from datetime import datetime
from decimal import Decimal

from promisepoint.services.money import kobo_to_naira


class PurchaseOut(BaseModel):
    id: int
    pickup_request_id: int | None
    farmer_id: str
    farmer_name: str
    farmer_phone: str
    weight_kg: Decimal
    unit: str
    price_per_kg: int
    total_amount: int
    status: str
    payment_method: str
    payment_status: str
    recorded_by: str | None
    location: str | None
    notes: str | None
    created_at: datetime

    @computed_field
    @property
    def price_per_kg_naira(self) -> Decimal | None:
        return kobo_to_naira(self.price_per_kg)

    @computed_field
    @property
    def total_amount_naira(self) -> Decimal | None:
        return kobo_to_naira(self.total_amount)

    class Config:
        from_attributes = True
