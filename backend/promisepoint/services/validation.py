"""Input rules for every write operation.

Routes, scripts and tests all go through these functions, so a rule lives in
exactly one place. Each check raises :class:`ValidationError` with a
snake_case code; a missing loan type raises :class:`NotFound`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from promisepoint.core.errors import NotFound, ValidationError
from promisepoint.models.loan_type import LOAN_TYPE_CATEGORIES, USER_TYPES, LoanType
from promisepoint.schemas.loan import LoanCreate, LoanItemIn
from promisepoint.schemas.loan_type import LoanTypeCreate
from promisepoint.schemas.pickup import PickupCreate, PickupItemIn
from promisepoint.services.money import line_total, normalize_weight

MAX_INTEREST_RATE = Decimal("30")
MAX_DURATION_MONTHS = 60
PAYMENT_METHODS = ("cash", "bank_transfer", "wallet")


@dataclass(frozen=True)
class ItemLine:
    name: str
    quantity: int
    unit_price: int
    total_price: int
    description: str | None = None


def validate_items(items: list[LoanItemIn], required: bool) -> list[ItemLine]:
    if not items:
        if required:
            raise ValidationError("at least one item is required", code="items_required")
        return []

    out: list[ItemLine] = []
    for idx, it in enumerate(items):
        name = (it.name or "").strip()
        if not name:
            raise ValidationError(f"item {idx + 1}: name is required", code="item_name_required")
        if it.quantity is None or it.quantity <= 0:
            raise ValidationError(f"item {idx + 1}: quantity must be > 0", code="item_quantity_invalid")
        if it.unit_price is None or it.unit_price < 0:
            raise ValidationError(f"item {idx + 1}: unit price must be >= 0", code="item_unit_price_invalid")

        expected = line_total(it.quantity, it.unit_price)
        if it.total_price is not None and int(it.total_price) != expected:
            raise ValidationError(
                f"item {idx + 1}: total price {it.total_price} != quantity x unit price {expected}",
                code="item_total_mismatch",
            )
        out.append(
            ItemLine(
                name=name,
                quantity=int(it.quantity),
                unit_price=int(it.unit_price),
                total_price=expected,
                description=(it.description or "").strip() or None,
            )
        )
    return out


def validate_create_loan(body: LoanCreate, loan_type: LoanType | None, today: date) -> list[ItemLine]:
    borrower = body.borrower
    borrower_id = borrower.farmer_id if borrower.kind == "farmer" else borrower.staff_id
    if not (borrower_id or "").strip():
        raise ValidationError("borrower id is required", code="borrower_required")

    if body.principal_amount is None or body.principal_amount <= 0:
        raise ValidationError("principal amount must be > 0", code="principal_must_be_positive")

    if body.due_date is None or body.due_date <= today:
        raise ValidationError("due date must be in the future", code="due_date_must_be_future")

    if loan_type is None:
        raise NotFound(f"loan type {body.loan_type_id} does not exist", code="loan_type_not_found")
    if not loan_type.is_active:
        raise ValidationError(f"loan type {loan_type.name} is inactive", code="loan_type_inactive")
    if loan_type.user_type != borrower.kind:
        raise ValidationError(
            f"loan type {loan_type.name} is for {loan_type.user_type} borrowers",
            code="loan_type_user_type_mismatch",
        )

    if borrower.kind == "staff":
        if loan_type.min_amount is not None and body.principal_amount < loan_type.min_amount:
            raise ValidationError("principal amount below the loan type minimum", code="principal_below_minimum")
        if loan_type.max_amount is not None and body.principal_amount > loan_type.max_amount:
            raise ValidationError("principal amount above the loan type maximum", code="principal_above_maximum")

    if body.monthly_payment is not None and body.monthly_payment <= 0:
        raise ValidationError("monthly payment must be > 0", code="monthly_payment_invalid")

    return validate_items(body.items, required=borrower.kind == "farmer")


def validate_pickup_date(pickup_date: datetime | None, now: datetime) -> None:
    if pickup_date is None:
        raise ValidationError("pickup date is required", code="pickup_date_required")
    if pickup_date < now:
        raise ValidationError("pickup date cannot be in the past", code="pickup_date_in_past")


def validate_loan_type_fields(
    *,
    name: str | None,
    user_type: str | None,
    category: str | None,
    interest_rate,
    duration_months: int | None,
    min_amount: int | None,
    max_amount: int | None,
) -> None:
    if not (name or "").strip():
        raise ValidationError("loan type name is required", code="loan_type_name_required")
    if user_type not in USER_TYPES:
        raise ValidationError("user type must be farmer or staff", code="user_type_invalid")
    if category not in LOAN_TYPE_CATEGORIES:
        raise ValidationError(f"unknown loan category {category}", code="category_invalid")
    if interest_rate is None or not (Decimal("0") <= Decimal(str(interest_rate)) <= MAX_INTEREST_RATE):
        raise ValidationError("interest rate must be between 0 and 30", code="interest_rate_invalid")
    if duration_months is None or not (1 <= int(duration_months) <= MAX_DURATION_MONTHS):
        raise ValidationError("duration must be between 1 and 60 months", code="duration_invalid")

    if user_type != "staff" and (min_amount is not None or max_amount is not None):
        raise ValidationError("amount bounds apply to staff loan types only", code="amount_bounds_staff_only")
    for v in (min_amount, max_amount):
        if v is not None and v <= 0:
            raise ValidationError("amount bounds must be > 0", code="amount_bounds_invalid")
    if min_amount is not None and max_amount is not None and min_amount > max_amount:
        raise ValidationError("minimum amount exceeds maximum amount", code="amount_bounds_invalid")


def validate_create_loan_type(body: LoanTypeCreate) -> None:
    validate_loan_type_fields(
        name=body.name,
        user_type=body.user_type,
        category=body.category,
        interest_rate=body.interest_rate,
        duration_months=body.duration_months,
        min_amount=body.min_amount,
        max_amount=body.max_amount,
    )


def validate_create_pickup(body: PickupCreate) -> None:
    for field in ("farmer_id", "farmer_name", "farmer_phone"):
        if not (getattr(body, field) or "").strip():
            raise ValidationError(f"{field} is required", code=f"{field}_required")


def _weight_and_price(weight_kg, price_per_kg: int | None) -> tuple[Decimal, int]:
    if weight_kg is None:
        raise ValidationError("weight is required", code="weight_required")
    weight = normalize_weight(weight_kg)
    if weight <= 0:
        raise ValidationError("weight must be > 0", code="weight_must_be_positive")
    if price_per_kg is None or int(price_per_kg) <= 0:
        raise ValidationError("price per kg must be > 0", code="price_per_kg_must_be_positive")
    return weight, int(price_per_kg)


def validate_staff_proposal(weight_kg, price_per_kg: int | None) -> tuple[Decimal, int]:
    return _weight_and_price(weight_kg, price_per_kg)


def validate_process_pickup(weight_kg, price_per_kg: int | None, payment_method: str = "wallet") -> tuple[Decimal, int]:
    weight, price = _weight_and_price(weight_kg, price_per_kg)
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"unknown payment method {payment_method}", code="payment_method_invalid")
    return weight, price


def validate_pickup_items(items: list[PickupItemIn]) -> list[dict]:
    """Produce stored pickup items; quantity and prices are optional on site."""
    out: list[dict] = []
    for idx, it in enumerate(items):
        name = (it.name or "").strip()
        if not name:
            raise ValidationError(f"item {idx + 1}: name is required", code="item_name_required")
        if it.quantity is not None and it.quantity <= 0:
            raise ValidationError(f"item {idx + 1}: quantity must be > 0", code="item_quantity_invalid")
        for field in ("unit_price", "total_price"):
            v = getattr(it, field)
            if v is not None and v < 0:
                raise ValidationError(f"item {idx + 1}: {field} must be >= 0", code=f"item_{field}_invalid")

        total = it.total_price
        if it.quantity is not None and it.unit_price is not None:
            expected = line_total(it.quantity, it.unit_price)
            if total is not None and int(total) != expected:
                raise ValidationError(
                    f"item {idx + 1}: total price {total} != quantity x unit price {expected}",
                    code="item_total_mismatch",
                )
            total = expected
        out.append(
            {
                "name": name,
                "quantity": str(it.quantity) if it.quantity is not None else None,
                "unit_price": it.unit_price,
                "total_price": total,
                "note": it.note,
            }
        )
    return out
