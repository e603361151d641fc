"""Kobo/naira conversion and loan arithmetic.

Every stored amount is an integer number of kobo. Naira values only exist at
the API boundary: inbound naira goes through :func:`naira_to_kobo`, outbound
presentation through :func:`kobo_to_naira`. Business logic never multiplies
or divides by 100 itself.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

KOBO_PER_NAIRA = 100
Q0 = Decimal("1")
Q2 = Decimal("0.01")


def _to_dec(v) -> Decimal:
    return Decimal(str(v))


def round_kobo(x: Decimal) -> int:
    return int(x.quantize(Q0, rounding=ROUND_HALF_UP))


def naira_to_kobo(naira) -> int:
    """Convert a naira amount (int, float, str or Decimal) to integer kobo, half-up."""
    if naira is None:
        raise ValueError("amount is required")
    d = _to_dec(naira)
    if not d.is_finite():
        raise ValueError("amount must be finite")
    return round_kobo(d * KOBO_PER_NAIRA)


def kobo_to_naira(kobo: int | None) -> Decimal | None:
    if kobo is None:
        return None
    return (Decimal(int(kobo)) / KOBO_PER_NAIRA).quantize(Q2)


def interest_for(principal: int, rate_percent) -> int:
    return round_kobo(Decimal(int(principal)) * _to_dec(rate_percent) / Decimal("100"))


def installment_schedule(total: int, months: int) -> list[int]:
    """Split ``total`` kobo into ``months`` installments.

    Each installment is the floor of ``total / months``; the last one absorbs
    the remainder so the schedule always sums to ``total``.
    """
    if months < 1:
        raise ValueError("months must be >= 1")
    base = total // months
    schedule = [base] * months
    schedule[-1] = total - base * (months - 1)
    return schedule


def monthly_payment_for(total: int, months: int) -> int:
    return installment_schedule(total, months)[0]


def line_total(quantity, unit_price: int) -> int:
    return round_kobo(_to_dec(quantity) * Decimal(int(unit_price)))


def purchase_total(weight_kg, price_per_kg: int) -> int:
    return round_kobo(_to_dec(weight_kg) * Decimal(int(price_per_kg)))


def normalize_weight(v) -> Decimal:
    return _to_dec(v).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
