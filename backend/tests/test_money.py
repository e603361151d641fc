from decimal import Decimal

import pytest

from promisepoint.services.money import (
    installment_schedule,
    interest_for,
    kobo_to_naira,
    line_total,
    monthly_payment_for,
    naira_to_kobo,
    normalize_weight,
    purchase_total,
)


@pytest.mark.parametrize(
    "naira,kobo",
    [
        (0, 0),
        (1, 100),
        ("500", 50_000),
        (Decimal("500.50"), 50_050),
        (Decimal("0.005"), 1),  # half-up
        (Decimal("0.004"), 0),
        (Decimal("1234.565"), 123_457),
    ],
)
def test_naira_to_kobo_rounds_half_up(naira, kobo):
    assert naira_to_kobo(naira) == kobo


def test_naira_to_kobo_rejects_missing_and_non_finite():
    with pytest.raises(ValueError):
        naira_to_kobo(None)
    with pytest.raises(ValueError):
        naira_to_kobo(Decimal("NaN"))


def test_kobo_to_naira_is_two_places():
    assert kobo_to_naira(2_500_000) == Decimal("25000.00")
    assert kobo_to_naira(1) == Decimal("0.01")
    assert kobo_to_naira(None) is None


def test_interest_is_rounded_to_whole_kobo():
    # 10_000_000 kobo at 5% -> 500_000 kobo exactly
    assert interest_for(10_000_000, Decimal("5.00")) == 500_000
    # 333 kobo at 7.5% = 24.975 -> 25
    assert interest_for(333, Decimal("7.5")) == 25
    assert interest_for(10_000, Decimal("0")) == 0


def test_installments_floor_with_remainder_on_last():
    sched = installment_schedule(1_000, 3)
    assert sched == [333, 333, 334]
    assert sum(sched) == 1_000
    assert monthly_payment_for(1_000, 3) == 333


def test_installments_exact_split():
    assert installment_schedule(10_500_000, 6) == [1_750_000] * 6


def test_installments_need_at_least_one_month():
    with pytest.raises(ValueError):
        installment_schedule(100, 0)


def test_line_and_purchase_totals():
    assert line_total(4, 1_250_000) == 5_000_000
    assert purchase_total(Decimal("50"), 50_000) == 2_500_000
    # 12.345 kg at 101 kobo = 1246.845 -> 1247
    assert purchase_total(Decimal("12.345"), 101) == 1_247


def test_normalize_weight_three_places():
    assert normalize_weight("1.0005") == Decimal("1.001")
    assert normalize_weight(50) == Decimal("50.000")
