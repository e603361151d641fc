from decimal import Decimal

import pytest
from sqlalchemy import select

from conftest import NOW
from promisepoint.core.errors import NotFound, ValidationError
from promisepoint.models.audit_log import AuditLog
from promisepoint.schemas.loan_type import LoanTypeCreate, LoanTypeUpdate
from promisepoint.services.loan_types import (
    create_loan_type,
    deactivate_loan_type,
    get_loan_type,
    list_loan_types,
    toggle_loan_type_active,
    update_loan_type,
)


def _body(**kw) -> LoanTypeCreate:
    data = dict(
        name="Input Credit",
        user_type="farmer",
        category="input_credit",
        interest_rate=Decimal("5"),
        duration_months=6,
    )
    data.update(kw)
    return LoanTypeCreate(**data)


def test_create_and_list(session):
    a = create_loan_type(session, _body(), actor="admin-1", now=NOW)
    b = create_loan_type(
        session,
        _body(name="Staff Personal", user_type="staff", category="personal_loan", min_amount=100, max_amount=1_000),
        now=NOW,
    )
    assert a.is_active is True
    assert a.created_by == "admin-1"

    assert [lt.id for lt in list_loan_types(session)] == [a.id, b.id]
    assert [lt.id for lt in list_loan_types(session, user_type="staff")] == [b.id]
    assert [lt.id for lt in list_loan_types(session, category="input_credit")] == [a.id]

    audit = session.execute(select(AuditLog).where(AuditLog.entity_type == "loan_type")).scalars().all()
    assert [r.action for r in audit] == ["loan_type.create", "loan_type.create"]
    assert audit[0].actor == "admin-1"


@pytest.mark.parametrize(
    "kw,code",
    [
        ({"name": "  "}, "loan_type_name_required"),
        ({"interest_rate": Decimal("30.01")}, "interest_rate_invalid"),
        ({"interest_rate": Decimal("-1")}, "interest_rate_invalid"),
        ({"duration_months": 0}, "duration_invalid"),
        ({"duration_months": 61}, "duration_invalid"),
        ({"min_amount": 100}, "amount_bounds_staff_only"),
        (
            {"user_type": "staff", "category": "personal_loan", "min_amount": 500, "max_amount": 100},
            "amount_bounds_invalid",
        ),
    ],
)
def test_create_validation(session, kw, code):
    with pytest.raises(ValidationError) as e:
        create_loan_type(session, _body(**kw), now=NOW)
    assert e.value.code == code


def test_update_is_partial_and_validated(session):
    lt = create_loan_type(session, _body(), now=NOW)
    lt = update_loan_type(session, lt.id, LoanTypeUpdate(description="For maize farmers"), now=NOW)
    assert lt.description == "For maize farmers"
    assert lt.interest_rate == Decimal("5.00")

    with pytest.raises(ValidationError) as e:
        update_loan_type(session, lt.id, LoanTypeUpdate(duration_months=99), now=NOW)
    assert e.value.code == "duration_invalid"


def test_toggle_and_deactivate(session):
    lt = create_loan_type(session, _body(), now=NOW)
    assert toggle_loan_type_active(session, lt.id, now=NOW).is_active is False
    assert toggle_loan_type_active(session, lt.id, now=NOW).is_active is True
    assert deactivate_loan_type(session, lt.id, now=NOW).is_active is False
    assert deactivate_loan_type(session, lt.id, now=NOW).is_active is False

    assert list_loan_types(session, is_active=True) == []
    assert get_loan_type(session, lt.id).id == lt.id


def test_missing_loan_type(session):
    with pytest.raises(NotFound) as e:
        get_loan_type(session, 42)
    assert e.value.code == "loan_type_not_found"
