from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from promisepoint.db.base import Base
from promisepoint.models.audit_log import AuditLog  # noqa: F401
from promisepoint.models.loan import Loan, LoanItem  # noqa: F401
from promisepoint.models.loan_type import LoanType
from promisepoint.models.notification import NotificationIntent  # noqa: F401
from promisepoint.models.pickup import PickupRequest  # noqa: F401
from promisepoint.models.purchase import Purchase  # noqa: F401

NOW = datetime(2025, 3, 10, 9, 0, 0)
TODAY = NOW.date()


@pytest.fixture()
def engine():
    # One in-memory database per test; services commit and roll back freely.
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(eng)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def session(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


def mk_loan_type(
    session,
    user_type: str = "farmer",
    category: str = "input_credit",
    interest_rate: Decimal = Decimal("5.00"),
    duration_months: int = 6,
    min_amount: int | None = None,
    max_amount: int | None = None,
    is_active: bool = True,
) -> LoanType:
    lt = LoanType(
        name=f"Type-{uuid4().hex[:8]}",
        user_type=user_type,
        category=category,
        interest_rate=interest_rate,
        duration_months=duration_months,
        min_amount=min_amount,
        max_amount=max_amount,
        is_active=is_active,
        created_by="test",
        created_at=NOW,
        updated_at=NOW,
    )
    session.add(lt)
    session.commit()
    return lt


def due_in(days: int) -> date:
    return TODAY + timedelta(days=days)
