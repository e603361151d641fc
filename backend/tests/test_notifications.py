import json
from datetime import timedelta

import httpx
from sqlalchemy import select

from conftest import NOW, due_in, mk_loan_type
from promisepoint.models.notification import NotificationIntent
from promisepoint.schemas.loan import LoanApprove, LoanCreate, StaffBorrower
from promisepoint.services.loans import approve_loan_request, create_loan, get_loan
from promisepoint.services.notifications import SmsGateway, dispatch_pending, enqueue_sms


def _gateway(handler) -> SmsGateway:
    return SmsGateway(
        api_url="https://sms.test/api/sms/send",
        api_key="k-test",
        sender_id="PromisePt",
        timeout_s=1.0,
        transport=httpx.MockTransport(handler),
    )


def _approved_loan(session, phone: str | None = "+2348030000009"):
    lt = mk_loan_type(session, user_type="staff", category="personal_loan")
    loan = create_loan(
        session,
        LoanCreate(
            borrower=StaffBorrower(staff_id="S-5", name="Ngozi", phone=phone),
            loan_type_id=lt.id,
            principal_amount=1_000_000,
            due_date=due_in(90),
        ),
        now=NOW,
    )
    return approve_loan_request(
        session, loan.id, LoanApprove(pickup_date=NOW + timedelta(days=1), pickup_location="HQ"), now=NOW
    )


def _intents(session):
    return session.execute(select(NotificationIntent).order_by(NotificationIntent.id)).scalars().all()


def test_approval_enqueues_message(session):
    loan = _approved_loan(session)
    (intent,) = _intents(session)
    assert intent.event == "loan.approved"
    assert intent.entity_id == loan.id
    assert intent.status == "pending"
    assert loan.reference in intent.message
    # 2025-03-11 09:00 UTC is 10:00 in Lagos
    assert "11 Mar 2025" in intent.message
    assert "at HQ" in intent.message


def test_dispatch_sends_pending(session):
    _approved_loan(session)
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"message_id": "1"})

    assert dispatch_pending(session, gateway=_gateway(handler), now=NOW) == 1
    assert seen[0]["to"] == "+2348030000009"
    assert seen[0]["from"] == "PromisePt"
    assert seen[0]["api_key"] == "k-test"

    (intent,) = _intents(session)
    assert intent.status == "sent"
    assert intent.attempts == 1
    assert intent.sent_at == NOW

    assert dispatch_pending(session, gateway=_gateway(handler), now=NOW) == 0
    assert len(seen) == 1


def test_gateway_failure_leaves_loan_committed(session):
    loan = _approved_loan(session)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": "down"})

    for _ in range(2):
        assert dispatch_pending(session, gateway=_gateway(handler), max_attempts=2, now=NOW) == 0

    (intent,) = _intents(session)
    assert intent.status == "failed"
    assert intent.attempts == 2
    assert "503" in intent.last_error

    session.expire_all()
    assert get_loan(session, loan.id).status == "approved"


def test_transport_error_is_retried(session):
    _approved_loan(session)
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200)

    assert dispatch_pending(session, gateway=_gateway(handler), now=NOW) == 0
    (intent,) = _intents(session)
    assert intent.status == "pending"
    assert intent.attempts == 1

    assert dispatch_pending(session, gateway=_gateway(handler), now=NOW) == 1
    assert _intents(session)[0].status == "sent"


def test_missing_phone_is_skipped(session):
    enqueue_sms(
        session,
        event="loan.approved",
        entity_type="loan",
        entity_id=1,
        recipient_phone="  ",
        message="hello",
        now=NOW,
    )
    session.commit()

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("gateway must not be called")

    assert dispatch_pending(session, gateway=_gateway(handler), now=NOW) == 0
    (intent,) = _intents(session)
    assert intent.status == "skipped"
    assert intent.last_error == "no_recipient_phone"
