"""SMS notification outbox.

Transitions call :func:`enqueue_sms` inside their own transaction, so the
intent is committed together with the state change. Delivery happens later
through :func:`dispatch_pending`, which never raises on gateway failures: a
failed send is logged and recorded on the intent, and the loan or pickup
transition that produced it stays committed.
"""

from __future__ import annotations

import logging
from datetime import datetime

import httpx
from sqlalchemy import select
from sqlalchemy.orm import Session

from promisepoint.core.config import settings
from promisepoint.models.loan import Loan
from promisepoint.models.notification import NotificationIntent
from promisepoint.services.money import kobo_to_naira
from promisepoint.utils.timezone import to_lagos, utc_now

logger = logging.getLogger(__name__)


class SmsGateway:
    """Thin client for a Termii-style ``POST /sms/send`` JSON endpoint."""

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        sender_id: str | None = None,
        timeout_s: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_url = api_url or settings.sms_api_url
        self.api_key = api_key if api_key is not None else settings.sms_api_key
        self.sender_id = sender_id or settings.sms_sender_id
        self.timeout_s = timeout_s or settings.sms_timeout_seconds
        self.transport = transport

    def send(self, phone: str, message: str) -> None:
        payload = {
            "to": phone,
            "from": self.sender_id,
            "sms": message,
            "type": "plain",
            "channel": "generic",
            "api_key": self.api_key,
        }
        with httpx.Client(timeout=self.timeout_s, transport=self.transport) as client:
            r = client.post(self.api_url, json=payload)
            r.raise_for_status()


def enqueue_sms(
    s: Session,
    *,
    event: str,
    entity_type: str,
    entity_id: int,
    recipient_phone: str | None,
    message: str,
    now: datetime | None = None,
) -> NotificationIntent:
    intent = NotificationIntent(
        event=event,
        entity_type=entity_type,
        entity_id=entity_id,
        recipient_phone=(recipient_phone or "").strip() or None,
        message=message,
        status="pending",
        attempts=0,
        created_at=now or utc_now(),
    )
    s.add(intent)
    return intent


def _fmt_date(dt: datetime | None) -> str:
    if dt is None:
        return "TBD"
    return to_lagos(dt).strftime("%d %b %Y")


def loan_approved_message(loan: Loan) -> str:
    where = f" at {loan.pickup_location}" if loan.pickup_location else ""
    return (
        f"Promise Point: your loan {loan.reference} has been approved. "
        f"Pick up your inputs on {_fmt_date(loan.pickup_date)}{where}."
    )


def loan_activated_message(loan: Loan) -> str:
    return (
        f"Promise Point: your loan {loan.reference} is now active. "
        f"Total repayment NGN {kobo_to_naira(loan.total_repayment):,.2f}, "
        f"monthly payment NGN {kobo_to_naira(loan.monthly_payment):,.2f}, "
        f"due {loan.due_date.isoformat()}."
    )


def dispatch_pending(
    s: Session,
    gateway: SmsGateway | None = None,
    limit: int = 50,
    max_attempts: int | None = None,
    now: datetime | None = None,
) -> int:
    """Send pending intents; returns how many were sent."""
    gateway = gateway or SmsGateway()
    max_attempts = max_attempts or settings.notification_max_attempts

    intents = (
        s.execute(
            select(NotificationIntent)
            .where(NotificationIntent.status == "pending")
            .order_by(NotificationIntent.created_at.asc(), NotificationIntent.id.asc())
            .limit(limit)
        )
        .scalars()
        .all()
    )

    sent = 0
    for intent in intents:
        if not intent.recipient_phone:
            intent.status = "skipped"
            intent.last_error = "no_recipient_phone"
            s.commit()
            continue

        intent.attempts = int(intent.attempts or 0) + 1
        try:
            gateway.send(intent.recipient_phone, intent.message)
        except httpx.HTTPError as e:
            logger.warning("sms %s for %s %s failed: %s", intent.event, intent.entity_type, intent.entity_id, e)
            intent.last_error = str(e)[:500]
            if intent.attempts >= max_attempts:
                intent.status = "failed"
        else:
            intent.status = "sent"
            intent.sent_at = now or utc_now()
            intent.last_error = None
            sent += 1
        s.commit()

    return sent
