from __future__ import annotations

import asyncio
import logging

from promisepoint.core.config import settings
from promisepoint.db.session import SessionLocal
from promisepoint.services.notifications import dispatch_pending
from promisepoint.services.reconciliation import reconcile_active_loans

logger = logging.getLogger(__name__)


def dispatch_notifications_once() -> int:
    with SessionLocal() as s:
        return dispatch_pending(s)


def reconcile_loans_once() -> dict[str, int]:
    with SessionLocal() as s:
        return reconcile_active_loans(s)


async def notification_dispatch_loop() -> None:
    if not getattr(settings, "sms_enabled", False):
        return

    interval = int(getattr(settings, "notification_dispatch_interval_seconds", 60) or 60)
    await asyncio.sleep(3)

    while True:
        try:
            sent = await asyncio.to_thread(dispatch_notifications_once)
            if sent:
                logger.info("dispatched %d sms notifications", sent)
        except Exception as e:
            logger.exception("notification dispatch failed", exc_info=e)

        await asyncio.sleep(max(5, interval))


async def reconcile_loop() -> None:
    if not getattr(settings, "reconcile_enabled", False):
        return

    interval = int(getattr(settings, "reconcile_interval_seconds", 3600) or 3600)
    await asyncio.sleep(3)

    while True:
        try:
            out = await asyncio.to_thread(reconcile_loans_once)
            logger.info("loan reconciliation: %s", out)
        except Exception as e:
            logger.exception("loan reconciliation failed", exc_info=e)

        await asyncio.sleep(max(60, interval))
