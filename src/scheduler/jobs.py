"""Job bodies for the background schedulers.

Each job opens its own session, runs one pass and logs the outcome.
Errors propagate to the caller; the scheduler harness logs them and
keeps the timer running.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from src.config import get_settings
from src.db.database import get_sync_session
from src.models.base import utcnow
from src.notifications.dispatcher import DispatchResult, PushDispatcher
from src.notifications.formatter import format_scheduled_broadcast
from src.notifications.webpush import WebPushSender
from src.promotions.lifecycle import LifecyclePassResult, sync_time_boxed_entities
from src.wallet.maturation import CashbackPassResult, process_eligible_cashbacks_pass


def process_eligible_cashbacks(now: Optional[datetime] = None) -> CashbackPassResult:
    """回饋金到期入帳，並清除過期預留款"""
    now = now or utcnow()
    settings = get_settings()

    with get_sync_session() as session:
        result = process_eligible_cashbacks_pass(
            session, now, batch_size=settings.cashback_batch_size
        )

    if result.reserves_deleted or result.credited or result.failed:
        logger.info(
            f"Cashback pass: reserves_deleted={result.reserves_deleted} "
            f"credited={result.credited} failed={result.failed} skipped={result.skipped}"
        )
    return result


def expire_entities(now: Optional[datetime] = None) -> LifecyclePassResult:
    """依有效期間啟用或關閉優惠與競賽"""
    now = now or utcnow()

    with get_sync_session() as session:
        result = sync_time_boxed_entities(session, now)

    if result.expired_count > 0 or result.activated_count > 0:
        logger.info(
            f"Expire pass: expired={result.expired_count} activated={result.activated_count}"
        )
    return result


def send_scheduled_notifications(now: Optional[datetime] = None) -> Optional[DispatchResult]:
    """推播定時通知給所有有效訂閱"""
    if not WebPushSender.is_configured():
        logger.warning("VAPID keys missing, skipping scheduled notifications")
        return None

    now = now or utcnow()
    with get_sync_session() as session:
        result = _broadcast(session, now)

    if result.total == 0:
        logger.info("No active subscriptions found for scheduled notifications")
    return result


def _broadcast(session: Session, now: datetime) -> DispatchResult:
    dispatcher = PushDispatcher(session)
    payload = format_scheduled_broadcast(now)
    return dispatcher.broadcast(payload, now=now)
