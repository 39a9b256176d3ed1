from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy.orm import Session

from src.models.base import utcnow
from src.models.push_subscription import PushSubscription
from src.notifications.webpush import DeliveryOutcome, WebPushSender


@dataclass
class DispatchResult:
    total: int = 0
    sent: int = 0
    deactivated: int = 0
    failed: int = 0


class PushDispatcher:
    """Broadcasts one payload to every active push subscription."""

    def __init__(self, session: Session, sender: Optional[WebPushSender] = None):
        self.session = session
        self.sender = sender or WebPushSender()

    def active_subscriptions(self) -> List[PushSubscription]:
        return (
            self.session.query(PushSubscription)
            .filter(PushSubscription.is_active.is_(True))
            .order_by(PushSubscription.id)
            .all()
        )

    def _deliver(
        self, subscription: PushSubscription, payload: Dict[str, Any], now: datetime
    ) -> DeliveryOutcome:
        outcome = self.sender.send(subscription.to_subscription_info(), payload)
        if outcome is DeliveryOutcome.sent:
            subscription.last_used_at = now
            self.session.commit()
        elif outcome is DeliveryOutcome.gone:
            logger.warning(
                f"Push subscription invalid for {subscription.email or subscription.endpoint}, "
                f"marking inactive"
            )
            subscription.is_active = False
            self.session.commit()
        return outcome

    def broadcast(
        self, payload: Dict[str, Any], now: Optional[datetime] = None
    ) -> DispatchResult:
        """Send ``payload`` to all active subscriptions.

        Gone subscriptions are deactivated; other failures leave the row
        as is so the next pass retries it.
        """
        now = now or utcnow()
        subscriptions = self.active_subscriptions()
        result = DispatchResult(total=len(subscriptions))
        if not subscriptions:
            return result

        logger.info(f"Sending scheduled notification to {result.total} subscribers")

        for subscription in subscriptions:
            try:
                outcome = self._deliver(subscription, payload, now)
            except Exception as e:
                self.session.rollback()
                logger.error(f"Failed to send notification for subscription {subscription.id}: {e}")
                result.failed += 1
                continue

            if outcome is DeliveryOutcome.sent:
                result.sent += 1
            elif outcome is DeliveryOutcome.gone:
                result.deactivated += 1
            else:
                result.failed += 1

        logger.info(f"Scheduled notifications sent to {result.sent}/{result.total} subscribers")
        return result
