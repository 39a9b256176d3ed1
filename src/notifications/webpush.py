from __future__ import annotations

import enum
import json
from typing import Any, Dict, Optional

from loguru import logger
from pywebpush import WebPushException, webpush

from src.config import get_settings

SEND_TIMEOUT = 10  # seconds
GONE_STATUS_CODES = (404, 410)


class DeliveryOutcome(enum.Enum):
    sent = "sent"
    gone = "gone"
    failed = "failed"


def _status_code(exc: WebPushException) -> Optional[int]:
    response = getattr(exc, "response", None)
    if response is None:
        return None
    return getattr(response, "status_code", None)


class WebPushSender:
    """Send notifications through the Web Push protocol with VAPID auth."""

    def __init__(self):
        settings = get_settings()
        self.vapid_private_key = settings.vapid_private_key
        self.vapid_claims = {"sub": settings.vapid_subject}

    @classmethod
    def is_configured(cls) -> bool:
        """Check if the VAPID key pair is set."""
        settings = get_settings()
        return bool(settings.vapid_public_key and settings.vapid_private_key)

    def send(self, subscription_info: Dict[str, Any], payload: Dict[str, Any]) -> DeliveryOutcome:
        """Deliver a payload to one subscription.

        Args:
            subscription_info: Dict with "endpoint" and "keys" (auth, p256dh).
            payload: JSON-serialisable notification body.

        Returns:
            ``gone`` when the push service reports the endpoint no longer
            exists, ``failed`` for any other push error, ``sent`` otherwise.
        """
        try:
            webpush(
                subscription_info=subscription_info,
                data=json.dumps(payload),
                vapid_private_key=self.vapid_private_key,
                vapid_claims=dict(self.vapid_claims),
                timeout=SEND_TIMEOUT,
            )
            return DeliveryOutcome.sent
        except WebPushException as e:
            status = _status_code(e)
            if status in GONE_STATUS_CODES:
                return DeliveryOutcome.gone
            logger.error(f"Web push error: {status} - {e}")
            return DeliveryOutcome.failed
