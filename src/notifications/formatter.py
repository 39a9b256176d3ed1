from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from src.models.base import utcnow

BROADCAST_TITLE = "Latest Offers from Poppik"
BROADCAST_BODY = "Check out the newest deals. Tap to view!"
BROADCAST_URL = "/offers"
ICON_PATH = "/poppik-icon.png"
BADGE_PATH = "/poppik-badge.png"


def epoch_ms(moment: datetime) -> int:
    """Milliseconds since the epoch; naive values are read as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def format_scheduled_broadcast(now: Optional[datetime] = None) -> Dict[str, Any]:
    """Build the payload sent to every subscriber in one scheduled pass.

    The tag carries the pass timestamp so the browser shows each broadcast
    instead of collapsing it into the previous one.
    """
    now = now or utcnow()
    return {
        "title": BROADCAST_TITLE,
        "body": BROADCAST_BODY,
        "tag": f"poppik-scheduled-{epoch_ms(now)}",
        "icon": ICON_PATH,
        "badge": BADGE_PATH,
        "data": {"url": BROADCAST_URL},
    }
