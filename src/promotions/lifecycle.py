from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Type, Union

from sqlalchemy.orm import Session

from src.models.promotion import Contest, Offer

TimeBoxedModel = Type[Union[Offer, Contest]]

TIME_BOXED_MODELS: Dict[str, TimeBoxedModel] = {
    "offers": Offer,
    "contests": Contest,
}


@dataclass
class LifecyclePassResult:
    expired: Dict[str, int] = field(default_factory=dict)
    activated: Dict[str, int] = field(default_factory=dict)

    @property
    def expired_count(self) -> int:
        return sum(self.expired.values())

    @property
    def activated_count(self) -> int:
        return sum(self.activated.values())


def deactivate_expired(session: Session, model: TimeBoxedModel, now: datetime) -> int:
    """關閉 valid_until 已過的活動"""
    return (
        session.query(model)
        .filter(model.valid_until < now, model.is_active.is_(True))
        .update({model.is_active: False}, synchronize_session=False)
    )


def activate_started(session: Session, model: TimeBoxedModel, now: datetime) -> int:
    """啟用已進入有效期間的活動"""
    return (
        session.query(model)
        .filter(
            model.valid_from <= now,
            model.valid_until >= now,
            model.is_active.is_(False),
        )
        .update({model.is_active: True}, synchronize_session=False)
    )


def sync_time_boxed_entities(session: Session, now: datetime) -> LifecyclePassResult:
    """Bring is_active in line with each entity's validity window.

    Deactivation runs before activation. The window is inclusive on both
    ends, so an entity whose window starts and ends at ``now`` stays active.
    """
    result = LifecyclePassResult()
    try:
        for name, model in TIME_BOXED_MODELS.items():
            result.expired[name] = deactivate_expired(session, model, now)
        for name, model in TIME_BOXED_MODELS.items():
            result.activated[name] = activate_started(session, model, now)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return result
