from __future__ import annotations

from typing import Iterable, List, Optional

from loguru import logger

from src.config import Settings, get_settings
from src.scheduler.harness import SchedulerHandle
from src.scheduler.jobs import (
    expire_entities,
    process_eligible_cashbacks,
    send_scheduled_notifications,
)


def create_cashback_scheduler(settings: Optional[Settings] = None) -> SchedulerHandle:
    settings = settings or get_settings()
    return SchedulerHandle(
        "cashback-scheduler",
        process_eligible_cashbacks,
        interval_ms=settings.cashback_interval_ms,
        enabled=settings.cashback_scheduler_enabled,
        enable_key="CASHBACK_SCHEDULER_ENABLED",
    )


def create_expire_scheduler(settings: Optional[Settings] = None) -> SchedulerHandle:
    settings = settings or get_settings()
    return SchedulerHandle(
        "expire-scheduler",
        expire_entities,
        interval_ms=settings.expire_interval_ms,
        enabled=settings.expire_scheduler_enabled,
        enable_key="EXPIRE_SCHEDULER_ENABLED",
    )


def create_push_scheduler(settings: Optional[Settings] = None) -> SchedulerHandle:
    settings = settings or get_settings()
    return SchedulerHandle(
        "push-scheduler",
        send_scheduled_notifications,
        interval_ms=settings.push_interval_ms,
        enabled=settings.push_scheduler_enabled,
        enable_key="PUSH_SCHEDULER_ENABLED",
    )


def create_schedulers(settings: Optional[Settings] = None) -> List[SchedulerHandle]:
    return [
        create_cashback_scheduler(settings),
        create_expire_scheduler(settings),
        create_push_scheduler(settings),
    ]


def start_schedulers(settings: Optional[Settings] = None) -> List[SchedulerHandle]:
    handles = create_schedulers(settings)
    for handle in handles:
        handle.start()
    logger.info(
        f"Schedulers started: {[h.name for h in handles if h.running]}"
    )
    return handles


def stop_schedulers(handles: Iterable[SchedulerHandle], wait: bool = True) -> None:
    for handle in handles:
        handle.stop(wait=wait)
