from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from loguru import logger

JOB_DEFAULTS = {
    "coalesce": True,  # Collapse missed runs into one
    "max_instances": 1,  # Never overlap a pass with itself
    "misfire_grace_time": 60,
}


class SchedulerHandle:
    """Runs one periodic pass on its own background scheduler.

    ``start()`` fires a pass right away and then every ``interval_ms``.
    A pass that raises is logged and the timer keeps going. Each handle
    owns its scheduler, so handles can be created and torn down freely.
    """

    def __init__(
        self,
        name: str,
        job: Callable[[], Any],
        interval_ms: int,
        enabled: bool = True,
        enable_key: Optional[str] = None,
    ):
        self.name = name
        self.job = job
        self.interval_ms = interval_ms
        self.enabled = enabled
        self.enable_key = enable_key
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def next_run_time(self) -> Optional[datetime]:
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(self.name)
        return job.next_run_time if job else None

    def _run_pass(self) -> Any:
        try:
            return self.job()
        except Exception:
            logger.exception(f"{self.name} pass failed")
            return None

    def run_once(self) -> Any:
        """Run a single pass in the calling thread, outside the timer."""
        return self._run_pass()

    def start(self) -> bool:
        """Start the recurring pass. Returns False when disabled or already running."""
        if not self.enabled:
            hint = f" Enable with {self.enable_key}=true" if self.enable_key else ""
            logger.info(f"{self.name} disabled.{hint}")
            return False
        if self._scheduler is not None:
            return False

        scheduler = BackgroundScheduler(job_defaults=JOB_DEFAULTS)
        scheduler.add_job(
            self._run_pass,
            "interval",
            seconds=self.interval_ms / 1000,
            id=self.name,
            name=self.name,
            next_run_time=datetime.now(scheduler.timezone),
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(f"Starting {self.name} (interval {self.interval_ms} ms)")
        return True

    def stop(self, wait: bool = True) -> None:
        """Cancel future passes; with ``wait`` also let an in-flight pass finish."""
        if self._scheduler is None:
            return
        scheduler, self._scheduler = self._scheduler, None
        scheduler.shutdown(wait=wait)
        logger.info(f"{self.name} stopped")

    def __repr__(self) -> str:
        return f"<SchedulerHandle {self.name} running={self.running}>"
