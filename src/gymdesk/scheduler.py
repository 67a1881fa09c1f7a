"""Periodic billing maintenance run on an APScheduler worker thread."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any, Callable

from apscheduler.schedulers.background import BackgroundScheduler as APScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from .logging_config import get_logger

if TYPE_CHECKING:
    from .context import AppContext

logger = get_logger(__name__)

OVERDUE_JOB_ID = "mark_overdue_payments"

_TRIGGERS: dict[str, Callable[..., Any]] = {
    "cron": CronTrigger,
    "interval": IntervalTrigger,
    "date": DateTrigger,
}


class BackgroundScheduler:
    """Owns the APScheduler instance for one application context.

    ``start()`` installs the nightly overdue sweep at
    ``config.OVERDUE_CHECK_HOUR``; more jobs can be added once it runs.
    """

    def __init__(self, ctx: AppContext):
        self.ctx = ctx
        self.scheduler: APScheduler | None = None

    @property
    def running(self) -> bool:
        return self.scheduler is not None

    def start(self) -> None:
        if self.scheduler is not None:
            logger.warning("Scheduler already running")
            return

        hour = self.ctx.config.OVERDUE_CHECK_HOUR
        self.scheduler = APScheduler()
        self.scheduler.add_job(
            self.run_overdue_sweep,
            CronTrigger(hour=hour, minute=0),
            id=OVERDUE_JOB_ID,
            name="Mark overdue payments",
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info("Background scheduler started", extra={"overdue_sweep_hour": hour})

    def stop(self) -> None:
        if self.scheduler is None:
            return
        self.scheduler.shutdown(wait=True)
        self.scheduler = None
        logger.info("Background scheduler stopped")

    def run_overdue_sweep(self) -> None:
        """Flag PENDING payments past due; failures are logged, not raised."""
        try:
            flagged = self.ctx.client.mark_overdue_payments(date.today())
        except Exception:
            logger.exception("Overdue sweep failed")
            return
        logger.info("Overdue sweep finished", extra={"flagged": flagged})

    def add_job(
        self,
        func: Callable[[], Any],
        trigger: str,
        *,
        job_id: str,
        name: str | None = None,
        **trigger_args: Any,
    ) -> None:
        """Schedule ``func`` under ``job_id``, replacing any job with that id.

        Args:
            func: Callable run on the worker thread
            trigger: One of 'cron', 'interval' or 'date'
            job_id: Unique job identifier
            name: Human-readable job name (defaults to ``job_id``)
            **trigger_args: Passed to the APScheduler trigger
        """
        if self.scheduler is None:
            raise RuntimeError(f"Cannot add job {job_id}: scheduler not started")
        try:
            trigger_cls = _TRIGGERS[trigger]
        except KeyError:
            raise ValueError(f"Unknown trigger type: {trigger}") from None

        self.scheduler.add_job(
            func,
            trigger_cls(**trigger_args),
            id=job_id,
            name=name or job_id,
            replace_existing=True,
        )
        logger.info("Job added", extra={"job_id": job_id, "trigger": trigger})

    def remove_job(self, job_id: str) -> None:
        if self.scheduler is not None:
            self.scheduler.remove_job(job_id)
            logger.info("Job removed", extra={"job_id": job_id})

    def job_ids(self) -> list[str]:
        if self.scheduler is None:
            return []
        return [job.id for job in self.scheduler.get_jobs()]


def create_scheduler(ctx: AppContext, *, auto_start: bool = False) -> BackgroundScheduler:
    scheduler = BackgroundScheduler(ctx)
    if auto_start:
        scheduler.start()
    return scheduler
