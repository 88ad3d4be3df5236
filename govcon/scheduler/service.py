"""Scheduler service for daily ingestion and the startup Sources Sought run."""

import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from govcon.logging import get_logger

logger = get_logger(__name__, component="scheduler")

DAILY_JOB_ID = "daily-ingestion"
STARTUP_JOB_ID = "startup-sources-sought"


class SchedulerService:
    """
    Wraps APScheduler to trigger ingestion on a daily cron.

    Uses BackgroundScheduler so the main thread stays free to handle signals
    and coordinate shutdown. The startup job runs once, right after start().
    """

    def __init__(
        self,
        ingestion_callable: Callable[[], object],
        cron_hour: int = 2,
        cron_minute: int = 0,
        startup_callable: Optional[Callable[[], object]] = None,
        shutdown_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the scheduler service.

        Args:
            ingestion_callable: Daily job, e.g. ``lambda: coordinator.run_full_ingestion()``
            cron_hour: UTC hour of the daily run
            cron_minute: Minute of the daily run
            startup_callable: Optional one-off job run at startup
            shutdown_event: Optional event to set on shutdown for coordination
        """
        if not 0 <= cron_hour <= 23 or not 0 <= cron_minute <= 59:
            raise ValueError(f"Invalid cron time {cron_hour:02d}:{cron_minute:02d}")

        self.ingestion_callable = ingestion_callable
        self.startup_callable = startup_callable
        self.cron_hour = cron_hour
        self.cron_minute = cron_minute
        self.shutdown_event = shutdown_event

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,  # Prevent overlapping runs
                "coalesce": True,  # Collapse missed runs into one
                "misfire_grace_time": 3600,
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """Register the jobs and start the scheduler thread."""
        if self.scheduler.running:
            logger.warning(
                "Scheduler already running; ignoring start()",
                extra={"event": "scheduler.already_running"},
            )
            return

        self.scheduler.add_job(
            func=self.ingestion_callable,
            trigger=CronTrigger(hour=self.cron_hour, minute=self.cron_minute, timezone=timezone.utc),
            id=DAILY_JOB_ID,
            name="Daily opportunity ingestion",
            replace_existing=True,
        )

        if self.startup_callable is not None:
            self.scheduler.add_job(
                func=self.startup_callable,
                trigger=DateTrigger(run_date=datetime.now(timezone.utc), timezone=timezone.utc),
                id=STARTUP_JOB_ID,
                name="Startup Sources Sought ingestion",
                replace_existing=True,
            )

        self.scheduler.start()

        next_run = self.get_next_run_time()
        logger.info(
            f"Scheduler started; daily ingestion at {self.cron_hour:02d}:{self.cron_minute:02d} UTC",
            extra={
                "event": "scheduler.started",
                "startup_job": self.startup_callable is not None,
                "next_run_time": next_run.isoformat() if next_run else None,
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """
        Shutdown the scheduler gracefully.

        Args:
            wait: If True, wait for running jobs to complete before returning
        """
        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self):
        """Run the daily ingestion job synchronously in the current thread."""
        logger.info(
            "Triggering immediate ingestion run",
            extra={"event": "scheduler.trigger_now"},
        )
        return self.ingestion_callable()

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self) -> Optional[datetime]:
        """Next daily run, or None if the job is not scheduled."""
        job = self.scheduler.get_job(DAILY_JOB_ID)
        return job.next_run_time if job else None
