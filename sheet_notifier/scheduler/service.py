"""Scheduler service for the daily rule run."""

import threading
from datetime import datetime
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from sheet_notifier.config.models import ScheduleConfig
from sheet_notifier.logging import get_logger
from sheet_notifier.utils.dates import get_zone

logger = get_logger(__name__, component="scheduler")

JOB_ID = "sheet-notify"

# Seconds a run may start late (e.g. after host sleep) and still execute
MISFIRE_GRACE_SECONDS = 3600


class SchedulerService:
    """
    Wraps APScheduler to trigger the rule run once a day.

    Uses BackgroundScheduler to run jobs in a separate thread while
    allowing the main thread to handle signals and coordinate shutdown.
    """

    def __init__(
        self,
        run_callable: Callable[[], object],
        schedule: ScheduleConfig,
        shutdown_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the scheduler service.

        Args:
            run_callable: Function to call on each scheduled run (e.g., runner.run_all)
            schedule: Daily trigger time and timezone
            shutdown_event: Optional event to set on shutdown for coordination
        """
        self.run_callable = run_callable
        self.schedule = schedule
        self.shutdown_event = shutdown_event
        self.zone = get_zone(schedule.timezone)

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": MISFIRE_GRACE_SECONDS,
            },
            timezone=self.zone,
        )

    def build_trigger(self) -> CronTrigger:
        """Daily trigger at the configured local time."""
        return CronTrigger(hour=self.schedule.hour, minute=self.schedule.minute, timezone=self.zone)

    def start(self) -> None:
        """Start the scheduler and register the daily job."""
        self.scheduler.add_job(
            func=self.run_callable,
            trigger=self.build_trigger(),
            id=JOB_ID,
            name="Sheet Notification Run",
            replace_existing=True,
        )

        self.scheduler.start()

        next_run = self.get_next_run_time()
        logger.info(
            f"Scheduler started: daily at {self.schedule.hour:02d}:{self.schedule.minute:02d} "
            f"({self.schedule.timezone})",
            extra={
                "event": "scheduler.started",
                "hour": self.schedule.hour,
                "minute": self.schedule.minute,
                "timezone": self.schedule.timezone,
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

    def trigger_now(self) -> None:
        """Run the rules immediately in the current thread."""
        logger.info("Triggering immediate run", extra={"event": "scheduler.trigger_now"})
        self.run_callable()

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self) -> Optional[datetime]:
        """
        Get the next scheduled run time.

        Returns:
            Next run time as a datetime, or None if not scheduled
        """
        job = self.scheduler.get_job(JOB_ID)
        return getattr(job, "next_run_time", None) if job else None
