"""Unit tests for the scheduler service.

Tests the SchedulerService including:
- Daily cron trigger at the configured local time
- Job registration with overlap protection and coalescing
- Start/shutdown lifecycle and shutdown event coordination
- Trigger now functionality
"""

import threading
from datetime import datetime, timezone
from unittest.mock import Mock

from sheet_notifier.config.models import ScheduleConfig
from sheet_notifier.scheduler import JOB_ID, SchedulerService
from sheet_notifier.scheduler.service import MISFIRE_GRACE_SECONDS


class TestSchedulerService:
    """Test suite for SchedulerService."""

    def test_initialization(self):
        mock_callable = Mock()
        shutdown_event = threading.Event()

        scheduler = SchedulerService(
            run_callable=mock_callable,
            schedule=ScheduleConfig(hour=9, minute=0),
            shutdown_event=shutdown_event,
        )

        assert scheduler.run_callable == mock_callable
        assert scheduler.shutdown_event == shutdown_event
        assert str(scheduler.zone) == "Asia/Tokyo"
        assert not scheduler.is_running()
        assert scheduler.get_next_run_time() is None

    def test_trigger_fires_daily_at_local_time(self):
        scheduler = SchedulerService(Mock(), ScheduleConfig(hour=9, minute=0, timezone="Asia/Tokyo"))
        trigger = scheduler.build_trigger()

        # 09:30 in Tokyo, so today's run has already passed
        now = datetime(2024, 3, 1, 0, 30, tzinfo=timezone.utc)
        next_fire = trigger.get_next_fire_time(None, now)

        assert next_fire == datetime(2024, 3, 2, 0, 0, tzinfo=timezone.utc)

    def test_trigger_later_same_day(self):
        scheduler = SchedulerService(Mock(), ScheduleConfig(hour=18, minute=15, timezone="UTC"))

        now = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
        next_fire = scheduler.build_trigger().get_next_fire_time(None, now)

        assert next_fire == datetime(2024, 3, 1, 18, 15, tzinfo=timezone.utc)

    def test_job_defaults_prevent_overlap(self):
        scheduler = SchedulerService(Mock(), ScheduleConfig())

        defaults = scheduler.scheduler._job_defaults
        assert defaults["max_instances"] == 1
        assert defaults["coalesce"] is True
        assert defaults["misfire_grace_time"] == MISFIRE_GRACE_SECONDS

    def test_start_registers_job_and_shutdown_sets_event(self):
        mock_callable = Mock()
        shutdown_event = threading.Event()
        scheduler = SchedulerService(mock_callable, ScheduleConfig(), shutdown_event=shutdown_event)

        scheduler.start()
        try:
            assert scheduler.is_running()
            job = scheduler.scheduler.get_job(JOB_ID)
            assert job is not None
            assert job.func == mock_callable
            assert scheduler.get_next_run_time() is not None
        finally:
            scheduler.shutdown(wait=False)

        assert not scheduler.is_running()
        assert shutdown_event.is_set()
        mock_callable.assert_not_called()

    def test_shutdown_without_start_or_event(self):
        scheduler = SchedulerService(Mock(), ScheduleConfig())

        scheduler.shutdown()

        assert not scheduler.is_running()

    def test_trigger_now_executes_immediately(self):
        mock_callable = Mock()
        scheduler = SchedulerService(mock_callable, ScheduleConfig())

        scheduler.trigger_now()

        mock_callable.assert_called_once_with()
