"""Scheduling module for the daily rule run."""

from .service import JOB_ID, SchedulerService

__all__ = [
    "JOB_ID",
    "SchedulerService",
]
