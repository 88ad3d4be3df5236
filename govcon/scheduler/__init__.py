"""Scheduling of ingestion runs."""

from .service import DAILY_JOB_ID, STARTUP_JOB_ID, SchedulerService

__all__ = ["SchedulerService", "DAILY_JOB_ID", "STARTUP_JOB_ID"]
