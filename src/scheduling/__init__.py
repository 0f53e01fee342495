"""Scheduling module for daemon mode.

Provides:
- APScheduler wrapper for interval polling
- The poll job run on every tick

Usage:
    from src.scheduling import PollingScheduler, PollJob

    scheduler = PollingScheduler()
    scheduler.add_poll_job(PollJob(context), polling_second=600)

    await scheduler.start()
"""

from src.scheduling.scheduler import PollingScheduler
from src.scheduling.jobs import BaseJob, PollJob

__all__ = [
    "PollingScheduler",
    "BaseJob",
    "PollJob",
]
