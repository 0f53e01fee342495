"""APScheduler wrapper for periodic polling.

Provides:
- Async-compatible scheduler
- Interval polling job that never overlaps itself
- Graceful shutdown handling
- Integration with Prometheus metrics

Usage:
    scheduler = PollingScheduler()

    # Poll every ten minutes, first run immediately
    scheduler.add_poll_job(PollJob(context), polling_second=600)

    # Start scheduler (blocks until SIGINT/SIGTERM)
    await scheduler.start()

    # Stop gracefully
    await scheduler.shutdown()
"""

import asyncio
import signal
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List
import structlog

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.events import (
    EVENT_JOB_EXECUTED,
    EVENT_JOB_ERROR,
    EVENT_JOB_MISSED,
    EVENT_JOB_MAX_INSTANCES,
    JobEvent,
    JobExecutionEvent,
)

from src.observability.metrics import SCHEDULER_JOBS

logger = structlog.get_logger()

POLL_JOB_ID = "poll"


class PollingScheduler:
    """Async scheduler for notifier polling.

    Wraps APScheduler's AsyncIOScheduler with:
    - Job lifecycle management
    - Error handling and logging
    - Prometheus metrics integration
    - Graceful shutdown
    """

    def __init__(
        self,
        timezone: str = "UTC",
        max_instances: int = 1,
        coalesce: bool = True,
        misfire_grace_time: int = 60,
    ):
        """Initialize polling scheduler.

        Args:
            timezone: Timezone for job scheduling
            max_instances: Max concurrent instances per job
            coalesce: Coalesce missed executions
            misfire_grace_time: Grace time for missed jobs (seconds)
        """
        self.scheduler = AsyncIOScheduler(
            timezone=timezone,
            job_defaults={
                "max_instances": max_instances,
                "coalesce": coalesce,
                "misfire_grace_time": misfire_grace_time,
            },
        )

        self._running = False
        self._shutdown_event = asyncio.Event()
        self._jobs: Dict[str, Any] = {}

        self.scheduler.add_listener(self._on_job_executed, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)
        self.scheduler.add_listener(self._on_job_missed, EVENT_JOB_MISSED)
        self.scheduler.add_listener(self._on_job_overlap, EVENT_JOB_MAX_INSTANCES)

        logger.info("scheduler_initialized", timezone=timezone)

    def add_job(
        self,
        func: Callable,
        job_id: str,
        seconds: int,
        run_immediately: bool = True,
    ) -> str:
        """Add an interval job to the scheduler.

        Args:
            func: Async function to execute
            job_id: Unique job identifier
            seconds: Interval between runs
            run_immediately: Fire once at start instead of after one interval

        Returns:
            Job ID
        """
        job_kwargs: Dict[str, Any] = {}
        if run_immediately:
            job_kwargs["next_run_time"] = datetime.now(timezone.utc)

        job = self.scheduler.add_job(
            func,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            name=job_id,
            replace_existing=True,
            **job_kwargs,
        )

        self._jobs[job_id] = job

        next_run = getattr(job, "next_run_time", None)
        logger.info(
            "job_added",
            job_id=job_id,
            interval_seconds=seconds,
            next_run=str(next_run) if next_run else "not scheduled",
        )

        self._update_metrics()
        return job_id

    def add_poll_job(self, job: Callable, polling_second: int) -> str:
        """Schedule the poll job every ``polling_second`` seconds."""
        return self.add_job(job, job_id=POLL_JOB_ID, seconds=polling_second)

    def remove_job(self, job_id: str) -> bool:
        """Remove a job from the scheduler.

        Returns:
            True if job was removed, False if not found
        """
        try:
            self.scheduler.remove_job(job_id)
            self._jobs.pop(job_id, None)
            logger.info("job_removed", job_id=job_id)
            self._update_metrics()
            return True
        except Exception as e:
            logger.warning("job_remove_failed", job_id=job_id, error=str(e))
            return False

    def get_jobs(self) -> List[Dict[str, Any]]:
        """Get list of all scheduled jobs."""
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            pending = getattr(job, "pending", False)
            jobs.append(
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run_time": str(next_run) if next_run else None,
                    "pending": pending,
                }
            )
        return jobs

    async def start(self) -> None:
        """Start the scheduler.

        Begins executing scheduled jobs and blocks until shutdown.
        """
        if self._running:  # pragma: no cover
            logger.warning("scheduler_already_running")
            return

        self._running = True  # pragma: no cover (blocking scheduler runtime)
        self._shutdown_event.clear()  # pragma: no cover

        loop = asyncio.get_running_loop()  # pragma: no cover
        for sig in (signal.SIGTERM, signal.SIGINT):  # pragma: no cover
            loop.add_signal_handler(sig, self._signal_handler)  # pragma: no cover

        self.scheduler.start()  # pragma: no cover
        logger.info("scheduler_started", jobs=len(self._jobs))  # pragma: no cover

        self._update_metrics()  # pragma: no cover

        await self._shutdown_event.wait()  # pragma: no cover

    async def shutdown(self, wait: bool = True) -> None:
        """Shutdown the scheduler gracefully.

        Args:
            wait: Wait for running jobs to complete
        """
        if not self._running:
            return

        logger.info("scheduler_shutting_down")

        self.scheduler.shutdown(wait=wait)
        self._running = False
        self._shutdown_event.set()

        logger.info("scheduler_stopped")

    def _signal_handler(self) -> None:
        """Handle termination signals."""
        logger.info("shutdown_signal_received")
        asyncio.create_task(self.shutdown())

    def _on_job_executed(self, event: JobExecutionEvent) -> None:
        logger.info(
            "job_executed",
            job_id=event.job_id,
            scheduled_run_time=str(event.scheduled_run_time),
        )
        self._update_metrics()

    def _on_job_error(self, event: JobExecutionEvent) -> None:
        logger.error(
            "job_failed",
            job_id=event.job_id,
            exception=str(event.exception),
            traceback=event.traceback,
        )
        self._update_metrics()

    def _on_job_missed(self, event: JobExecutionEvent) -> None:
        logger.warning(
            "job_missed",
            job_id=event.job_id,
            scheduled_run_time=str(event.scheduled_run_time),
        )
        self._update_metrics()

    def _on_job_overlap(self, event: JobEvent) -> None:
        logger.warning("job_skipped_still_running", job_id=event.job_id)

    def _update_metrics(self) -> None:
        pending = sum(1 for j in self.scheduler.get_jobs() if j.pending)
        running = len(self._jobs) - pending

        SCHEDULER_JOBS.labels(status="pending").set(pending)
        SCHEDULER_JOBS.labels(status="running").set(running)

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running
