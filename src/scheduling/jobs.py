"""Scheduled job definitions for the notifier.

Provides:
- BaseJob: correlation id, timing and run bookkeeping for any job
- PollJob: one poll cycle over the configured projects

Usage:
    from src.scheduling.jobs import PollJob

    job = PollJob(context)
    summary = await job()
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import structlog

from src.observability.context import set_correlation_id, clear_correlation_id
from src.observability.metrics import (
    MetricsContext,
    POLL_CYCLES,
    POLL_CYCLE_DURATION,
)
from src.orchestration.context import NotifierContext

logger = structlog.get_logger()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BaseJob(ABC):
    """Base class for scheduled jobs.

    Provides common functionality:
    - Correlation ID management
    - Error handling and logging
    - Execution timing
    """

    def __init__(self, name: str):
        """Initialize job.

        Args:
            name: Job name for logging
        """
        self.name = name
        self.last_run: Optional[datetime] = None
        self.last_success: Optional[datetime] = None
        self.run_count: int = 0
        self.error_count: int = 0

    async def __call__(self) -> Any:
        """Execute the job with correlation ID and error handling."""
        start = time.time()
        corr_id = set_correlation_id(f"{self.name}-{_utc_now().strftime('%Y%m%d-%H%M%S')}")

        logger.info("job_starting", job_name=self.name, correlation_id=corr_id)

        try:
            result = await self.run()

            self.last_run = _utc_now()
            self.last_success = self.last_run
            self.run_count += 1

            logger.info(
                "job_completed",
                job_name=self.name,
                duration_seconds=round(time.time() - start, 2),
                correlation_id=corr_id,
            )
            return result

        except Exception as e:
            self.last_run = _utc_now()
            self.error_count += 1

            logger.error(
                "job_failed",
                job_name=self.name,
                error=str(e),
                correlation_id=corr_id,
                exc_info=True,
            )
            raise

        finally:
            clear_correlation_id()

    @abstractmethod
    async def run(self) -> Any:
        """Execute the job logic."""
        pass  # pragma: no cover (abstract method)

    def get_status(self) -> Dict[str, Any]:
        """Get job status information."""
        return {
            "name": self.name,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_success": (
                self.last_success.isoformat() if self.last_success else None
            ),
            "run_count": self.run_count,
            "error_count": self.error_count,
        }


class PollJob(BaseJob):
    """One poll cycle over the watched projects.

    Watched names are matched against the project list on every run, so
    projects the user gains access to later are picked up without a restart.
    """

    def __init__(self, context: NotifierContext):
        super().__init__("poll")
        self.context = context

    async def run(self) -> Dict[str, Any]:
        """Resolve the watched projects and poll them once.

        Returns:
            Poll summary as a dictionary
        """
        with MetricsContext(
            histogram=POLL_CYCLE_DURATION,
            success_counter=POLL_CYCLES.labels(status="success"),
            failure_counter=POLL_CYCLES.labels(status="failure"),
        ) as metrics:
            cycle = self.context.cycle
            projects = await cycle.resolve_projects(self.context.config.projects)
            summary = await cycle.run(projects)
            metrics.mark_success()

        return summary.to_dict()
