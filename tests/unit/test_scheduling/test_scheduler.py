"""Tests for PollingScheduler."""

from unittest.mock import MagicMock

import pytest

from src.scheduling.scheduler import POLL_JOB_ID, PollingScheduler


async def noop():
    pass


class TestPollingSchedulerInit:
    """Tests for PollingScheduler initialization."""

    def test_init_with_defaults(self):
        """Should initialize with default values."""
        scheduler = PollingScheduler()

        assert scheduler.scheduler is not None
        assert scheduler._running is False
        assert len(scheduler._jobs) == 0

    def test_job_defaults_prevent_overlap(self):
        """Poll runs must never overlap."""
        scheduler = PollingScheduler()

        assert scheduler.scheduler._job_defaults["max_instances"] == 1
        assert scheduler.scheduler._job_defaults["coalesce"] is True


class TestAddJob:
    """Tests for add_job and add_poll_job."""

    def test_add_interval_job(self):
        """Should add job with interval trigger."""
        scheduler = PollingScheduler()

        job_id = scheduler.add_job(noop, job_id="interval_job", seconds=60)

        assert job_id == "interval_job"
        assert "interval_job" in scheduler._jobs
        assert len(scheduler.get_jobs()) == 1

    def test_add_poll_job(self):
        """Should register the poll job under its fixed id."""
        scheduler = PollingScheduler()

        job_id = scheduler.add_poll_job(noop, polling_second=600)

        assert job_id == POLL_JOB_ID
        job = scheduler.scheduler.get_job(POLL_JOB_ID)
        assert job.trigger.interval.total_seconds() == 600

    def test_add_job_replaces_existing(self):
        """Should replace existing job with same ID."""
        scheduler = PollingScheduler()

        scheduler.add_poll_job(noop, polling_second=60)
        scheduler.add_poll_job(noop, polling_second=120)

        # Internal tracking holds one entry per ID
        assert len(scheduler._jobs) == 1


class TestRemoveJob:
    """Tests for remove_job method."""

    def test_remove_existing_job(self):
        scheduler = PollingScheduler()
        scheduler.add_poll_job(noop, polling_second=60)

        assert scheduler.remove_job(POLL_JOB_ID) is True
        assert POLL_JOB_ID not in scheduler._jobs

    def test_remove_nonexistent_job(self):
        scheduler = PollingScheduler()

        assert scheduler.remove_job("nonexistent") is False


class TestGetJobs:
    def test_get_empty_jobs(self):
        assert PollingScheduler().get_jobs() == []

    def test_get_jobs_returns_info(self):
        scheduler = PollingScheduler()
        scheduler.add_poll_job(noop, polling_second=60)

        jobs = scheduler.get_jobs()

        assert jobs[0]["id"] == POLL_JOB_ID
        assert "next_run_time" in jobs[0]


class TestEventHandlers:
    """Listeners only log and refresh metrics."""

    def test_handlers_do_not_raise(self):
        scheduler = PollingScheduler()
        event = MagicMock(job_id=POLL_JOB_ID, exception=ValueError("x"), traceback="tb")

        scheduler._on_job_executed(event)
        scheduler._on_job_error(event)
        scheduler._on_job_missed(event)
        scheduler._on_job_overlap(event)


class TestShutdown:
    @pytest.mark.asyncio
    async def test_shutdown_when_not_running(self):
        """Should be a no-op before start."""
        scheduler = PollingScheduler()

        await scheduler.shutdown()

        assert scheduler.is_running is False
