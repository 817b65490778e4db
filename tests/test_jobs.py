"""Tests for the job registry, executor and Celery schedule."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

import filingscore.jobs.definitions  # noqa: F401 - register jobs
from filingscore.celery_app import build_beat_schedule, cron_to_crontab
from filingscore.core.exceptions import JobError
from filingscore.domain import BatchResult, BatchStatus
from filingscore.jobs import execute_job, get_job, list_job_names, register_job
from filingscore.jobs.job_defaults import DEFAULT_SCHEDULES


class TestRegistry:
    def test_scheduled_jobs_are_registered(self):
        assert set(DEFAULT_SCHEDULES) <= set(list_job_names())

    def test_unknown_job(self):
        assert get_job("does_not_exist") is None


class TestExecuteJob:
    @pytest.mark.asyncio
    async def test_unknown_job_raises(self):
        with pytest.raises(JobError) as exc:
            await execute_job("does_not_exist")
        assert exc.value.error_code == "UNKNOWN_JOB"

    @pytest.mark.asyncio
    async def test_failure_is_wrapped(self):
        @register_job("test_failing_job")
        async def failing_job() -> str:
            raise RuntimeError("boom")

        with pytest.raises(JobError) as exc:
            await execute_job("test_failing_job")
        assert exc.value.details["job_name"] == "test_failing_job"
        assert "boom" in exc.value.message

    @pytest.mark.asyncio
    async def test_disclosure_job_summary(self):
        result = BatchResult(run_id=5, processed=7, skipped=2, status=BatchStatus.PARTIAL)
        result.errors.append("20240514000123: merge failed: deadlock detected")

        with patch(
            "filingscore.jobs.definitions.run_filing_batch", AsyncMock(return_value=result)
        ):
            message = await execute_job("disclosure_hourly")

        assert message == "partial: processed=7 skipped=2 errors=1"

    @pytest.mark.asyncio
    async def test_valuation_job_summary(self):
        result = BatchResult(run_id=6, status=BatchStatus.SUCCESS)
        result.notes.append("snapshot already exists for 2024-06-03")

        with patch(
            "filingscore.jobs.definitions.run_valuation_batch", AsyncMock(return_value=result)
        ):
            message = await execute_job("valuation_daily")

        assert message == "success: processed=0 skipped=0 errors=0"


class TestBeatSchedule:
    def test_one_entry_per_default_schedule(self):
        schedule = build_beat_schedule()

        assert set(schedule) == {"disclosure_hourly", "valuation_daily"}
        assert schedule["disclosure_hourly"]["task"] == "jobs.disclosure_hourly"
        assert schedule["valuation_daily"]["schedule"].hour == {7}
        assert schedule["valuation_daily"]["schedule"].minute == {0}

    def test_invalid_cron(self):
        with pytest.raises(ValueError):
            cron_to_crontab("0 7 * *")
