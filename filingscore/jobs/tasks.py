"""Celery tasks for the scheduled batches.

Overlapping runs are not locked out: the stale-run sweep and the storage
unique keys make a second concurrent batch harmless.
"""

from __future__ import annotations

import asyncio
from typing import Any

import filingscore.jobs.definitions  # noqa: F401 - register jobs
from filingscore.celery_app import celery_app
from filingscore.core.logging import get_logger
from filingscore.jobs.executor import execute_job


logger = get_logger("jobs.celery_tasks")

# Per-worker event loop for Celery prefork pool
_worker_loop: asyncio.AbstractEventLoop | None = None


def _get_worker_loop() -> asyncio.AbstractEventLoop:
    """Get or create a persistent event loop for the worker process."""
    global _worker_loop
    if _worker_loop is None or _worker_loop.is_closed():
        _worker_loop = asyncio.new_event_loop()
        asyncio.set_event_loop(_worker_loop)
    return _worker_loop


def _run_async(coro: Any) -> Any:
    """Run a coroutine on the worker's event loop.

    The loop outlives each task so the pooled database connections stay
    bound to a live loop.
    """
    loop = _get_worker_loop()
    return loop.run_until_complete(coro)


def _run_job(job_name: str) -> str:
    return _run_async(execute_job(job_name))


@celery_app.task(name="jobs.disclosure_hourly")
def disclosure_hourly_task() -> str:
    return _run_job("disclosure_hourly")


@celery_app.task(name="jobs.valuation_daily")
def valuation_daily_task() -> str:
    return _run_job("valuation_daily")
