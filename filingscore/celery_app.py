"""Celery application setup for the scheduled batches."""

from __future__ import annotations

import os

from celery import Celery
from celery.schedules import crontab

from filingscore.core.config import settings
from filingscore.jobs.job_defaults import DEFAULT_SCHEDULES


def cron_to_crontab(expr: str) -> crontab:
    parts = expr.split()
    if len(parts) != 5:
        raise ValueError(f"Invalid cron expression: {expr}")
    minute, hour, day_of_month, month_of_year, day_of_week = parts
    return crontab(
        minute=minute,
        hour=hour,
        day_of_week=day_of_week,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
    )


def build_beat_schedule() -> dict[str, dict]:
    return {
        job_name: {
            "task": f"jobs.{job_name}",
            "schedule": cron_to_crontab(cron),
        }
        for job_name, (cron, _description) in DEFAULT_SCHEDULES.items()
    }


broker_url = settings.celery_broker_url
result_backend = settings.celery_result_backend or broker_url

celery_app = Celery("filingscore", broker=broker_url, backend=result_backend)

celery_app.conf.update(
    timezone=settings.scheduler_timezone,
    enable_utc=True,
    broker_connection_retry_on_startup=True,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    task_soft_time_limit=int(os.getenv("CELERY_TASK_SOFT_TIME_LIMIT", "300")),
    task_time_limit=int(os.getenv("CELERY_TASK_TIME_LIMIT", "360")),
    worker_max_tasks_per_child=int(os.getenv("CELERY_MAX_TASKS_PER_CHILD", "100")),
    task_default_queue="default",
    beat_schedule=build_beat_schedule(),
)

# Register tasks
celery_app.autodiscover_tasks(["filingscore.jobs"])
