"""Batch orchestration and scheduled jobs."""

from .executor import execute_job
from .orchestrator import (
    STALE_RUN_MESSAGE,
    BatchOrchestrator,
)
from .registry import (
    get_job,
    list_job_names,
    register_job,
)


__all__ = [
    "STALE_RUN_MESSAGE",
    "BatchOrchestrator",
    "execute_job",
    "get_job",
    "list_job_names",
    "register_job",
]
