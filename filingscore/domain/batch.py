"""Batch run domain models."""

from __future__ import annotations

import time
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


TIME_BUDGET_EXCEEDED = "time_budget_exceeded: stopping early to avoid cron timeout"


class BatchType(str, Enum):
    DISCLOSURE = "disclosure"
    VALUATION = "valuation"


class BatchStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class BatchRun(BaseModel):
    """Stored record of one batch execution."""

    run_id: int
    batch_type: str
    started_at: datetime
    finished_at: datetime | None = None
    status: BatchStatus
    items_processed: int = 0
    items_failed: int = 0
    error_message: str | None = None

    model_config = {
        "from_attributes": True,
    }


class BatchResult(BaseModel):
    """Outcome of a batch invocation.

    ``errors`` holds per-item failures, source failures and the budget stop
    marker; ``notes`` holds informational messages that do not degrade the
    status (e.g. the idempotent daily skip).
    """

    run_id: int | None = None
    processed: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)
    status: BatchStatus | None = None

    def resolve_status(self, *, source_failed: bool = False) -> BatchStatus:
        """Derive the terminal status from the accumulated outcome."""
        if source_failed and self.processed == 0:
            self.status = BatchStatus.FAILED
        elif self.errors:
            self.status = BatchStatus.PARTIAL
        else:
            self.status = BatchStatus.SUCCESS
        return self.status


class BatchBudget:
    """Cooperative runtime budget, checked before each unit of work.

    ``None`` disables the check.
    """

    def __init__(self, runtime_budget_ms: int | None):
        self.runtime_budget_ms = runtime_budget_ms
        self._start = time.monotonic()

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._start) * 1000)

    def exceeded(self) -> bool:
        if self.runtime_budget_ms is None:
            return False
        return self.elapsed_ms >= self.runtime_budget_ms
