"""Response schemas for the internal API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from filingscore.domain import BatchRun, BatchStatus


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str = Field(..., description="Error code", examples=["NOT_FOUND"])
    message: str = Field(..., description="Human-readable error message")
    status: int = Field(..., description="HTTP status code")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Additional error details")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall health status", examples=["ok", "degraded"])
    version: str = Field(..., description="Application version")
    environment: str = Field(..., description="Deployment environment")
    timestamp: datetime
    checks: Dict[str, bool] = Field(default_factory=dict, description="Individual dependency checks")


class BatchHealthResponse(BaseModel):
    """Recent batch runs and the last success per batch type."""

    recent_runs: List[BatchRun] = Field(default_factory=list)
    last_success: Dict[str, datetime] = Field(default_factory=dict)
    timestamp: datetime


class BatchTriggerResponse(BaseModel):
    """Result of a manually triggered batch."""

    batch_type: str
    run_id: Optional[int] = None
    status: BatchStatus
    processed: int
    skipped: int
    errors: List[str] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)
