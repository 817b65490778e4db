"""Internal batch trigger, called by external cron or operators."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from filingscore.core.exceptions import NotFoundError
from filingscore.core.logging import get_logger
from filingscore.domain import BatchType
from filingscore.jobs.definitions import run_filing_batch, run_valuation_batch
from filingscore.repositories import Repositories

from ..dependencies import get_repositories, require_internal_secret
from ..schemas import BatchTriggerResponse


router = APIRouter(prefix="/internal", dependencies=[Depends(require_internal_secret)])

logger = get_logger("api.internal")


@router.post(
    "/batch/{batch_type}",
    response_model=BatchTriggerResponse,
    summary="Run a batch now",
    description="Run the disclosure or valuation batch synchronously and return its result.",
)
async def trigger_batch(
    batch_type: str,
    repos: Repositories = Depends(get_repositories),
) -> BatchTriggerResponse:
    if batch_type == BatchType.DISCLOSURE.value:
        result = await run_filing_batch(repos=repos)
    elif batch_type == BatchType.VALUATION.value:
        result = await run_valuation_batch(repos=repos)
    else:
        raise NotFoundError(
            message=f"Unknown batch type: {batch_type}",
            details={"allowed": [t.value for t in BatchType]},
        )

    logger.info(f"Manual {batch_type} batch finished with {result.status.value}")
    return BatchTriggerResponse(
        batch_type=batch_type,
        run_id=result.run_id,
        status=result.status,
        processed=result.processed,
        skipped=result.skipped,
        errors=result.errors,
        notes=result.notes,
    )
