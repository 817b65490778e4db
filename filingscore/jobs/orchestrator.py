"""Batch run lifecycle: stale-run sweep, start, budgeted work, close.

Every invocation records one BatchRun row. Runs left ``running`` by a
crashed or timed-out predecessor are marked failed before the new run
starts, so overlapping schedule triggers never leave orphaned rows.

Usage:
    orchestrator = BatchOrchestrator(repos.batch_runs, BatchType.DISCLOSURE)
    result = await orchestrator.run(work, runtime_budget_ms=25_000)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

from filingscore.core.exceptions import ConfigurationError, SourceError
from filingscore.core.logging import get_logger, run_id_var
from filingscore.domain import BatchBudget, BatchResult, BatchStatus, BatchType
from filingscore.repositories.base import BatchRunRepository

from .job_defaults import STALE_THRESHOLDS


logger = get_logger("jobs.orchestrator")

STALE_RUN_MESSAGE = "stale run: marked failed by next invocation"

# Stored error_message keeps the first few errors only
MAX_STORED_ERRORS = 10
MAX_ERROR_MESSAGE_LENGTH = 500

BatchWork = Callable[[BatchResult, BatchBudget], Awaitable[object]]


def summarize_errors(errors: list[str]) -> str | None:
    if not errors:
        return None
    return "; ".join(errors[:MAX_STORED_ERRORS])[:MAX_ERROR_MESSAGE_LENGTH]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BatchOrchestrator:
    def __init__(
        self,
        batch_runs: BatchRunRepository,
        batch_type: BatchType,
        *,
        stale_after: timedelta | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._batch_runs = batch_runs
        self._batch_type = batch_type
        self._stale_after = stale_after or STALE_THRESHOLDS[batch_type]
        self._clock = clock

    async def sweep_stale(self) -> int:
        """Fail ``running`` rows of this type older than the stale threshold."""
        cutoff = self._clock() - self._stale_after
        try:
            expired = await self._batch_runs.expire_stale(
                self._batch_type.value, cutoff, STALE_RUN_MESSAGE
            )
        except Exception as e:
            logger.warning(f"Stale run sweep for {self._batch_type.value} failed: {e}")
            return 0
        if expired:
            logger.warning(f"Marked {expired} stale {self._batch_type.value} runs as failed")
        return expired

    async def start(self) -> int:
        """Sweep stale runs, then open a new ``running`` row. Returns its id."""
        await self.sweep_stale()
        run_id = await self._batch_runs.create(self._batch_type.value, self._clock())
        logger.info(f"Started {self._batch_type.value} batch run {run_id}")
        return run_id

    async def close(self, run_id: int, result: BatchResult) -> None:
        """Write the terminal status. Failures here are logged, never raised."""
        status = result.status or result.resolve_status()
        try:
            await self._batch_runs.close(
                run_id,
                status,
                items_processed=result.processed,
                items_failed=len(result.errors),
                error_message=summarize_errors(result.errors),
            )
        except Exception as e:
            logger.error(f"Failed to close batch run {run_id}: {e}")

    async def run(self, work: BatchWork, runtime_budget_ms: int | None = None) -> BatchResult:
        """Run ``work(result, budget)`` inside a recorded batch run.

        ``work`` fills the result in place. Source failures become one
        aggregated error; configuration failures fail the run outright.
        Nothing raised by ``work`` escapes.
        """
        run_id = await self.start()
        token = run_id_var.set(str(run_id))
        result = BatchResult(run_id=run_id)
        budget = BatchBudget(runtime_budget_ms)

        try:
            await work(result, budget)
            result.resolve_status()
        except ConfigurationError as e:
            logger.error(f"{self._batch_type.value} batch misconfigured: {e.message}")
            result.errors.append(e.message)
            result.processed = 0
            result.status = BatchStatus.FAILED
        except SourceError as e:
            logger.error(f"{self._batch_type.value} batch source failure: {e.message}")
            result.errors.append(f"API error: {e.message}")
            result.resolve_status(source_failed=True)
        except Exception as e:
            logger.exception(f"{self._batch_type.value} batch failed")
            result.errors.append(str(e) or type(e).__name__)
            result.resolve_status(source_failed=True)
        finally:
            await self.close(run_id, result)
            run_id_var.reset(token)

        logger.info(
            f"Finished {self._batch_type.value} batch run {run_id}: {result.status.value}, "
            f"processed={result.processed} skipped={result.skipped} errors={len(result.errors)}"
        )
        return result
