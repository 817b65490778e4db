"""Batch entry points and their scheduled job definitions.

Jobs:
- disclosure_hourly: OpenDART poll into the filing ledger (every hour)
- valuation_daily: KRX prices, peer mapping and valuation snapshots (07:00 UTC)

The ``run_*_batch`` functions are what the scheduler, the internal API and
``scripts/run_batch.py`` call. Repositories and sources can be injected;
by default they are wired to the database and the configured feeds.
"""

from __future__ import annotations

from datetime import date, datetime

from filingscore.core.config import settings
from filingscore.core.logging import get_logger
from filingscore.database.connection import get_session_factory
from filingscore.domain import BatchBudget, BatchResult, BatchType
from filingscore.engines.disclosure import DisclosureEngine
from filingscore.engines.ledger import FilingLedger
from filingscore.engines.merger import QuarterlyMerger
from filingscore.engines.prices import PriceLedger
from filingscore.engines.ttm import TTMAggregator
from filingscore.engines.valuation import ValuationEngine
from filingscore.repositories import Repositories, build_orm_repositories
from filingscore.sources.krx_prices import PriceSource, build_price_source
from filingscore.sources.opendart import KST, OpenDartClient

from .orchestrator import BatchOrchestrator
from .registry import register_job
from .utils import elapsed_ms, job_timer, log_job_success


logger = get_logger("jobs.definitions")


async def _default_repositories() -> Repositories:
    return build_orm_repositories(await get_session_factory())


def build_filing_ledger(repos: Repositories) -> FilingLedger:
    ttm = TTMAggregator(repos.financials)
    merger = QuarterlyMerger(repos.financials, ttm)
    return FilingLedger(repos.companies, repos.filings, merger)


# =============================================================================
# FILING BATCH
# =============================================================================


async def run_filing_batch(
    runtime_budget_ms: int | None = None,
    *,
    repos: Repositories | None = None,
    client: OpenDartClient | None = None,
    start: date | None = None,
    end: date | None = None,
) -> BatchResult:
    """Poll OpenDART and write new filings.

    With ``start`` and ``end`` the given range is backfilled instead of the
    recent lookback window.
    """
    repos = repos or await _default_repositories()
    if runtime_budget_ms is None:
        runtime_budget_ms = settings.filing_runtime_budget_ms

    async def work(result: BatchResult, budget: BatchBudget) -> None:
        dart = client or OpenDartClient(settings.opendart_api_key)
        engine = DisclosureEngine(
            dart,
            build_filing_ledger(repos),
            tracked_classes=settings.tracked_exchange_classes,
        )
        try:
            if start is not None and end is not None:
                await engine.poll_disclosures_for_range(
                    start, end, result, budget, max_pages=settings.opendart_max_pages
                )
            else:
                await engine.poll_new_disclosures(
                    result,
                    budget,
                    days=settings.opendart_lookback_days,
                    max_pages=settings.opendart_max_pages,
                )
        finally:
            if client is None:
                await dart.aclose()

    orchestrator = BatchOrchestrator(repos.batch_runs, BatchType.DISCLOSURE)
    return await orchestrator.run(work, runtime_budget_ms)


# =============================================================================
# VALUATION BATCH
# =============================================================================


async def run_valuation_batch(
    runtime_budget_ms: int | None = None,
    *,
    repos: Repositories | None = None,
    price_source: PriceSource | None = None,
    snap_date: date | None = None,
) -> BatchResult:
    """Write today's (KST) valuation snapshots unless they already exist."""
    repos = repos or await _default_repositories()
    if runtime_budget_ms is None:
        runtime_budget_ms = settings.valuation_runtime_budget_ms
    target_date = snap_date or datetime.now(KST).date()

    async def work(result: BatchResult, budget: BatchBudget) -> None:
        source = price_source or build_price_source(settings, repos.companies)
        engine = ValuationEngine(repos, PriceLedger(repos.prices, repos.companies, source))
        await engine.create_daily_snapshots(
            target_date,
            result,
            budget,
            max_companies=settings.valuation_max_companies,
        )

    orchestrator = BatchOrchestrator(repos.batch_runs, BatchType.VALUATION)
    return await orchestrator.run(work, runtime_budget_ms)


# =============================================================================
# SCHEDULED JOBS
# =============================================================================


def _summary(result: BatchResult) -> str:
    return (
        f"{result.status.value}: processed={result.processed} "
        f"skipped={result.skipped} errors={len(result.errors)}"
    )


@register_job("disclosure_hourly")
async def disclosure_hourly_job() -> str:
    """Ingest the last day of filings."""
    job_start = job_timer()
    result = await run_filing_batch()
    log_job_success(
        "disclosure_hourly",
        f"Ingested {result.processed} filings",
        run_id=result.run_id,
        batch_status=result.status.value,
        processed=result.processed,
        skipped=result.skipped,
        errors=len(result.errors),
        duration_ms=elapsed_ms(job_start),
    )
    return _summary(result)


@register_job("valuation_daily")
async def valuation_daily_job() -> str:
    """Write today's valuation snapshots."""
    job_start = job_timer()
    result = await run_valuation_batch()
    log_job_success(
        "valuation_daily",
        f"Saved {result.processed} snapshots",
        run_id=result.run_id,
        batch_status=result.status.value,
        processed=result.processed,
        skipped=result.skipped,
        errors=len(result.errors),
        notes=len(result.notes),
        duration_ms=elapsed_ms(job_start),
    )
    return _summary(result)
