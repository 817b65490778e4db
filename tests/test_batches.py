"""Tests for the batch orchestrator and the filing and valuation batches."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from unittest.mock import patch

import pytest

from filingscore.core.config import settings
from filingscore.core.exceptions import ConfigurationError, SourceError
from filingscore.domain import (
    TIME_BUDGET_EXCEEDED,
    BatchBudget,
    BatchRun,
    BatchStatus,
    BatchType,
    Company,
    PriceRow,
    TTMFinancial,
)
from filingscore.jobs.definitions import run_filing_batch, run_valuation_batch
from filingscore.jobs.orchestrator import (
    STALE_RUN_MESSAGE,
    BatchOrchestrator,
    summarize_errors,
)

from .factories import make_feed_item
from .fakes import (
    InMemoryBatchRuns,
    StaticDartClient,
    StaticPriceSource,
    build_fake_repositories,
)


NOW = datetime(2024, 6, 3, 7, 0, tzinfo=UTC)
SNAP_DATE = date(2024, 6, 3)


def _feed(count: int):
    return [
        make_feed_item(filing_id=f"2024051400{i:04d}", title="2024년 1분기보고서 매출액 1,000억")
        for i in range(count)
    ]


# =============================================================================
# Orchestrator
# =============================================================================


class TestBatchOrchestrator:
    """Run lifecycle: sweep, start, work, close."""

    @pytest.mark.asyncio
    async def test_stale_run_is_failed_on_next_start(self):
        runs = InMemoryBatchRuns()
        runs.add(
            BatchRun(
                run_id=7,
                batch_type="valuation",
                started_at=NOW - timedelta(hours=3),
                status=BatchStatus.RUNNING,
            )
        )
        orchestrator = BatchOrchestrator(runs, BatchType.VALUATION, clock=lambda: NOW)

        run_id = await orchestrator.start()

        assert runs.rows[7].status is BatchStatus.FAILED
        assert runs.rows[7].error_message == STALE_RUN_MESSAGE
        assert runs.rows[run_id].status is BatchStatus.RUNNING

    @pytest.mark.asyncio
    async def test_recent_and_other_type_runs_are_left_alone(self):
        runs = InMemoryBatchRuns()
        runs.add(BatchRun(run_id=1, batch_type="valuation", started_at=NOW - timedelta(hours=1),
                          status=BatchStatus.RUNNING))
        runs.add(BatchRun(run_id=2, batch_type="disclosure", started_at=NOW - timedelta(hours=3),
                          status=BatchStatus.RUNNING))
        orchestrator = BatchOrchestrator(runs, BatchType.VALUATION, clock=lambda: NOW)

        assert await orchestrator.sweep_stale() == 0
        assert runs.rows[1].status is BatchStatus.RUNNING
        assert runs.rows[2].status is BatchStatus.RUNNING

    @pytest.mark.asyncio
    async def test_disclosure_threshold_is_fifteen_minutes(self):
        runs = InMemoryBatchRuns()
        runs.add(BatchRun(run_id=1, batch_type="disclosure", started_at=NOW - timedelta(minutes=20),
                          status=BatchStatus.RUNNING))
        orchestrator = BatchOrchestrator(runs, BatchType.DISCLOSURE, clock=lambda: NOW)

        assert await orchestrator.sweep_stale() == 1

    @pytest.mark.asyncio
    async def test_run_closes_with_result(self):
        runs = InMemoryBatchRuns()

        async def work(result, budget):
            result.processed = 3
            result.errors.append("x: bad title")

        result = await BatchOrchestrator(runs, BatchType.DISCLOSURE).run(work)

        row = runs.rows[result.run_id]
        assert result.status is BatchStatus.PARTIAL
        assert row.status is BatchStatus.PARTIAL
        assert (row.items_processed, row.items_failed) == (3, 1)
        assert row.error_message == "x: bad title"

    @pytest.mark.asyncio
    async def test_configuration_error_fails_run(self):
        runs = InMemoryBatchRuns()

        async def work(result, budget):
            result.processed = 2
            raise ConfigurationError(message="OPENDART_API_KEY is required")

        result = await BatchOrchestrator(runs, BatchType.DISCLOSURE).run(work)

        assert result.status is BatchStatus.FAILED
        assert result.processed == 0
        assert runs.rows[result.run_id].status is BatchStatus.FAILED

    @pytest.mark.asyncio
    async def test_source_error_after_progress_is_partial(self):
        async def work(result, budget):
            result.processed = 1
            raise SourceError(message="HTTP 502")

        result = await BatchOrchestrator(InMemoryBatchRuns(), BatchType.VALUATION).run(work)

        assert result.status is BatchStatus.PARTIAL
        assert result.errors == ["API error: HTTP 502"]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self):
        async def work(result, budget):
            raise KeyError("list")

        result = await BatchOrchestrator(InMemoryBatchRuns(), BatchType.VALUATION).run(work)

        assert result.status is BatchStatus.FAILED
        assert len(result.errors) == 1

    @pytest.mark.asyncio
    async def test_close_failure_is_swallowed(self):
        async def work(result, budget):
            result.processed = 1

        runs = InMemoryBatchRuns(fail_close=True)
        result = await BatchOrchestrator(runs, BatchType.DISCLOSURE).run(work)

        assert result.status is BatchStatus.SUCCESS

    def test_error_summary_is_bounded(self):
        errors = [f"2024051400{i:04d}: " + "x" * 60 for i in range(15)]
        summary = summarize_errors(errors)

        assert len(summary) == 500
        assert summary.startswith(errors[0])
        assert errors[10] not in summary
        assert summarize_errors([]) is None


class TestBatchBudget:
    def test_zero_budget_is_exceeded_immediately(self):
        assert BatchBudget(0).exceeded() is True

    def test_no_budget_never_expires(self):
        assert BatchBudget(None).exceeded() is False

    def test_large_budget(self):
        assert BatchBudget(60_000).exceeded() is False


# =============================================================================
# Filing batch
# =============================================================================


class TestFilingBatch:
    @pytest.mark.asyncio
    async def test_ingests_feed(self):
        repos = build_fake_repositories()
        client = StaticDartClient(_feed(3))

        result = await run_filing_batch(60_000, repos=repos, client=client)

        assert result.status is BatchStatus.SUCCESS
        assert result.processed == 3
        assert len(repos.filings.rows) == 3
        assert client.closed is False

    @pytest.mark.asyncio
    async def test_zero_budget_stops_before_first_filing(self):
        repos = build_fake_repositories()

        result = await run_filing_batch(0, repos=repos, client=StaticDartClient(_feed(5)))

        assert result.processed == 0
        assert result.errors == [TIME_BUDGET_EXCEEDED]
        assert result.status is BatchStatus.PARTIAL
        assert repos.filings.rows == {}

    @pytest.mark.asyncio
    async def test_rerun_skips_duplicates(self):
        repos = build_fake_repositories()
        client = StaticDartClient(_feed(2))

        await run_filing_batch(60_000, repos=repos, client=client)
        result = await run_filing_batch(60_000, repos=repos, client=client)

        assert result.processed == 0
        assert result.skipped == 2
        assert result.status is BatchStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_untracked_exchange_class_is_skipped(self):
        repos = build_fake_repositories()
        items = [make_feed_item(exchange_class="E"), make_feed_item(filing_id="20240514000999")]

        result = await run_filing_batch(60_000, repos=repos, client=StaticDartClient(items))

        assert (result.processed, result.skipped) == (1, 1)

    @pytest.mark.asyncio
    async def test_source_failure_fails_run(self):
        repos = build_fake_repositories()
        client = StaticDartClient(error=SourceError(message="OpenDART API error: HTTP 500"))

        result = await run_filing_batch(60_000, repos=repos, client=client)

        assert result.status is BatchStatus.FAILED
        assert result.errors == ["API error: OpenDART API error: HTTP 500"]
        assert repos.batch_runs.rows[result.run_id].status is BatchStatus.FAILED

    @pytest.mark.asyncio
    async def test_missing_api_key_fails_run(self):
        repos = build_fake_repositories()

        with patch.object(settings, "opendart_api_key", ""):
            result = await run_filing_batch(60_000, repos=repos)

        assert result.status is BatchStatus.FAILED
        assert result.errors == ["OPENDART_API_KEY is required"]

    @pytest.mark.asyncio
    async def test_backfill_range(self):
        repos = build_fake_repositories()
        items = _feed(2) + [make_feed_item(filing_id="20240601000001", filed_at="20240601")]

        result = await run_filing_batch(
            60_000,
            repos=repos,
            client=StaticDartClient(items),
            start=date(2024, 6, 1),
            end=date(2024, 6, 2),
        )

        assert result.processed == 1
        assert list(repos.filings.rows) == ["20240601000001"]


# =============================================================================
# Valuation batch
# =============================================================================


def _valuation_repos(companies: list[Company]):
    repos = build_fake_repositories(companies=companies)
    for company_id, net_profit in (("00126380", 40.0), ("00164779", 10.0)):
        repos.financials.ttm[company_id] = TTMFinancial(
            company_id=company_id,
            revenue_ttm=1000.0,
            op_profit_ttm=100.0,
            net_profit_ttm=net_profit,
            total_equity=500.0,
            last_quarter_year=2024,
            last_quarter=1,
        )
    return repos


def _prices() -> StaticPriceSource:
    return StaticPriceSource(
        [
            PriceRow(ticker="005930", trade_date=SNAP_DATE, close=70_000, market_cap=800.0),
            PriceRow(ticker="000660", trade_date=SNAP_DATE, close=180_000, market_cap=800.0),
            PriceRow(ticker="035720", trade_date=SNAP_DATE, close=45_000, market_cap=300.0),
        ]
    )


class TestValuationBatch:
    @pytest.mark.asyncio
    async def test_creates_scored_snapshots(self, listed_companies):
        repos = _valuation_repos(listed_companies)

        result = await run_valuation_batch(
            60_000, repos=repos, price_source=_prices(), snap_date=SNAP_DATE
        )

        assert result.status is BatchStatus.SUCCESS
        assert result.processed == 3
        samsung = repos.valuations.rows["00126380_2024-06-03"]
        hynix = repos.valuations.rows["00164779_2024-06-03"]
        kakao = repos.valuations.rows["00258801_2024-06-03"]

        assert samsung.peer_code == "SEMI"
        assert samsung.per == 20.0
        assert hynix.per == 80.0
        # Lower PER ranks higher within SEMI
        assert samsung.per_percentile == 50.0
        assert hynix.per_percentile == 0.0
        assert samsung.score > hynix.score
        # No TTM: no metrics, neutral score
        assert kakao.per is None
        assert kakao.score == 50

    @pytest.mark.asyncio
    async def test_second_run_same_day_is_a_no_op(self, listed_companies):
        repos = _valuation_repos(listed_companies)
        await run_valuation_batch(60_000, repos=repos, price_source=_prices(), snap_date=SNAP_DATE)
        before = dict(repos.valuations.rows)

        result = await run_valuation_batch(
            60_000, repos=repos, price_source=_prices(), snap_date=SNAP_DATE
        )

        assert result.processed == 0
        assert result.notes == ["snapshot already exists for 2024-06-03"]
        assert result.status is BatchStatus.SUCCESS
        assert repos.valuations.rows == before

    @pytest.mark.asyncio
    async def test_stored_prices_are_not_refetched(self, listed_companies):
        repos = _valuation_repos(listed_companies)
        source = _prices()
        await repos.prices.upsert_prices(await source.fetch_daily_prices(SNAP_DATE))
        source.calls.clear()

        result = await run_valuation_batch(
            60_000, repos=repos, price_source=source, snap_date=SNAP_DATE
        )

        assert source.calls == []
        assert result.processed == 3

    @pytest.mark.asyncio
    async def test_company_without_price_is_skipped(self, listed_companies):
        repos = _valuation_repos(listed_companies)
        source = StaticPriceSource(_prices().rows[:2])

        result = await run_valuation_batch(
            60_000, repos=repos, price_source=source, snap_date=SNAP_DATE
        )

        assert (result.processed, result.skipped) == (2, 1)

    @pytest.mark.asyncio
    async def test_empty_price_feed_fails_run(self, listed_companies):
        repos = _valuation_repos(listed_companies)

        result = await run_valuation_batch(
            60_000, repos=repos, price_source=StaticPriceSource([]), snap_date=SNAP_DATE
        )

        assert result.status is BatchStatus.FAILED
        assert result.errors == ["API error: No price data returned from KRX source"]
        assert repos.valuations.rows == {}

    @pytest.mark.asyncio
    async def test_price_rows_seed_new_companies(self, listed_companies):
        repos = _valuation_repos(listed_companies)
        rows = _prices().rows + [
            PriceRow(ticker="123456", trade_date=SNAP_DATE, close=1000, company_name="신규상장",
                     market="KOSDAQ"),
        ]

        result = await run_valuation_batch(
            60_000, repos=repos, price_source=StaticPriceSource(rows), snap_date=SNAP_DATE
        )

        assert repos.companies.rows["KRX_123456"].market == "KOSDAQ"
        assert repos.peers.mappings["KRX_123456"].peer_code == "OTHER"
        assert result.processed == 4

    @pytest.mark.asyncio
    async def test_zero_budget_saves_nothing(self, listed_companies):
        repos = _valuation_repos(listed_companies)

        result = await run_valuation_batch(
            0, repos=repos, price_source=_prices(), snap_date=SNAP_DATE
        )

        assert result.processed == 0
        assert result.errors == [TIME_BUDGET_EXCEEDED]
        assert result.status is BatchStatus.PARTIAL
