"""Daily valuation snapshots.

For each active listed company: latest close on or before the snapshot
date plus the TTM rollup give the six ratios. Drafts are then ranked within
their peer group, scored, banded and saved. Ranking needs every draft of
the day, so nothing is saved until the whole set is built.
"""

from __future__ import annotations

from datetime import date

from filingscore.core.logging import get_logger
from filingscore.domain import (
    TIME_BUDGET_EXCEEDED,
    BatchBudget,
    BatchResult,
    PriceRow,
    SnapshotDraft,
    TTMFinancial,
    ValuationSnapshot,
)
from filingscore.repositories.base import Repositories

from .metrics import compute_metrics
from .peers import OTHER_PEER, ensure_peer_mappings
from .prices import PriceLedger
from .ranking import rank_snapshots
from .scoring import score_snapshot


logger = get_logger("engines.valuation")


def snapshot_exists_note(snap_date: date) -> str:
    return f"snapshot already exists for {snap_date.isoformat()}"


def resolve_market_cap(price: PriceRow, ttm: TTMFinancial | None) -> float | None:
    """Reported market cap, else close × shares outstanding when known."""
    if price.market_cap is not None:
        return price.market_cap
    if ttm is not None and ttm.shares_outstanding:
        return price.close * ttm.shares_outstanding
    return None


class ValuationEngine:
    def __init__(self, repos: Repositories, price_ledger: PriceLedger):
        self._repos = repos
        self._price_ledger = price_ledger

    async def create_daily_snapshots(
        self,
        snap_date: date,
        result: BatchResult,
        budget: BatchBudget,
        *,
        max_companies: int | None = None,
    ) -> BatchResult:
        """Build, rank, score and save one snapshot per company for the day.

        A second run for a date that already has snapshots records a note and
        does nothing else.

        Raises:
            SourceError: When prices for the date cannot be loaded
        """
        repos = self._repos
        if await repos.valuations.exists_for_date(snap_date):
            logger.info(f"Valuation snapshot for {snap_date} already exists, skipping")
            result.notes.append(snapshot_exists_note(snap_date))
            return result

        await self._price_ledger.ensure_prices(snap_date)
        await ensure_peer_mappings(repos.companies, repos.peers)

        companies = await repos.companies.list_active_with_ticker(limit=max_companies)
        mappings = await repos.peers.get_mappings()

        drafts: list[SnapshotDraft] = []
        for company in companies:
            if budget.exceeded():
                logger.warning(
                    f"Runtime budget of {budget.runtime_budget_ms}ms exceeded after "
                    f"{len(drafts)} drafts"
                )
                result.errors.append(TIME_BUDGET_EXCEEDED)
                break

            try:
                price = await repos.prices.latest_price(company.ticker, snap_date)
                if price is None:
                    result.skipped += 1
                    continue

                ttm = await repos.financials.get_ttm(company.company_id)
                market_cap = resolve_market_cap(price, ttm)
                mapping = mappings.get(company.company_id)
                drafts.append(
                    SnapshotDraft(
                        company_id=company.company_id,
                        snap_date=snap_date,
                        price=price.close,
                        market_cap=market_cap,
                        metrics=compute_metrics(ttm, market_cap),
                        peer_code=(mapping.peer_code if mapping else None) or OTHER_PEER,
                    )
                )
            except Exception as e:
                logger.warning(f"Failed to build snapshot for {company.company_id}: {e}")
                result.errors.append(f"{company.company_id}: {e}")

        if not drafts:
            logger.info(f"No valuation drafts for {snap_date}")
            return result

        group_sizes = rank_snapshots(drafts)
        snapshots = [ValuationSnapshot.from_draft(score_snapshot(d)) for d in drafts]
        saved = await repos.valuations.save_snapshots(snapshots)
        result.processed += saved

        logger.info(
            f"Saved {saved} valuation snapshots for {snap_date} across "
            f"{len(group_sizes)} peer groups"
        )
        return result
