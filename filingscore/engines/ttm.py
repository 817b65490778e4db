"""Trailing-twelve-month aggregation."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

from filingscore.core.logging import get_logger
from filingscore.domain import QuarterlyFinancial, TTMFinancial
from filingscore.repositories.base import FinancialRepository


logger = get_logger("engines.ttm")

TTM_QUARTERS = 4


def _sum_present(values: Sequence[float | None]) -> float | None:
    """Sum of the values that are set; None when none are."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return float(sum(present))


def build_ttm(company_id: str, quarters: Sequence[QuarterlyFinancial]) -> TTMFinancial | None:
    """Roll up to four quarters, newest first, into a TTM row.

    Flow items are summed; balance-sheet items come from the newest quarter.
    """
    if not quarters:
        return None
    window = list(quarters)[:TTM_QUARTERS]
    latest = window[0]
    return TTMFinancial(
        company_id=company_id,
        revenue_ttm=_sum_present([q.revenue for q in window]),
        op_profit_ttm=_sum_present([q.operating_profit for q in window]),
        net_profit_ttm=_sum_present([q.net_profit for q in window]),
        total_equity=latest.total_equity,
        total_debt=latest.total_debt,
        shares_outstanding=latest.shares_outstanding,
        last_quarter_year=latest.year,
        last_quarter=latest.quarter,
        calculated_at=datetime.now(UTC),
    )


class TTMAggregator:
    def __init__(self, financials: FinancialRepository):
        self._financials = financials

    async def recompute(self, company_id: str) -> TTMFinancial | None:
        """Rebuild the company's TTM row from its latest quarters.

        With no quarterly rows the stored TTM (if any) is left as is.
        """
        quarters = await self._financials.latest_quarters(company_id, limit=TTM_QUARTERS)
        ttm = build_ttm(company_id, quarters)
        if ttm is None:
            logger.debug(f"No quarterly rows for {company_id}, TTM unchanged")
            return None
        await self._financials.save_ttm(ttm)
        return ttm
