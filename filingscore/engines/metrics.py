"""Valuation ratios from market cap and the TTM rollup."""

from __future__ import annotations

from filingscore.core.data_helpers import round_half_up
from filingscore.domain import TTMFinancial, ValuationMetrics


def _ratio(numerator: float | None, denominator: float | None, scale: float = 1.0) -> float | None:
    """numerator / denominator × scale, or None unless both are set and denominator > 0."""
    if numerator is None or denominator is None or denominator <= 0:
        return None
    return round_half_up(numerator / denominator * scale, 2)


def compute_metrics(ttm: TTMFinancial | None, market_cap: float | None) -> ValuationMetrics:
    """PER, PBR, PSR, ROE %, OPM % and debt ratio % for one company.

    Each ratio is computed independently; missing inputs only blank the
    ratios that need them.
    """
    if ttm is None:
        return ValuationMetrics()

    return ValuationMetrics(
        per=_ratio(market_cap, ttm.net_profit_ttm),
        pbr=_ratio(market_cap, ttm.total_equity),
        psr=_ratio(market_cap, ttm.revenue_ttm),
        roe=_ratio(ttm.net_profit_ttm, ttm.total_equity, 100.0),
        opm=_ratio(ttm.op_profit_ttm, ttm.revenue_ttm, 100.0),
        debt_ratio=_ratio(ttm.total_debt, ttm.total_equity, 100.0),
    )
