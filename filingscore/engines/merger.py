"""Quarterly financial merge resolved by source priority.

A performance filing maps to one (company, year, quarter) slot. Annual
reports outrank half-year and quarterly reports, which outrank preliminary
earnings. An incoming fact replaces the stored one only when its priority
is at least as high; equal priority favours the newer write.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime
from enum import Enum

from filingscore.core.logging import get_logger
from filingscore.domain import Filing, PerformanceNumbers, QuarterInfo, QuarterlyFinancial
from filingscore.repositories.base import FinancialRepository

from .ttm import TTMAggregator


logger = get_logger("engines.merger")

SOURCE_PRIORITY: dict[str, int] = {
    "사업보고서": 3,
    "반기보고서": 2,
    "분기보고서": 2,
    "잠정실적": 1,
}

_YEAR = re.compile(r"(20\d{2})")
_PRELIM_QUARTER = re.compile(r"(\d)분기")
# Matches both 잠정실적 and the DART form 영업(잠정)실적
_PRELIMINARY = re.compile(r"잠정\)?실적")
# DART periodic report names carry the period end, e.g. 분기보고서 (2024.09)
_PERIOD_END = re.compile(r"\((20\d{2})\.(\d{2})\)")
_PERIODIC_REPORTS = ("사업보고서", "반기보고서", "분기보고서")


class MergeOutcome(str, Enum):
    WRITTEN = "written"
    DISCARDED = "discarded"
    NOT_MERGEABLE = "not_mergeable"


def parse_quarter_info(title: str, filed_at: date) -> QuarterInfo | None:
    """Fiscal year, quarter and priority of a performance filing title.

    Quarter phrases are checked in a fixed order, so ``1분기 잠정실적`` maps
    to Q1 at quarterly priority. Returns None for titles that do not name a
    reportable period.
    """
    match = _YEAR.search(title)
    year = int(match.group(1)) if match else filed_at.year

    if "1분기" in title:
        return QuarterInfo(year=year, quarter=1, priority=SOURCE_PRIORITY["분기보고서"])
    if "반기" in title or "2분기" in title:
        return QuarterInfo(year=year, quarter=2, priority=SOURCE_PRIORITY["반기보고서"])
    if "3분기" in title:
        return QuarterInfo(year=year, quarter=3, priority=SOURCE_PRIORITY["분기보고서"])
    if "사업보고서" in title:
        return QuarterInfo(year=year, quarter=4, priority=SOURCE_PRIORITY["사업보고서"])

    if _PRELIMINARY.search(title):
        q = _PRELIM_QUARTER.search(title)
        quarter = int(q.group(1)) if q else 4
        if not 1 <= quarter <= 4:
            quarter = 4
        return QuarterInfo(year=year, quarter=quarter, priority=SOURCE_PRIORITY["잠정실적"])

    period = _PERIOD_END.search(title)
    report = next((r for r in _PERIODIC_REPORTS if r in title), None)
    if period and report:
        month = int(period.group(2))
        if 1 <= month <= 12:
            return QuarterInfo(
                year=int(period.group(1)),
                quarter=(month + 2) // 3,
                priority=SOURCE_PRIORITY[report],
            )
    return None


class QuarterlyMerger:
    def __init__(self, financials: FinancialRepository, ttm: TTMAggregator):
        self._financials = financials
        self._ttm = ttm

    async def merge(self, incoming: QuarterlyFinancial) -> MergeOutcome:
        """Write the incoming row unless a higher-priority row is stored.

        The repository repeats the priority check inside the upsert, so a
        concurrent writer that got there first is still respected.
        """
        existing = await self._financials.get_quarter(
            incoming.company_id, incoming.year, incoming.quarter
        )
        if existing is not None and incoming.source_priority < existing.source_priority:
            logger.debug(
                f"Discarding {incoming.id} from {incoming.source_filing_id}: "
                f"priority {incoming.source_priority} < {existing.source_priority}"
            )
            return MergeOutcome.DISCARDED

        written = await self._financials.upsert_quarter(incoming)
        if not written:
            return MergeOutcome.DISCARDED

        await self._ttm.recompute(incoming.company_id)
        return MergeOutcome.WRITTEN

    async def merge_filing(self, filing: Filing) -> MergeOutcome:
        """Merge a stored performance filing into its quarterly slot."""
        info = parse_quarter_info(filing.title, filing.filed_at)
        if info is None:
            return MergeOutcome.NOT_MERGEABLE

        numbers: PerformanceNumbers = filing.performance_numbers()
        incoming = QuarterlyFinancial(
            company_id=filing.company_id,
            year=info.year,
            quarter=info.quarter,
            revenue=numbers.revenue,
            operating_profit=numbers.operating_profit,
            net_profit=numbers.net_profit,
            total_equity=numbers.total_equity,
            total_debt=numbers.total_debt,
            total_assets=numbers.total_assets,
            shares_outstanding=numbers.shares_outstanding,
            source_filing_id=filing.filing_id,
            source_priority=info.priority,
            updated_at=datetime.now(UTC),
        )
        return await self.merge(incoming)
