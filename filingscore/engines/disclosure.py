"""Disclosure polling: fetch the feed and write each filing to the ledger."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date

from filingscore.core.logging import get_logger
from filingscore.domain import (
    TIME_BUDGET_EXCEEDED,
    BatchBudget,
    BatchResult,
    FilingFeedItem,
)
from filingscore.sources.opendart import OpenDartClient

from .ledger import FilingLedger


logger = get_logger("engines.disclosure")


class DisclosureEngine:
    """Feeds OpenDART disclosures through the filing ledger.

    Items are processed one at a time; one item's failure is recorded on
    the result and the rest continue.
    """

    def __init__(
        self,
        client: OpenDartClient,
        ledger: FilingLedger,
        tracked_classes: Sequence[str] = ("Y", "K", "N"),
    ):
        self._client = client
        self._ledger = ledger
        self._tracked = frozenset(tracked_classes)

    async def poll_new_disclosures(
        self,
        result: BatchResult,
        budget: BatchBudget,
        *,
        days: int = 1,
        max_pages: int = 3,
    ) -> BatchResult:
        """Ingest filings from the last ``days`` days.

        Raises:
            SourceError: When the feed cannot be fetched
        """
        items = await self._client.get_recent_disclosures(days=days, max_pages=max_pages)
        return await self.process_items(items, result, budget)

    async def poll_disclosures_for_range(
        self,
        start: date,
        end: date,
        result: BatchResult,
        budget: BatchBudget,
        *,
        max_pages: int = 10,
    ) -> BatchResult:
        """Backfill filings between two dates."""
        items = await self._client.get_disclosures_for_range(start, end, max_pages=max_pages)
        return await self.process_items(items, result, budget)

    async def process_items(
        self,
        items: Iterable[FilingFeedItem],
        result: BatchResult,
        budget: BatchBudget,
    ) -> BatchResult:
        for item in items:
            if budget.exceeded():
                logger.warning(
                    f"Runtime budget of {budget.runtime_budget_ms}ms exceeded, stopping"
                )
                result.errors.append(TIME_BUDGET_EXCEEDED)
                break

            if item.exchange_class not in self._tracked:
                result.skipped += 1
                continue

            try:
                outcome = await self._ledger.ingest(item)
            except Exception as e:
                logger.warning(f"Failed to ingest {item.filing_id}: {e}")
                result.errors.append(f"{item.filing_id}: {e}")
                continue

            if outcome.duplicate:
                result.skipped += 1
                continue

            result.processed += 1
            if outcome.merge_error:
                result.errors.append(f"{item.filing_id}: merge failed: {outcome.merge_error}")

        return result
