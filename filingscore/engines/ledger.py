"""Filing ledger writer.

Turns a feed item into a classified, stored filing exactly once, and hands
performance filings on to the quarterly merger.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from filingscore.core.logging import get_logger
from filingscore.domain import Company, Filing, FilingCategory, FilingFeedItem
from filingscore.repositories.base import CompanyRepository, FilingRepository

from .classifier import classify, extract_numbers, sparse_numbers
from .merger import MergeOutcome, QuarterlyMerger


logger = get_logger("engines.ledger")


@dataclass
class IngestOutcome:
    """What happened to one feed item."""

    filing_id: str
    inserted: bool
    merge: MergeOutcome | None = None
    merge_error: str | None = None

    @property
    def duplicate(self) -> bool:
        return not self.inserted


def build_filing(item: FilingFeedItem) -> Filing:
    """Classify a feed item and extract its headline numbers."""
    result = classify(item.title, item.remark)
    numbers = extract_numbers(result.category, item.title)
    return Filing(
        filing_id=item.filing_id,
        company_id=item.company_id,
        ticker=item.ticker or None,
        company_name=item.company_name,
        filed_at=item.filed_date,
        category=result.category,
        subtype=result.subtype,
        title=item.title,
        extracted_numbers=sparse_numbers(numbers),
        source_url=item.source_url,
        is_correction=result.is_correction,
        created_at=datetime.now(UTC),
    )


class FilingLedger:
    def __init__(
        self,
        companies: CompanyRepository,
        filings: FilingRepository,
        merger: QuarterlyMerger,
    ):
        self._companies = companies
        self._filings = filings
        self._merger = merger

    async def ingest(self, item: FilingFeedItem) -> IngestOutcome:
        """Store a filing once; a second ingestion of the same id is a no-op.

        Merge failures are reported on the outcome and do not undo the insert.
        """
        if await self._filings.exists(item.filing_id):
            return IngestOutcome(filing_id=item.filing_id, inserted=False)

        filing = build_filing(item)

        await self._companies.ensure(
            Company(
                company_id=item.company_id,
                ticker=item.ticker or None,
                name=item.company_name,
                market=item.market,
            )
        )

        # Primary key backstop: a concurrent run may have inserted it since the check
        if not await self._filings.insert(filing):
            return IngestOutcome(filing_id=item.filing_id, inserted=False)

        outcome = IngestOutcome(filing_id=item.filing_id, inserted=True)
        if filing.category is FilingCategory.PERFORMANCE:
            try:
                outcome.merge = await self._merger.merge_filing(filing)
            except Exception as e:
                logger.warning(f"Financial merge failed for {item.filing_id}: {e}")
                outcome.merge_error = str(e)
        return outcome
