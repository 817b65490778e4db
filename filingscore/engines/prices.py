"""Daily price ingestion for the valuation batch."""

from __future__ import annotations

from datetime import date

from filingscore.core.exceptions import SourceError
from filingscore.core.logging import get_logger
from filingscore.repositories.base import CompanyRepository, PriceRepository
from filingscore.sources.krx_prices import PriceSource


logger = get_logger("engines.prices")


class PriceLedger:
    def __init__(
        self,
        prices: PriceRepository,
        companies: CompanyRepository,
        source: PriceSource,
    ):
        self._prices = prices
        self._companies = companies
        self._source = source

    async def ensure_prices(self, trade_date: date) -> int:
        """Make sure closes for ``trade_date`` are stored.

        Does nothing when the date is already loaded. Otherwise fetches every
        ticker, seeds unknown companies and upserts the rows.

        Returns:
            Number of price rows written (0 when already present)

        Raises:
            SourceError: When the source fails or returns no rows
        """
        if await self._prices.has_prices_for(trade_date):
            logger.debug(f"Prices for {trade_date} already stored")
            return 0

        rows = await self._source.fetch_daily_prices(trade_date)
        if not rows:
            raise SourceError(
                message="No price data returned from KRX source",
                details={"trade_date": trade_date.isoformat()},
            )

        seeded = await self._companies.seed_from_prices(rows)
        written = await self._prices.upsert_prices(rows)
        logger.info(f"Stored {written} prices for {trade_date} ({seeded} new companies)")
        return written
