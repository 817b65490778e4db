"""Price domain models."""

from __future__ import annotations

from datetime import date as DateType

from pydantic import BaseModel, Field


class PriceRow(BaseModel):
    """One daily close for a ticker, as delivered by a price source.

    Rows without a close price are dropped by the sources before they get
    here, so ``close`` is always set.
    """

    ticker: str = Field(..., description="Six-digit stock code")
    trade_date: DateType
    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float = Field(..., ge=0)
    volume: int | None = None
    market_cap: float | None = None
    company_name: str | None = None
    market: str | None = None

    model_config = {
        "from_attributes": True,
    }

    @property
    def price_id(self) -> str:
        return f"{self.ticker}_{self.trade_date.isoformat()}"
