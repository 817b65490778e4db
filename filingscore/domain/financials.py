"""Financial statement domain models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class QuarterInfo(BaseModel):
    """Fiscal period a performance filing reports on, with its source priority."""

    year: int
    quarter: int = Field(..., ge=1, le=4)
    priority: int = Field(..., ge=1, le=3)


class QuarterlyFinancial(BaseModel):
    """Financial facts for one (company, year, quarter)."""

    company_id: str
    year: int
    quarter: int = Field(..., ge=1, le=4)
    revenue: float | None = None
    operating_profit: float | None = None
    net_profit: float | None = None
    total_equity: float | None = None
    total_debt: float | None = None
    total_assets: float | None = None
    shares_outstanding: int | None = None
    source_filing_id: str | None = None
    source_priority: int
    updated_at: datetime | None = None

    model_config = {
        "from_attributes": True,
    }

    @property
    def id(self) -> str:
        return quarter_id(self.company_id, self.year, self.quarter)


class TTMFinancial(BaseModel):
    """Trailing-twelve-month rollup for one company."""

    company_id: str
    revenue_ttm: float | None = None
    op_profit_ttm: float | None = None
    net_profit_ttm: float | None = None
    total_equity: float | None = None
    total_debt: float | None = None
    shares_outstanding: int | None = None
    last_quarter_year: int
    last_quarter: int
    calculated_at: datetime | None = None

    model_config = {
        "from_attributes": True,
    }


def quarter_id(company_id: str, year: int, quarter: int) -> str:
    """Natural id of a quarterly row, e.g. 00126380_2024Q1."""
    return f"{company_id}_{year}Q{quarter}"
