"""Filing domain models.

Feed items as they arrive from the disclosure list, the classification
result, per-category extracted numbers and the stored filing.
"""

from __future__ import annotations

from datetime import date as DateType
from datetime import datetime
from enum import Enum
from typing import Union

from pydantic import BaseModel, Field


DART_VIEWER_URL = "https://dart.fss.or.kr/dsaf001/main.do?rcpNo={filing_id}"

# DART corp_cls → market name
EXCHANGE_MARKETS: dict[str, str] = {
    "Y": "KOSPI",
    "K": "KOSDAQ",
    "N": "KONEX",
}


class FilingCategory(str, Enum):
    """Closed set of filing categories, stored by their Korean label."""

    PERFORMANCE = "실적"
    ORDER_CONTRACT = "수주계약"
    CAPITAL = "자본"
    SHAREHOLDER_RETURN = "주주가치"
    GOVERNANCE = "지배구조"
    RISK = "리스크"
    OTHER = "기타"


class FilingFeedItem(BaseModel):
    """One row of the upstream disclosure list."""

    filing_id: str = Field(..., description="Receipt number (rcept_no)")
    company_id: str = Field(..., description="DART corp_code")
    ticker: str | None = Field(None, description="Six-digit stock code")
    company_name: str
    title: str = Field(..., description="Report name (report_nm)")
    filed_at: str = Field(..., pattern=r"^\d{8}$", description="Filing date as YYYYMMDD")
    remark: str = Field(default="", description="DART remark flags (rm)")
    exchange_class: str = Field(default="", description="corp_cls: Y, K, N, E")

    @property
    def filed_date(self) -> DateType:
        """Filing date parsed from YYYYMMDD."""
        return datetime.strptime(self.filed_at, "%Y%m%d").date()

    @property
    def market(self) -> str | None:
        return EXCHANGE_MARKETS.get(self.exchange_class)

    @property
    def source_url(self) -> str:
        return DART_VIEWER_URL.format(filing_id=self.filing_id)


class Classification(BaseModel):
    """Result of classifying a filing title."""

    category: FilingCategory
    subtype: str
    is_correction: bool = False


# =============================================================================
# EXTRACTED NUMBERS (absent ≠ zero: unmatched fields stay None)
# =============================================================================


class PerformanceNumbers(BaseModel):
    """Numbers pulled from earnings and periodic report titles."""

    revenue: float | None = None
    operating_profit: float | None = None
    net_profit: float | None = None
    revenue_yoy: float | None = Field(None, description="Revenue change vs prior year, %")
    total_equity: float | None = None
    total_debt: float | None = None
    total_assets: float | None = None
    shares_outstanding: int | None = None


class OrderContractNumbers(BaseModel):
    contract_amount: float | None = None
    contract_ratio: float | None = Field(None, description="Contract size vs revenue, %")


class ShareholderReturnNumbers(BaseModel):
    dividend_per_share: float | None = None
    dividend_yield: float | None = None


class CapitalNumbers(BaseModel):
    capital_amount: float | None = None


ExtractedNumbers = Union[
    PerformanceNumbers,
    OrderContractNumbers,
    ShareholderReturnNumbers,
    CapitalNumbers,
]


class Filing(BaseModel):
    """A classified filing as stored in the ledger."""

    filing_id: str
    company_id: str
    ticker: str | None = None
    company_name: str
    filed_at: DateType
    category: FilingCategory
    subtype: str
    title: str
    extracted_numbers: dict[str, float | int] | None = Field(
        None, description="Sparse map of extracted fields, None when nothing matched"
    )
    source_url: str
    is_correction: bool = False
    created_at: datetime | None = None

    model_config = {
        "from_attributes": True,
    }

    def performance_numbers(self) -> PerformanceNumbers:
        """Extracted numbers viewed as performance fields."""
        return PerformanceNumbers(**(self.extracted_numbers or {}))
