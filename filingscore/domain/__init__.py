"""Domain models for strongly-typed data throughout the application.

Pydantic models passed between sources, engines and repositories.

Usage:
    from filingscore.domain import FilingFeedItem, QuarterlyFinancial

    item = FilingFeedItem(filing_id="20240514000123", company_id="00126380", ...)
    data = item.model_dump()
"""

from filingscore.domain.batch import (
    TIME_BUDGET_EXCEEDED,
    BatchBudget,
    BatchResult,
    BatchRun,
    BatchStatus,
    BatchType,
)
from filingscore.domain.company import (
    PLACEHOLDER_PREFIX,
    Company,
    PeerGroup,
    PeerMapping,
    placeholder_company_id,
)
from filingscore.domain.filing import (
    CapitalNumbers,
    Classification,
    ExtractedNumbers,
    Filing,
    FilingCategory,
    FilingFeedItem,
    OrderContractNumbers,
    PerformanceNumbers,
    ShareholderReturnNumbers,
)
from filingscore.domain.financials import (
    QuarterInfo,
    QuarterlyFinancial,
    TTMFinancial,
    quarter_id,
)
from filingscore.domain.price import PriceRow
from filingscore.domain.valuation import (
    BandLabel,
    Percentiles,
    SnapshotDraft,
    ValuationMetrics,
    ValuationSnapshot,
)

__all__ = [
    # Batch
    "TIME_BUDGET_EXCEEDED",
    "BatchBudget",
    "BatchResult",
    "BatchRun",
    "BatchStatus",
    "BatchType",
    # Company
    "PLACEHOLDER_PREFIX",
    "Company",
    "PeerGroup",
    "PeerMapping",
    "placeholder_company_id",
    # Filing
    "CapitalNumbers",
    "Classification",
    "ExtractedNumbers",
    "Filing",
    "FilingCategory",
    "FilingFeedItem",
    "OrderContractNumbers",
    "PerformanceNumbers",
    "ShareholderReturnNumbers",
    # Financials
    "QuarterInfo",
    "QuarterlyFinancial",
    "TTMFinancial",
    "quarter_id",
    # Price
    "PriceRow",
    # Valuation
    "BandLabel",
    "Percentiles",
    "SnapshotDraft",
    "ValuationMetrics",
    "ValuationSnapshot",
]
