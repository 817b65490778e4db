"""Builders for domain objects used across tests."""

from __future__ import annotations

from datetime import date

from filingscore.domain import FilingFeedItem, PriceRow, QuarterlyFinancial


def make_feed_item(
    filing_id: str = "20240514000123",
    title: str = "2024년 1분기보고서",
    *,
    company_id: str = "00126380",
    ticker: str | None = "005930",
    company_name: str = "삼성전자",
    filed_at: str = "20240514",
    remark: str = "",
    exchange_class: str = "Y",
) -> FilingFeedItem:
    return FilingFeedItem(
        filing_id=filing_id,
        company_id=company_id,
        ticker=ticker,
        company_name=company_name,
        title=title,
        filed_at=filed_at,
        remark=remark,
        exchange_class=exchange_class,
    )


def make_quarter(
    year: int,
    quarter: int,
    *,
    company_id: str = "00126380",
    priority: int = 2,
    revenue: float | None = None,
    operating_profit: float | None = None,
    net_profit: float | None = None,
    total_equity: float | None = None,
    total_debt: float | None = None,
    shares_outstanding: int | None = None,
    source_filing_id: str | None = None,
) -> QuarterlyFinancial:
    return QuarterlyFinancial(
        company_id=company_id,
        year=year,
        quarter=quarter,
        revenue=revenue,
        operating_profit=operating_profit,
        net_profit=net_profit,
        total_equity=total_equity,
        total_debt=total_debt,
        shares_outstanding=shares_outstanding,
        source_filing_id=source_filing_id,
        source_priority=priority,
    )


def make_price(ticker: str, trade_date: date, close: float, market_cap: float | None = None) -> PriceRow:
    return PriceRow(ticker=ticker, trade_date=trade_date, close=close, market_cap=market_cap)
