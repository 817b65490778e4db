"""SQLAlchemy ORM models for filingscore.

This module defines all database tables using SQLAlchemy 2.0 ORM style.
Uses async support via asyncpg driver.

Usage:
    from filingscore.database.orm import Company, Filing
    from filingscore.database.connection import get_session

    async with get_session() as session:
        company = await session.get(Company, "00126380")
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# Naming convention for constraints and indexes (deterministic names for Alembic)
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# KRW amounts reach 10^15; keep two decimals for fractional 억 values
AMOUNT = Numeric(24, 2)
RATIO = Numeric(14, 2)
PERCENTILE = Numeric(5, 1)


class Base(DeclarativeBase):
    """Base class for all ORM models with naming convention."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


# =============================================================================
# COMPANIES & PEER GROUPS
# =============================================================================


class Company(Base):
    """Listed company, created lazily from filings or price rows."""
    __tablename__ = "companies"

    company_id: Mapped[str] = mapped_column(String(20), primary_key=True)
    ticker: Mapped[str | None] = mapped_column(String(12))
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    market: Mapped[str | None] = mapped_column(String(20))
    industry_code: Mapped[str | None] = mapped_column(String(20))
    active: Mapped[bool] = mapped_column(Boolean, default=True, server_default=text("true"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_companies_ticker", "ticker"),
        Index("idx_companies_active", "active", postgresql_where=text("active = TRUE")),
    )


class PeerGroup(Base):
    """Peer group catalogue entry."""
    __tablename__ = "peer_groups"

    peer_code: Mapped[str] = mapped_column(String(20), primary_key=True)
    peer_name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)


class CompanyPeerMap(Base):
    """Company to peer group assignment. Manual rows are never replaced."""
    __tablename__ = "company_peer_map"

    company_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("companies.company_id", ondelete="CASCADE"), primary_key=True
    )
    peer_code: Mapped[str] = mapped_column(
        String(20), ForeignKey("peer_groups.peer_code"), nullable=False
    )
    is_manual: Mapped[bool] = mapped_column(Boolean, default=False, server_default=text("false"))
    mapped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_company_peer_map_peer", "peer_code"),
    )


# =============================================================================
# FILINGS
# =============================================================================


class Filing(Base):
    """Classified regulatory filing. One row per receipt number."""
    __tablename__ = "filings"

    filing_id: Mapped[str] = mapped_column(String(20), primary_key=True)
    company_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("companies.company_id"), nullable=False
    )
    ticker: Mapped[str | None] = mapped_column(String(12))
    company_name: Mapped[str] = mapped_column(String(200), nullable=False)
    filed_at: Mapped[date] = mapped_column(Date, nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    subtype: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    extracted_numbers: Mapped[dict | None] = mapped_column(JSONB)
    source_url: Mapped[str] = mapped_column(Text, nullable=False)
    is_correction: Mapped[bool] = mapped_column(Boolean, default=False, server_default=text("false"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_filings_company_filed", "company_id", "filed_at"),
        Index("idx_filings_filed_at", "filed_at", postgresql_ops={"filed_at": "DESC"}),
        Index("idx_filings_category", "category"),
    )


# =============================================================================
# FINANCIALS
# =============================================================================


class FinancialQuarter(Base):
    """Quarterly financial facts resolved by source priority."""
    __tablename__ = "financial_quarter"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    company_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("companies.company_id"), nullable=False
    )
    year: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    quarter: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    revenue: Mapped[Decimal | None] = mapped_column(AMOUNT)
    operating_profit: Mapped[Decimal | None] = mapped_column(AMOUNT)
    net_profit: Mapped[Decimal | None] = mapped_column(AMOUNT)
    total_equity: Mapped[Decimal | None] = mapped_column(AMOUNT)
    total_debt: Mapped[Decimal | None] = mapped_column(AMOUNT)
    total_assets: Mapped[Decimal | None] = mapped_column(AMOUNT)
    shares_outstanding: Mapped[int | None] = mapped_column(BigInteger)
    source_filing_id: Mapped[str | None] = mapped_column(String(20))
    source_priority: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("company_id", "year", "quarter", name="uq_financial_quarter_period"),
        CheckConstraint("quarter BETWEEN 1 AND 4", name="quarter_range"),
        Index("idx_financial_quarter_recent", "company_id", "year", "quarter"),
    )


class FinancialTTM(Base):
    """Trailing-twelve-month rollup, replaced wholesale on recompute."""
    __tablename__ = "financial_ttm"

    company_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("companies.company_id"), primary_key=True
    )
    revenue_ttm: Mapped[Decimal | None] = mapped_column(AMOUNT)
    op_profit_ttm: Mapped[Decimal | None] = mapped_column(AMOUNT)
    net_profit_ttm: Mapped[Decimal | None] = mapped_column(AMOUNT)
    total_equity: Mapped[Decimal | None] = mapped_column(AMOUNT)
    total_debt: Mapped[Decimal | None] = mapped_column(AMOUNT)
    shares_outstanding: Mapped[int | None] = mapped_column(BigInteger)
    last_quarter_year: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    last_quarter: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    calculated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# =============================================================================
# PRICES & VALUATION
# =============================================================================


class PriceDaily(Base):
    """Daily close per ticker. Last write wins per (ticker, trade_date)."""
    __tablename__ = "price_daily"

    price_id: Mapped[str] = mapped_column(String(40), primary_key=True)
    ticker: Mapped[str] = mapped_column(String(12), nullable=False)
    trade_date: Mapped[date] = mapped_column(Date, nullable=False)
    open: Mapped[Decimal | None] = mapped_column(Numeric(16, 2))
    high: Mapped[Decimal | None] = mapped_column(Numeric(16, 2))
    low: Mapped[Decimal | None] = mapped_column(Numeric(16, 2))
    close: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    volume: Mapped[int | None] = mapped_column(BigInteger)
    market_cap: Mapped[Decimal | None] = mapped_column(AMOUNT)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("ticker", "trade_date", name="uq_price_daily_ticker_date"),
        Index("idx_price_daily_trade_date", "trade_date"),
        Index("idx_price_daily_ticker_date", "ticker", "trade_date", postgresql_ops={"trade_date": "DESC"}),
    )


class ValuationSnapshot(Base):
    """Daily valuation snapshot. Immutable once written."""
    __tablename__ = "valuation_snapshot"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    company_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("companies.company_id"), nullable=False
    )
    snap_date: Mapped[date] = mapped_column(Date, nullable=False)
    price: Mapped[Decimal | None] = mapped_column(Numeric(16, 2))
    market_cap: Mapped[Decimal | None] = mapped_column(AMOUNT)
    per: Mapped[Decimal | None] = mapped_column(RATIO)
    pbr: Mapped[Decimal | None] = mapped_column(RATIO)
    psr: Mapped[Decimal | None] = mapped_column(RATIO)
    roe: Mapped[Decimal | None] = mapped_column(RATIO)
    opm: Mapped[Decimal | None] = mapped_column(RATIO)
    debt_ratio: Mapped[Decimal | None] = mapped_column(RATIO)
    peer_code: Mapped[str | None] = mapped_column(String(20))
    per_percentile: Mapped[Decimal | None] = mapped_column(PERCENTILE)
    pbr_percentile: Mapped[Decimal | None] = mapped_column(PERCENTILE)
    psr_percentile: Mapped[Decimal | None] = mapped_column(PERCENTILE)
    roe_percentile: Mapped[Decimal | None] = mapped_column(PERCENTILE)
    opm_percentile: Mapped[Decimal | None] = mapped_column(PERCENTILE)
    score: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    band_label: Mapped[str] = mapped_column(String(10), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("company_id", "snap_date", name="uq_valuation_snapshot_company_date"),
        CheckConstraint("score BETWEEN 0 AND 100", name="score_range"),
        Index("idx_valuation_snapshot_date", "snap_date"),
        Index("idx_valuation_snapshot_peer", "snap_date", "peer_code"),
    )


# =============================================================================
# BATCH RUNS
# =============================================================================


class BatchRun(Base):
    """Batch execution record, opened running and closed exactly once."""
    __tablename__ = "batch_runs"

    run_id: Mapped[int] = mapped_column(primary_key=True)
    batch_type: Mapped[str] = mapped_column(String(30), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="running")
    items_processed: Mapped[int] = mapped_column(Integer, default=0, server_default=text("0"))
    items_failed: Mapped[int] = mapped_column(Integer, default=0, server_default=text("0"))
    error_message: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        CheckConstraint(
            "status IN ('running', 'success', 'partial', 'failed')",
            name="status_valid",
        ),
        Index("idx_batch_runs_type_status", "batch_type", "status"),
        Index("idx_batch_runs_started", "started_at", postgresql_ops={"started_at": "DESC"}),
    )
