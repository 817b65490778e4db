"""initial_schema

Creates companies, peer groups, filings, quarterly and TTM financials,
daily prices, valuation snapshots and batch runs.

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

AMOUNT = sa.Numeric(24, 2)
RATIO = sa.Numeric(14, 2)
PERCENTILE = sa.Numeric(5, 1)
PRICE = sa.Numeric(16, 2)


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=nullable,
    )


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        "companies",
        sa.Column("company_id", sa.String(20), nullable=False),
        sa.Column("ticker", sa.String(12), nullable=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("market", sa.String(20), nullable=True),
        sa.Column("industry_code", sa.String(20), nullable=True),
        sa.Column("active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("company_id", name=op.f("pk_companies")),
    )
    op.create_index("idx_companies_ticker", "companies", ["ticker"])
    op.create_index(
        "idx_companies_active",
        "companies",
        ["active"],
        postgresql_where=sa.text("active = TRUE"),
    )

    op.create_table(
        "peer_groups",
        sa.Column("peer_code", sa.String(20), nullable=False),
        sa.Column("peer_name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("peer_code", name=op.f("pk_peer_groups")),
    )

    op.create_table(
        "company_peer_map",
        sa.Column("company_id", sa.String(20), nullable=False),
        sa.Column("peer_code", sa.String(20), nullable=False),
        sa.Column("is_manual", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        _timestamp("mapped_at"),
        sa.ForeignKeyConstraint(
            ["company_id"],
            ["companies.company_id"],
            name=op.f("fk_company_peer_map_company_id_companies"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["peer_code"],
            ["peer_groups.peer_code"],
            name=op.f("fk_company_peer_map_peer_code_peer_groups"),
        ),
        sa.PrimaryKeyConstraint("company_id", name=op.f("pk_company_peer_map")),
    )
    op.create_index("idx_company_peer_map_peer", "company_peer_map", ["peer_code"])

    op.create_table(
        "filings",
        sa.Column("filing_id", sa.String(20), nullable=False),
        sa.Column("company_id", sa.String(20), nullable=False),
        sa.Column("ticker", sa.String(12), nullable=True),
        sa.Column("company_name", sa.String(200), nullable=False),
        sa.Column("filed_at", sa.Date(), nullable=False),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("subtype", sa.String(100), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("extracted_numbers", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("source_url", sa.Text(), nullable=False),
        sa.Column("is_correction", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(
            ["company_id"],
            ["companies.company_id"],
            name=op.f("fk_filings_company_id_companies"),
        ),
        sa.PrimaryKeyConstraint("filing_id", name=op.f("pk_filings")),
    )
    op.create_index("idx_filings_company_filed", "filings", ["company_id", "filed_at"])
    op.create_index(
        "idx_filings_filed_at", "filings", ["filed_at"], postgresql_ops={"filed_at": "DESC"}
    )
    op.create_index("idx_filings_category", "filings", ["category"])

    op.create_table(
        "financial_quarter",
        sa.Column("id", sa.String(40), nullable=False),
        sa.Column("company_id", sa.String(20), nullable=False),
        sa.Column("year", sa.SmallInteger(), nullable=False),
        sa.Column("quarter", sa.SmallInteger(), nullable=False),
        sa.Column("revenue", AMOUNT, nullable=True),
        sa.Column("operating_profit", AMOUNT, nullable=True),
        sa.Column("net_profit", AMOUNT, nullable=True),
        sa.Column("total_equity", AMOUNT, nullable=True),
        sa.Column("total_debt", AMOUNT, nullable=True),
        sa.Column("total_assets", AMOUNT, nullable=True),
        sa.Column("shares_outstanding", sa.BigInteger(), nullable=True),
        sa.Column("source_filing_id", sa.String(20), nullable=True),
        sa.Column("source_priority", sa.SmallInteger(), nullable=False),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "quarter BETWEEN 1 AND 4", name=op.f("ck_financial_quarter_quarter_range")
        ),
        sa.ForeignKeyConstraint(
            ["company_id"],
            ["companies.company_id"],
            name=op.f("fk_financial_quarter_company_id_companies"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_financial_quarter")),
        sa.UniqueConstraint("company_id", "year", "quarter", name="uq_financial_quarter_period"),
    )
    op.create_index(
        "idx_financial_quarter_recent", "financial_quarter", ["company_id", "year", "quarter"]
    )

    op.create_table(
        "financial_ttm",
        sa.Column("company_id", sa.String(20), nullable=False),
        sa.Column("revenue_ttm", AMOUNT, nullable=True),
        sa.Column("op_profit_ttm", AMOUNT, nullable=True),
        sa.Column("net_profit_ttm", AMOUNT, nullable=True),
        sa.Column("total_equity", AMOUNT, nullable=True),
        sa.Column("total_debt", AMOUNT, nullable=True),
        sa.Column("shares_outstanding", sa.BigInteger(), nullable=True),
        sa.Column("last_quarter_year", sa.SmallInteger(), nullable=False),
        sa.Column("last_quarter", sa.SmallInteger(), nullable=False),
        _timestamp("calculated_at"),
        sa.ForeignKeyConstraint(
            ["company_id"],
            ["companies.company_id"],
            name=op.f("fk_financial_ttm_company_id_companies"),
        ),
        sa.PrimaryKeyConstraint("company_id", name=op.f("pk_financial_ttm")),
    )

    op.create_table(
        "price_daily",
        sa.Column("price_id", sa.String(40), nullable=False),
        sa.Column("ticker", sa.String(12), nullable=False),
        sa.Column("trade_date", sa.Date(), nullable=False),
        sa.Column("open", PRICE, nullable=True),
        sa.Column("high", PRICE, nullable=True),
        sa.Column("low", PRICE, nullable=True),
        sa.Column("close", PRICE, nullable=False),
        sa.Column("volume", sa.BigInteger(), nullable=True),
        sa.Column("market_cap", AMOUNT, nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("price_id", name=op.f("pk_price_daily")),
        sa.UniqueConstraint("ticker", "trade_date", name="uq_price_daily_ticker_date"),
    )
    op.create_index("idx_price_daily_trade_date", "price_daily", ["trade_date"])
    op.create_index(
        "idx_price_daily_ticker_date",
        "price_daily",
        ["ticker", "trade_date"],
        postgresql_ops={"trade_date": "DESC"},
    )

    op.create_table(
        "valuation_snapshot",
        sa.Column("id", sa.String(40), nullable=False),
        sa.Column("company_id", sa.String(20), nullable=False),
        sa.Column("snap_date", sa.Date(), nullable=False),
        sa.Column("price", PRICE, nullable=True),
        sa.Column("market_cap", AMOUNT, nullable=True),
        sa.Column("per", RATIO, nullable=True),
        sa.Column("pbr", RATIO, nullable=True),
        sa.Column("psr", RATIO, nullable=True),
        sa.Column("roe", RATIO, nullable=True),
        sa.Column("opm", RATIO, nullable=True),
        sa.Column("debt_ratio", RATIO, nullable=True),
        sa.Column("peer_code", sa.String(20), nullable=True),
        sa.Column("per_percentile", PERCENTILE, nullable=True),
        sa.Column("pbr_percentile", PERCENTILE, nullable=True),
        sa.Column("psr_percentile", PERCENTILE, nullable=True),
        sa.Column("roe_percentile", PERCENTILE, nullable=True),
        sa.Column("opm_percentile", PERCENTILE, nullable=True),
        sa.Column("score", sa.SmallInteger(), nullable=False),
        sa.Column("band_label", sa.String(10), nullable=False),
        _timestamp("created_at"),
        sa.CheckConstraint(
            "score BETWEEN 0 AND 100", name=op.f("ck_valuation_snapshot_score_range")
        ),
        sa.ForeignKeyConstraint(
            ["company_id"],
            ["companies.company_id"],
            name=op.f("fk_valuation_snapshot_company_id_companies"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_valuation_snapshot")),
        sa.UniqueConstraint(
            "company_id", "snap_date", name="uq_valuation_snapshot_company_date"
        ),
    )
    op.create_index("idx_valuation_snapshot_date", "valuation_snapshot", ["snap_date"])
    op.create_index(
        "idx_valuation_snapshot_peer", "valuation_snapshot", ["snap_date", "peer_code"]
    )

    op.create_table(
        "batch_runs",
        sa.Column("run_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("batch_type", sa.String(30), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("items_processed", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("items_failed", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.CheckConstraint(
            "status IN ('running', 'success', 'partial', 'failed')",
            name=op.f("ck_batch_runs_status_valid"),
        ),
        sa.PrimaryKeyConstraint("run_id", name=op.f("pk_batch_runs")),
    )
    op.create_index("idx_batch_runs_type_status", "batch_runs", ["batch_type", "status"])
    op.create_index(
        "idx_batch_runs_started", "batch_runs", ["started_at"], postgresql_ops={"started_at": "DESC"}
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("batch_runs")
    op.drop_table("valuation_snapshot")
    op.drop_table("price_daily")
    op.drop_table("financial_ttm")
    op.drop_table("financial_quarter")
    op.drop_table("filings")
    op.drop_table("company_peer_map")
    op.drop_table("peer_groups")
    op.drop_table("companies")
