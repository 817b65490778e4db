"""Quarterly and TTM financial repository using SQLAlchemy ORM.

The quarterly upsert carries the priority predicate in SQL so that two
overlapping writers cannot replace a higher-priority row.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from filingscore.core.data_helpers import to_decimal
from filingscore.database.orm import FinancialQuarter, FinancialTTM
from filingscore.domain import QuarterlyFinancial, TTMFinancial


_QUARTER_AMOUNTS = (
    "revenue",
    "operating_profit",
    "net_profit",
    "total_equity",
    "total_debt",
    "total_assets",
)

_TTM_AMOUNTS = (
    "revenue_ttm",
    "op_profit_ttm",
    "net_profit_ttm",
    "total_equity",
    "total_debt",
)


class FinancialOrmRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # =========================================================================
    # QUARTERS
    # =========================================================================

    async def get_quarter(
        self, company_id: str, year: int, quarter: int
    ) -> QuarterlyFinancial | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(FinancialQuarter).where(
                    FinancialQuarter.company_id == company_id,
                    FinancialQuarter.year == year,
                    FinancialQuarter.quarter == quarter,
                )
            )
            row = result.scalar_one_or_none()
            return QuarterlyFinancial.model_validate(row) if row else None

    async def upsert_quarter(self, row: QuarterlyFinancial) -> bool:
        """Whole-row write, skipped when the stored priority is higher.

        Returns True when the row was inserted or replaced.
        """
        values = {
            "id": row.id,
            "company_id": row.company_id,
            "year": row.year,
            "quarter": row.quarter,
            "shares_outstanding": row.shares_outstanding,
            "source_filing_id": row.source_filing_id,
            "source_priority": row.source_priority,
            "updated_at": row.updated_at or datetime.now(UTC),
        }
        for field in _QUARTER_AMOUNTS:
            values[field] = to_decimal(getattr(row, field))

        stmt = insert(FinancialQuarter).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={key: stmt.excluded[key] for key in values if key != "id"},
            where=stmt.excluded.source_priority >= FinancialQuarter.source_priority,
        ).returning(FinancialQuarter.id)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            written = result.scalar_one_or_none() is not None
            await session.commit()
            return written

    async def latest_quarters(self, company_id: str, limit: int = 4) -> list[QuarterlyFinancial]:
        """Most recent quarters, newest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(FinancialQuarter)
                .where(FinancialQuarter.company_id == company_id)
                .order_by(FinancialQuarter.year.desc(), FinancialQuarter.quarter.desc())
                .limit(limit)
            )
            return [QuarterlyFinancial.model_validate(r) for r in result.scalars().all()]

    # =========================================================================
    # TTM
    # =========================================================================

    async def get_ttm(self, company_id: str) -> TTMFinancial | None:
        async with self._session_factory() as session:
            row = await session.get(FinancialTTM, company_id)
            return TTMFinancial.model_validate(row) if row else None

    async def save_ttm(self, ttm: TTMFinancial) -> None:
        """Replace the company's TTM row."""
        values = {
            "company_id": ttm.company_id,
            "shares_outstanding": ttm.shares_outstanding,
            "last_quarter_year": ttm.last_quarter_year,
            "last_quarter": ttm.last_quarter,
            "calculated_at": ttm.calculated_at or datetime.now(UTC),
        }
        for field in _TTM_AMOUNTS:
            values[field] = to_decimal(getattr(ttm, field))

        stmt = insert(FinancialTTM).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["company_id"],
            set_={key: stmt.excluded[key] for key in values if key != "company_id"},
        )
        async with self._session_factory() as session:
            await session.execute(stmt)
            await session.commit()
