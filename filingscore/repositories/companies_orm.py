"""Company repository using SQLAlchemy ORM.

Companies are created lazily (insert-if-absent) from filings and price
rows and are never overwritten by those seeds.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from filingscore.core.logging import get_logger
from filingscore.database.orm import Company as CompanyRow
from filingscore.domain import PLACEHOLDER_PREFIX, Company, PriceRow, placeholder_company_id


logger = get_logger("repositories.companies_orm")


class CompanyOrmRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, company_id: str) -> Company | None:
        async with self._session_factory() as session:
            row = await session.get(CompanyRow, company_id)
            return Company.model_validate(row) if row else None

    async def ensure(self, company: Company) -> bool:
        """Insert the company unless its id already exists.

        A new filer that names a ticker deactivates the price-seeded
        placeholder for that ticker, so one stock is never valued twice.
        """
        async with self._session_factory() as session:
            stmt = (
                insert(CompanyRow)
                .values(**company.model_dump())
                .on_conflict_do_nothing(index_elements=["company_id"])
                .returning(CompanyRow.company_id)
            )
            result = await session.execute(stmt)
            created = result.scalar_one_or_none() is not None
            if (
                created
                and company.ticker
                and not company.company_id.startswith(PLACEHOLDER_PREFIX)
            ):
                retired = await session.execute(
                    update(CompanyRow)
                    .where(
                        CompanyRow.company_id == placeholder_company_id(company.ticker),
                        CompanyRow.active.is_(True),
                    )
                    .values(active=False)
                )
                if retired.rowcount:
                    logger.info(
                        f"Deactivated {placeholder_company_id(company.ticker)} in favour of "
                        f"{company.company_id}"
                    )
            await session.commit()
            return created

    async def seed_from_prices(self, rows: Sequence[PriceRow]) -> int:
        """Create placeholder KRX_{ticker} companies for named tickers not yet tracked.

        A ticker already owned by any company (e.g. a DART corp_code row) is
        left alone.
        """
        candidates: dict[str, PriceRow] = {}
        for row in rows:
            if row.ticker and row.company_name:
                candidates.setdefault(row.ticker, row)
        if not candidates:
            return 0

        async with self._session_factory() as session:
            result = await session.execute(
                select(CompanyRow.ticker).where(CompanyRow.ticker.in_(list(candidates)))
            )
            known = {ticker for ticker in result.scalars().all()}

            values = [
                {
                    "company_id": placeholder_company_id(ticker),
                    "ticker": ticker,
                    "name": row.company_name,
                    "market": row.market or "KOSPI",
                    "active": True,
                }
                for ticker, row in candidates.items()
                if ticker not in known
            ]
            if not values:
                return 0

            created = 0
            for start in range(0, len(values), 500):
                stmt = (
                    insert(CompanyRow)
                    .values(values[start:start + 500])
                    .on_conflict_do_nothing(index_elements=["company_id"])
                    .returning(CompanyRow.company_id)
                )
                result = await session.execute(stmt)
                created += len(result.scalars().all())
            await session.commit()

        logger.info(f"Seeded {created} companies from price rows")
        return created

    async def list_active_with_ticker(self, limit: int | None = None) -> list[Company]:
        async with self._session_factory() as session:
            stmt = (
                select(CompanyRow)
                .where(CompanyRow.active.is_(True), CompanyRow.ticker.isnot(None))
                .order_by(CompanyRow.company_id)
            )
            if limit is not None:
                stmt = stmt.limit(limit)
            result = await session.execute(stmt)
            return [Company.model_validate(row) for row in result.scalars().all()]
