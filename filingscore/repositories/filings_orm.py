"""Filing ledger repository using SQLAlchemy ORM."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from filingscore.database.orm import Filing as FilingRow
from filingscore.domain import Filing


class FilingOrmRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def exists(self, filing_id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(FilingRow.filing_id).where(FilingRow.filing_id == filing_id).limit(1)
            )
            return result.scalar_one_or_none() is not None

    async def insert(self, filing: Filing) -> bool:
        """Insert a filing. The primary key makes a concurrent duplicate a no-op."""
        values = filing.model_dump(exclude={"created_at"})
        values["category"] = filing.category.value
        async with self._session_factory() as session:
            stmt = (
                insert(FilingRow)
                .values(**values)
                .on_conflict_do_nothing(index_elements=["filing_id"])
                .returning(FilingRow.filing_id)
            )
            result = await session.execute(stmt)
            inserted = result.scalar_one_or_none() is not None
            await session.commit()
            return inserted

