"""Daily price repository using SQLAlchemy ORM.

Usage:
    prices = PriceOrmRepository(session_factory)
    if not await prices.has_prices_for(trade_date):
        await prices.upsert_prices(rows)
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from filingscore.core.data_helpers import to_decimal
from filingscore.core.logging import get_logger
from filingscore.database.orm import PriceDaily
from filingscore.domain import PriceRow


logger = get_logger("repositories.prices_orm")

# Rows per INSERT statement (asyncpg caps bind parameters at 32767)
UPSERT_CHUNK = 1000


class PriceOrmRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def has_prices_for(self, trade_date: date) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(PriceDaily.price_id).where(PriceDaily.trade_date == trade_date).limit(1)
            )
            return result.scalar_one_or_none() is not None

    async def upsert_prices(self, rows: Sequence[PriceRow]) -> int:
        """Insert or replace prices. Last write wins per (ticker, trade_date)."""
        # A later row for the same key replaces an earlier one within the batch too
        deduped: dict[str, PriceRow] = {row.price_id: row for row in rows}
        values = [
            {
                "price_id": row.price_id,
                "ticker": row.ticker,
                "trade_date": row.trade_date,
                "open": to_decimal(row.open),
                "high": to_decimal(row.high),
                "low": to_decimal(row.low),
                "close": to_decimal(row.close),
                "volume": row.volume,
                "market_cap": to_decimal(row.market_cap),
            }
            for row in deduped.values()
        ]
        if not values:
            return 0

        async with self._session_factory() as session:
            for start in range(0, len(values), UPSERT_CHUNK):
                stmt = insert(PriceDaily).values(values[start:start + UPSERT_CHUNK])
                stmt = stmt.on_conflict_do_update(
                    index_elements=["price_id"],
                    set_={
                        "open": stmt.excluded.open,
                        "high": stmt.excluded.high,
                        "low": stmt.excluded.low,
                        "close": stmt.excluded.close,
                        "volume": stmt.excluded.volume,
                        "market_cap": stmt.excluded.market_cap,
                        "created_at": func.now(),
                    },
                )
                await session.execute(stmt)
            await session.commit()

        logger.info(f"Upserted {len(values)} price rows")
        return len(values)

    async def latest_price(self, ticker: str, on_or_before: date) -> PriceRow | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(PriceDaily)
                .where(PriceDaily.ticker == ticker, PriceDaily.trade_date <= on_or_before)
                .order_by(PriceDaily.trade_date.desc())
                .limit(1)
            )
            row = result.scalar_one_or_none()
            return PriceRow.model_validate(row) if row else None
