"""Valuation snapshot repository using SQLAlchemy ORM."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from filingscore.core.data_helpers import to_decimal
from filingscore.database.orm import ValuationSnapshot as SnapshotRow
from filingscore.domain import ValuationSnapshot


_DECIMAL_FIELDS = (
    "price",
    "market_cap",
    "per",
    "pbr",
    "psr",
    "roe",
    "opm",
    "debt_ratio",
    "per_percentile",
    "pbr_percentile",
    "psr_percentile",
    "roe_percentile",
    "opm_percentile",
)

SAVE_CHUNK = 200


def _to_values(snapshot: ValuationSnapshot) -> dict:
    values = snapshot.model_dump(exclude={"created_at"})
    for field in _DECIMAL_FIELDS:
        values[field] = to_decimal(values[field])
    values["band_label"] = snapshot.band_label.value
    return values


class ValuationOrmRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def exists_for_date(self, snap_date: date) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(SnapshotRow.id).where(SnapshotRow.snap_date == snap_date).limit(1)
            )
            return result.scalar_one_or_none() is not None

    async def save_snapshots(self, snapshots: Sequence[ValuationSnapshot]) -> int:
        """Insert snapshots. Rows already stored for the same day are left untouched."""
        values = [_to_values(s) for s in snapshots]
        if not values:
            return 0

        saved = 0
        async with self._session_factory() as session:
            for start in range(0, len(values), SAVE_CHUNK):
                stmt = (
                    insert(SnapshotRow)
                    .values(values[start:start + SAVE_CHUNK])
                    .on_conflict_do_nothing(index_elements=["id"])
                    .returning(SnapshotRow.id)
                )
                result = await session.execute(stmt)
                saved += len(result.scalars().all())
            await session.commit()
        return saved

