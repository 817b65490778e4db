"""Peer group catalogue and company mapping repository."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from filingscore.database.orm import CompanyPeerMap
from filingscore.database.orm import PeerGroup as PeerGroupRow
from filingscore.domain import PeerGroup, PeerMapping


class PeerOrmRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def upsert_groups(self, groups: Sequence[PeerGroup]) -> None:
        if not groups:
            return
        stmt = insert(PeerGroupRow).values([g.model_dump() for g in groups])
        stmt = stmt.on_conflict_do_update(
            index_elements=["peer_code"],
            set_={
                "peer_name": stmt.excluded.peer_name,
                "description": stmt.excluded.description,
            },
        )
        async with self._session_factory() as session:
            await session.execute(stmt)
            await session.commit()

    async def get_mappings(self) -> dict[str, PeerMapping]:
        async with self._session_factory() as session:
            result = await session.execute(select(CompanyPeerMap))
            return {
                row.company_id: PeerMapping.model_validate(row)
                for row in result.scalars().all()
            }

    async def insert_auto_mappings(self, mappings: Sequence[PeerMapping]) -> int:
        """Insert automatic mappings. Any existing row (manual or not) is kept."""
        if not mappings:
            return 0
        values = [
            {
                "company_id": m.company_id,
                "peer_code": m.peer_code,
                "is_manual": False,
            }
            for m in mappings
        ]
        async with self._session_factory() as session:
            stmt = (
                insert(CompanyPeerMap)
                .values(values)
                .on_conflict_do_nothing(index_elements=["company_id"])
                .returning(CompanyPeerMap.company_id)
            )
            result = await session.execute(stmt)
            inserted = len(result.scalars().all())
            await session.commit()
            return inserted
