"""Batch run repository using SQLAlchemy ORM.

Stores the running/success/partial/failed lifecycle of each batch
invocation. ``close`` only touches rows still marked running, so a run that
was force-expired by a newer invocation keeps its failed status.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from filingscore.core.logging import get_logger
from filingscore.database.orm import BatchRun as BatchRunRow
from filingscore.domain import BatchRun, BatchStatus


logger = get_logger("repositories.batch_runs_orm")


class BatchRunOrmRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def expire_stale(
        self, batch_type: str, started_before: datetime, message: str
    ) -> int:
        """Mark running rows of this type started before the cutoff as failed.

        Returns:
            Number of rows expired
        """
        async with self._session_factory() as session:
            result = await session.execute(
                update(BatchRunRow)
                .where(
                    BatchRunRow.batch_type == batch_type,
                    BatchRunRow.status == BatchStatus.RUNNING.value,
                    BatchRunRow.started_at < started_before,
                )
                .values(
                    status=BatchStatus.FAILED.value,
                    finished_at=datetime.now(UTC),
                    error_message=message,
                )
                .returning(BatchRunRow.run_id)
            )
            expired = len(result.scalars().all())
            await session.commit()
            return expired

    async def create(self, batch_type: str, started_at: datetime) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                insert(BatchRunRow)
                .values(
                    batch_type=batch_type,
                    started_at=started_at,
                    status=BatchStatus.RUNNING.value,
                    items_processed=0,
                    items_failed=0,
                )
                .returning(BatchRunRow.run_id)
            )
            run_id = result.scalar_one()
            await session.commit()
            return run_id

    async def close(
        self,
        run_id: int,
        status: BatchStatus,
        items_processed: int,
        items_failed: int,
        error_message: str | None,
    ) -> None:
        async with self._session_factory() as session:
            result = await session.execute(
                update(BatchRunRow)
                .where(
                    BatchRunRow.run_id == run_id,
                    BatchRunRow.status == BatchStatus.RUNNING.value,
                )
                .values(
                    status=status.value,
                    finished_at=datetime.now(UTC),
                    items_processed=items_processed,
                    items_failed=items_failed,
                    error_message=error_message,
                )
            )
            await session.commit()
            if result.rowcount == 0:
                logger.warning(f"Batch run {run_id} was already closed")

    async def recent(self, limit: int = 10) -> list[BatchRun]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(BatchRunRow).order_by(BatchRunRow.started_at.desc()).limit(limit)
            )
            return [BatchRun.model_validate(r) for r in result.scalars().all()]

    async def last_success_by_type(self) -> dict[str, datetime]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(BatchRunRow.batch_type, func.max(BatchRunRow.finished_at))
                .where(BatchRunRow.status == BatchStatus.SUCCESS.value)
                .group_by(BatchRunRow.batch_type)
            )
            return {row[0]: row[1] for row in result.all() if row[1] is not None}
