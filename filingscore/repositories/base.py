"""Storage interfaces used by the engines and the batch orchestrator.

The ORM implementations live next to this module (``*_orm.py``); tests
substitute in-memory fakes that satisfy the same protocols.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol

from filingscore.domain import (
    BatchRun,
    BatchStatus,
    Company,
    Filing,
    PeerGroup,
    PeerMapping,
    PriceRow,
    QuarterlyFinancial,
    TTMFinancial,
    ValuationSnapshot,
)


class CompanyRepository(Protocol):
    async def get(self, company_id: str) -> Company | None: ...

    async def ensure(self, company: Company) -> bool:
        """Insert if absent. Returns True when a row was created."""
        ...

    async def seed_from_prices(self, rows: Sequence[PriceRow]) -> int:
        """Create KRX_{ticker} companies for tickers not yet known."""
        ...

    async def list_active_with_ticker(self, limit: int | None = None) -> list[Company]: ...


class FilingRepository(Protocol):
    async def exists(self, filing_id: str) -> bool: ...

    async def insert(self, filing: Filing) -> bool:
        """Insert unless the filing_id is taken. Returns False on conflict."""
        ...


class FinancialRepository(Protocol):
    async def get_quarter(
        self, company_id: str, year: int, quarter: int
    ) -> QuarterlyFinancial | None: ...

    async def upsert_quarter(self, row: QuarterlyFinancial) -> bool:
        """Write unless a stored row has a higher source priority."""
        ...

    async def latest_quarters(self, company_id: str, limit: int = 4) -> list[QuarterlyFinancial]: ...

    async def get_ttm(self, company_id: str) -> TTMFinancial | None: ...

    async def save_ttm(self, ttm: TTMFinancial) -> None: ...


class PriceRepository(Protocol):
    async def has_prices_for(self, trade_date: date) -> bool: ...

    async def upsert_prices(self, rows: Sequence[PriceRow]) -> int: ...

    async def latest_price(self, ticker: str, on_or_before: date) -> PriceRow | None: ...


class PeerRepository(Protocol):
    async def upsert_groups(self, groups: Sequence[PeerGroup]) -> None: ...

    async def get_mappings(self) -> dict[str, PeerMapping]: ...

    async def insert_auto_mappings(self, mappings: Sequence[PeerMapping]) -> int:
        """Insert mappings for unmapped companies; existing rows win."""
        ...


class ValuationRepository(Protocol):
    async def exists_for_date(self, snap_date: date) -> bool: ...

    async def save_snapshots(self, snapshots: Sequence[ValuationSnapshot]) -> int: ...


class BatchRunRepository(Protocol):
    async def expire_stale(
        self, batch_type: str, started_before: datetime, message: str
    ) -> int: ...

    async def create(self, batch_type: str, started_at: datetime) -> int: ...

    async def close(
        self,
        run_id: int,
        status: BatchStatus,
        items_processed: int,
        items_failed: int,
        error_message: str | None,
    ) -> None: ...

    async def recent(self, limit: int = 10) -> list[BatchRun]: ...

    async def last_success_by_type(self) -> dict[str, datetime]: ...


@dataclass
class Repositories:
    """Bundle of repositories wired into a batch."""

    companies: CompanyRepository
    filings: FilingRepository
    financials: FinancialRepository
    prices: PriceRepository
    peers: PeerRepository
    valuations: ValuationRepository
    batch_runs: BatchRunRepository
