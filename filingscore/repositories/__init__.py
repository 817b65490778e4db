"""Data access layer repositories.

Each ORM repository is a class over an injected ``async_sessionmaker`` and
implements one of the protocols in ``base``:

- companies_orm: company master (insert-if-absent seeding)
- filings_orm: filing ledger
- financials_orm: quarterly facts and TTM rollups
- prices_orm: daily prices
- peers_orm: peer group catalogue and company mappings
- valuations_orm: daily valuation snapshots
- batch_runs_orm: batch run lifecycle
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .base import Repositories
from .batch_runs_orm import BatchRunOrmRepository
from .companies_orm import CompanyOrmRepository
from .filings_orm import FilingOrmRepository
from .financials_orm import FinancialOrmRepository
from .peers_orm import PeerOrmRepository
from .prices_orm import PriceOrmRepository
from .valuations_orm import ValuationOrmRepository


def build_orm_repositories(session_factory: async_sessionmaker[AsyncSession]) -> Repositories:
    """Wire every ORM repository to one session factory."""
    return Repositories(
        companies=CompanyOrmRepository(session_factory),
        filings=FilingOrmRepository(session_factory),
        financials=FinancialOrmRepository(session_factory),
        prices=PriceOrmRepository(session_factory),
        peers=PeerOrmRepository(session_factory),
        valuations=ValuationOrmRepository(session_factory),
        batch_runs=BatchRunOrmRepository(session_factory),
    )


__all__ = [
    "BatchRunOrmRepository",
    "CompanyOrmRepository",
    "FilingOrmRepository",
    "FinancialOrmRepository",
    "PeerOrmRepository",
    "PriceOrmRepository",
    "Repositories",
    "ValuationOrmRepository",
    "build_orm_repositories",
]
