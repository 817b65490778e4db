"""SQL emitted by the ORM repositories.

The in-memory fakes stand in for these everywhere else, so the
conflict-handling clauses they rely on are checked here against the
PostgreSQL compiler.
"""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.dialects import postgresql

from filingscore.domain import BatchStatus, Company, PriceRow
from filingscore.engines.ledger import build_filing
from filingscore.repositories.batch_runs_orm import BatchRunOrmRepository
from filingscore.repositories.companies_orm import CompanyOrmRepository
from filingscore.repositories.filings_orm import FilingOrmRepository
from filingscore.repositories.financials_orm import FinancialOrmRepository

from .factories import make_feed_item, make_quarter


def _result(scalar=None, scalars=(), rowcount: int = 1) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalars.return_value.all.return_value = list(scalars)
    result.rowcount = rowcount
    return result


class RecordingSession:
    """Async session stand-in that keeps every executed statement."""

    def __init__(self, *results: MagicMock):
        self.statements = []
        self.commits = 0
        self._results = list(results)

    def __call__(self):
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def execute(self, stmt):
        self.statements.append(stmt)
        return self._results.pop(0) if self._results else _result()

    async def commit(self):
        self.commits += 1


def _compile(stmt):
    compiled = stmt.compile(dialect=postgresql.dialect())
    return " ".join(str(compiled).split()), compiled.params


class TestFinancialUpsert:
    @pytest.mark.asyncio
    async def test_update_guarded_by_stored_priority(self):
        session = RecordingSession(_result(scalar="00126380_2024Q4"))
        repo = FinancialOrmRepository(session)

        written = await repo.upsert_quarter(make_quarter(2024, 4, priority=3, revenue=120))

        sql, params = _compile(session.statements[0])
        assert written is True
        assert "ON CONFLICT (id) DO UPDATE SET" in sql
        assert "WHERE excluded.source_priority >= financial_quarter.source_priority" in sql
        assert "RETURNING financial_quarter.id" in sql
        assert "id = excluded.id" not in sql
        assert params["source_priority"] == 3
        assert session.commits == 1

    @pytest.mark.asyncio
    async def test_lower_priority_reports_not_written(self):
        # No returned id means the WHERE clause rejected the update
        session = RecordingSession(_result(scalar=None))
        repo = FinancialOrmRepository(session)

        assert await repo.upsert_quarter(make_quarter(2024, 4, priority=1, revenue=80)) is False


class TestFilingInsert:
    @pytest.mark.asyncio
    async def test_duplicate_is_a_no_op(self):
        session = RecordingSession(_result(scalar=None))
        repo = FilingOrmRepository(session)

        inserted = await repo.insert(build_filing(make_feed_item()))

        sql, params = _compile(session.statements[0])
        assert inserted is False
        assert "ON CONFLICT (filing_id) DO NOTHING" in sql
        assert sql.endswith("RETURNING filings.filing_id")
        assert params["filing_id"] == "20240514000123"

    @pytest.mark.asyncio
    async def test_new_filing(self):
        session = RecordingSession(_result(scalar="20240514000123"))
        assert await FilingOrmRepository(session).insert(build_filing(make_feed_item())) is True


class TestCompanySeeding:
    @pytest.mark.asyncio
    async def test_known_tickers_are_skipped(self):
        session = RecordingSession(
            _result(scalars=["005930"]),
            _result(scalars=["KRX_000660"]),
        )
        repo = CompanyOrmRepository(session)
        rows = [
            PriceRow(ticker="005930", trade_date=date(2024, 5, 14), close=72000, company_name="삼성전자"),
            PriceRow(ticker="000660", trade_date=date(2024, 5, 14), close=190000, company_name="SK하이닉스"),
            PriceRow(ticker="000660", trade_date=date(2024, 5, 13), close=188000, company_name="SK하이닉스"),
        ]

        created = await repo.seed_from_prices(rows)

        lookup_sql, _ = _compile(session.statements[0])
        insert_sql, insert_params = _compile(session.statements[1])
        assert created == 1
        assert "FROM companies WHERE companies.ticker IN" in lookup_sql
        assert "ON CONFLICT (company_id) DO NOTHING" in insert_sql
        assert "KRX_000660" in insert_params.values()
        assert "KRX_005930" not in insert_params.values()

    @pytest.mark.asyncio
    async def test_nothing_new_skips_insert(self):
        session = RecordingSession(_result(scalars=["005930"]))
        rows = [PriceRow(ticker="005930", trade_date=date(2024, 5, 14), close=72000, company_name="삼성전자")]

        assert await CompanyOrmRepository(session).seed_from_prices(rows) == 0
        assert len(session.statements) == 1


class TestCompanyEnsure:
    @pytest.mark.asyncio
    async def test_new_filer_retires_placeholder(self):
        session = RecordingSession(_result(scalar="00126380"), _result(rowcount=1))
        repo = CompanyOrmRepository(session)

        created = await repo.ensure(
            Company(company_id="00126380", ticker="005930", name="삼성전자", market="KOSPI")
        )

        insert_sql, _ = _compile(session.statements[0])
        update_sql, update_params = _compile(session.statements[1])
        assert created is True
        assert "ON CONFLICT (company_id) DO NOTHING" in insert_sql
        assert update_sql.startswith("UPDATE companies SET active=")
        assert "companies.active IS true" in update_sql
        assert update_params["company_id_1"] == "KRX_005930"
        assert update_params["active"] is False
        assert session.commits == 1

    @pytest.mark.asyncio
    async def test_existing_company_is_untouched(self):
        session = RecordingSession(_result(scalar=None))

        created = await CompanyOrmRepository(session).ensure(
            Company(company_id="00126380", ticker="005930", name="삼성전자")
        )

        assert created is False
        assert len(session.statements) == 1

    @pytest.mark.asyncio
    async def test_placeholder_does_not_retire_itself(self):
        session = RecordingSession(_result(scalar="KRX_005930"))

        await CompanyOrmRepository(session).ensure(
            Company(company_id="KRX_005930", ticker="005930", name="삼성전자")
        )

        assert len(session.statements) == 1


class TestBatchRunClose:
    @pytest.mark.asyncio
    async def test_only_running_rows_are_closed(self):
        session = RecordingSession(_result(rowcount=1))
        repo = BatchRunOrmRepository(session)

        await repo.close(7, BatchStatus.SUCCESS, 12, 0, None)

        sql, params = _compile(session.statements[0])
        where = sql.split(" WHERE ", 1)[1]
        assert "batch_runs.run_id = %(run_id_1)s" in where
        assert "batch_runs.status = %(status_1)s" in where
        assert params["run_id_1"] == 7
        assert params["status_1"] == "running"
        assert params["status"] == "success"

    @pytest.mark.asyncio
    async def test_already_closed_run_is_left_alone(self):
        session = RecordingSession(_result(rowcount=0))

        with patch("filingscore.repositories.batch_runs_orm.logger") as logger:
            await BatchRunOrmRepository(session).close(7, BatchStatus.FAILED, 0, 1, "late")

        assert session.commits == 1
        logger.warning.assert_called_once_with("Batch run 7 was already closed")
