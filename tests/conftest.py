"""Pytest configuration and fixtures."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from filingscore.api.app import create_api_app
from filingscore.api.dependencies import get_repositories
from filingscore.domain import Company

from .fakes import build_fake_repositories


pytest_plugins = ["pytest_asyncio"]


@pytest.fixture
def repos():
    """Empty in-memory repositories."""
    return build_fake_repositories()


@pytest.fixture
def listed_companies() -> list[Company]:
    return [
        Company(company_id="00126380", ticker="005930", name="삼성전자", market="KOSPI"),
        Company(company_id="00164779", ticker="000660", name="SK하이닉스", market="KOSPI"),
        Company(company_id="00258801", ticker="035720", name="카카오", market="KOSPI"),
    ]


@pytest.fixture
def client(repos) -> TestClient:
    """API client backed by the in-memory repositories."""
    app = create_api_app()

    async def override_get_repositories():
        return repos

    app.dependency_overrides[get_repositories] = override_get_repositories
    # Not used as a context manager: lifespan (database init) is skipped
    yield TestClient(app)
    app.dependency_overrides.clear()
