"""Company and peer group domain models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


# Companies seeded from price rows before any filing names them
PLACEHOLDER_PREFIX = "KRX_"


def placeholder_company_id(ticker: str) -> str:
    return f"{PLACEHOLDER_PREFIX}{ticker}"


class Company(BaseModel):
    """Listed company. Created lazily, deactivated but never deleted."""

    company_id: str = Field(..., description="DART corp_code or KRX_{ticker}")
    ticker: str | None = None
    name: str
    market: str | None = Field(None, description="KOSPI, KOSDAQ or KONEX")
    industry_code: str | None = None
    active: bool = True

    model_config = {
        "from_attributes": True,
    }


class PeerGroup(BaseModel):
    peer_code: str
    peer_name: str
    description: str | None = None

    model_config = {
        "from_attributes": True,
    }


class PeerMapping(BaseModel):
    """Company to peer group assignment."""

    company_id: str
    peer_code: str
    is_manual: bool = False
    mapped_at: datetime | None = None

    model_config = {
        "from_attributes": True,
    }
