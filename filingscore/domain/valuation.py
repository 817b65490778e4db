"""Valuation domain models.

Metrics come from the latest price and the TTM rollup, percentiles from
peer ranking, and the score and band from the composer.
"""

from __future__ import annotations

from datetime import date as DateType
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class BandLabel(str, Enum):
    """Descriptive band for a valuation score."""

    TOP = "상단"
    GOOD = "양호"
    NEUTRAL = "중립"
    LOW = "하단"
    VERY_LOW = "매우하단"


class ValuationMetrics(BaseModel):
    """Ratios for one company. A ratio is None when it cannot be computed."""

    per: float | None = Field(None, description="Market cap / net profit TTM")
    pbr: float | None = Field(None, description="Market cap / total equity")
    psr: float | None = Field(None, description="Market cap / revenue TTM")
    roe: float | None = Field(None, description="Net profit / equity, %")
    opm: float | None = Field(None, description="Operating profit / revenue, %")
    debt_ratio: float | None = Field(None, description="Total debt / equity, %")


class Percentiles(BaseModel):
    """Peer-relative position per ranked metric, 0 to 100."""

    per: float | None = Field(None, ge=0, le=100)
    pbr: float | None = Field(None, ge=0, le=100)
    psr: float | None = Field(None, ge=0, le=100)
    roe: float | None = Field(None, ge=0, le=100)
    opm: float | None = Field(None, ge=0, le=100)


class SnapshotDraft(BaseModel):
    """A valuation snapshot before ranking and scoring."""

    company_id: str
    snap_date: DateType
    price: float | None = None
    market_cap: float | None = None
    metrics: ValuationMetrics = Field(default_factory=ValuationMetrics)
    peer_code: str = "OTHER"
    percentiles: Percentiles = Field(default_factory=Percentiles)
    score: int | None = None
    band_label: BandLabel | None = None

    @property
    def id(self) -> str:
        return f"{self.company_id}_{self.snap_date.isoformat()}"


class ValuationSnapshot(BaseModel):
    """A persisted daily snapshot, flattened the way it is stored."""

    id: str
    company_id: str
    snap_date: DateType
    price: float | None = None
    market_cap: float | None = None
    per: float | None = None
    pbr: float | None = None
    psr: float | None = None
    roe: float | None = None
    opm: float | None = None
    debt_ratio: float | None = None
    peer_code: str | None = None
    per_percentile: float | None = None
    pbr_percentile: float | None = None
    psr_percentile: float | None = None
    roe_percentile: float | None = None
    opm_percentile: float | None = None
    score: int
    band_label: BandLabel
    created_at: datetime | None = None

    model_config = {
        "from_attributes": True,
    }

    @classmethod
    def from_draft(cls, draft: SnapshotDraft) -> "ValuationSnapshot":
        """Flatten a scored draft."""
        if draft.score is None or draft.band_label is None:
            raise ValueError(f"snapshot {draft.id} has not been scored")
        return cls(
            id=draft.id,
            company_id=draft.company_id,
            snap_date=draft.snap_date,
            price=draft.price,
            market_cap=draft.market_cap,
            per=draft.metrics.per,
            pbr=draft.metrics.pbr,
            psr=draft.metrics.psr,
            roe=draft.metrics.roe,
            opm=draft.metrics.opm,
            debt_ratio=draft.metrics.debt_ratio,
            peer_code=draft.peer_code,
            per_percentile=draft.percentiles.per,
            pbr_percentile=draft.percentiles.pbr,
            psr_percentile=draft.percentiles.psr,
            roe_percentile=draft.percentiles.roe,
            opm_percentile=draft.percentiles.opm,
            score=draft.score,
            band_label=draft.band_label,
        )
