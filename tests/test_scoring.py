"""Tests for valuation metrics, peer percentiles, scoring and peer mapping."""

from __future__ import annotations

from datetime import date

import pytest

from filingscore.domain import (
    BandLabel,
    Company,
    Percentiles,
    PeerMapping,
    SnapshotDraft,
    TTMFinancial,
    ValuationMetrics,
)
from filingscore.engines.metrics import _ratio, compute_metrics
from filingscore.engines.peers import (
    OTHER_PEER,
    PEER_GROUPS,
    ensure_peer_mappings,
    map_industry_to_peer,
    peer_group_info,
    resolve_peer,
)
from filingscore.engines.ranking import percentiles, rank_snapshots
from filingscore.engines.scoring import band_for, compose_score, score_snapshot

from .fakes import InMemoryCompanies, InMemoryPeers


SNAP_DATE = date(2024, 6, 3)


def _ttm(**overrides) -> TTMFinancial:
    data = {
        "company_id": "00126380",
        "revenue_ttm": 1000.0,
        "op_profit_ttm": 150.0,
        "net_profit_ttm": 100.0,
        "total_equity": 500.0,
        "total_debt": 250.0,
        "last_quarter_year": 2024,
        "last_quarter": 1,
    }
    data.update(overrides)
    return TTMFinancial(**data)


def _draft(company_id: str, peer_code: str = "SEMI", **metrics) -> SnapshotDraft:
    return SnapshotDraft(
        company_id=company_id,
        snap_date=SNAP_DATE,
        peer_code=peer_code,
        metrics=ValuationMetrics(**metrics),
    )


# =============================================================================
# Metrics
# =============================================================================


class TestComputeMetrics:
    def test_all_ratios(self):
        metrics = compute_metrics(_ttm(), market_cap=2000.0)
        assert metrics == ValuationMetrics(
            per=20.0, pbr=4.0, psr=2.0, roe=20.0, opm=15.0, debt_ratio=50.0
        )

    def test_non_positive_denominator_gives_none(self):
        metrics = compute_metrics(_ttm(net_profit_ttm=-50.0, total_equity=0.0), market_cap=2000.0)
        assert metrics.per is None
        assert metrics.pbr is None
        assert metrics.roe is None
        assert metrics.debt_ratio is None
        assert metrics.psr == 2.0

    def test_missing_market_cap_blanks_market_ratios_only(self):
        metrics = compute_metrics(_ttm(), market_cap=None)
        assert (metrics.per, metrics.pbr, metrics.psr) == (None, None, None)
        assert metrics.roe == 20.0
        assert metrics.opm == 15.0

    def test_no_ttm(self):
        assert compute_metrics(None, market_cap=2000.0) == ValuationMetrics()

    def test_half_up_rounding(self):
        assert _ratio(1, 8) == 0.13
        assert _ratio(1000, 3) == 333.33


# =============================================================================
# Percentiles
# =============================================================================


class TestPercentiles:
    def test_ascending(self):
        assert percentiles([10.0, 30.0, 20.0]) == [33.3, 100.0, 66.7]

    def test_inverted(self):
        assert percentiles([5.0, 10.0, 20.0], inverted=True) == [66.7, 33.3, 0.0]

    def test_single_member_group(self):
        assert percentiles([12.0]) == [100.0]
        assert percentiles([12.0], inverted=True) == [0.0]

    def test_ties_are_not_averaged(self):
        assert percentiles([10.0, 10.0]) == [50.0, 100.0]

    def test_none_values_are_skipped(self):
        assert percentiles([None, 4.0, None, 2.0]) == [None, 100.0, None, 50.0]

    def test_all_none(self):
        assert percentiles([None, None]) == [None, None]

    @pytest.mark.parametrize("inverted", [False, True])
    def test_bounds(self, inverted):
        values = [3.2, -1.0, 15.5, 15.5, 0.0, None, 8.8]
        for pct in percentiles(values, inverted=inverted):
            assert pct is None or 0 <= pct <= 100


class TestRankSnapshots:
    def test_ranks_within_peer_group(self):
        drafts = [
            _draft("A", "SEMI", per=10.0, roe=5.0),
            _draft("B", "SEMI", per=20.0, roe=15.0),
            _draft("C", "BIO", per=50.0),
        ]
        sizes = rank_snapshots(drafts)

        assert sizes == {"SEMI": 2, "BIO": 1}
        assert drafts[0].percentiles.per == 50.0
        assert drafts[1].percentiles.per == 0.0
        assert drafts[1].percentiles.roe == 100.0
        # Lone member of its group, inverted metric
        assert drafts[2].percentiles.per == 0.0
        assert drafts[2].percentiles.roe is None


# =============================================================================
# Score and band
# =============================================================================


class TestComposeScore:
    def test_no_percentiles_is_neutral(self):
        assert compose_score(Percentiles()) == 50

    def test_single_metric(self):
        assert compose_score(Percentiles(per=80.0)) == 80

    def test_weights_renormalised(self):
        # (100 * 0.25 + 0 * 0.20) / 0.45 = 55.6
        assert compose_score(Percentiles(per=100.0, roe=0.0)) == 56

    def test_all_metrics(self):
        pcts = Percentiles(per=100.0, pbr=100.0, psr=100.0, roe=100.0, opm=100.0)
        assert compose_score(pcts) == 100

    @pytest.mark.parametrize(
        "pcts",
        [
            Percentiles(per=0.0, pbr=0.0, psr=0.0, roe=0.0, opm=0.0),
            Percentiles(per=100.0, opm=0.0),
            Percentiles(psr=33.3, roe=66.7),
        ],
    )
    def test_bounds(self, pcts):
        assert 0 <= compose_score(pcts) <= 100


class TestBands:
    @pytest.mark.parametrize(
        "score,label",
        [
            (100, BandLabel.TOP),
            (80, BandLabel.TOP),
            (79, BandLabel.GOOD),
            (60, BandLabel.GOOD),
            (59, BandLabel.NEUTRAL),
            (40, BandLabel.NEUTRAL),
            (39, BandLabel.LOW),
            (20, BandLabel.LOW),
            (19, BandLabel.VERY_LOW),
            (0, BandLabel.VERY_LOW),
            (None, BandLabel.NEUTRAL),
        ],
    )
    def test_thresholds(self, score, label):
        assert band_for(score) is label

    def test_score_snapshot(self):
        draft = _draft("A")
        score_snapshot(draft)
        assert draft.score == 50
        assert draft.band_label is BandLabel.NEUTRAL


# =============================================================================
# Peer mapping
# =============================================================================


class TestPeerResolution:
    def test_curated_ticker_wins(self):
        assert resolve_peer("005930", "G82") == "SEMI"

    def test_industry_rule(self):
        assert resolve_peer("999999", "G31") == "BIO"
        assert map_industry_to_peer(" g25 ") == "SEMI"

    def test_fallback(self):
        assert resolve_peer(None, None) == OTHER_PEER
        assert map_industry_to_peer("Z99") == OTHER_PEER

    def test_peer_group_info(self):
        assert peer_group_info("SEMI").peer_name == "반도체"
        assert peer_group_info("UNKNOWN").peer_code == OTHER_PEER


class TestEnsurePeerMappings:
    @pytest.mark.asyncio
    async def test_maps_only_unmapped_companies(self):
        companies = InMemoryCompanies(
            [
                Company(company_id="00126380", ticker="005930", name="삼성전자"),
                Company(company_id="00258801", ticker="035720", name="카카오"),
                Company(company_id="KRX_123456", ticker="123456", name="신규", industry_code="G31"),
                Company(company_id="00999999", ticker=None, name="비상장"),
            ]
        )
        manual = PeerMapping(company_id="00258801", peer_code="MEDIA", is_manual=True)
        peers = InMemoryPeers([manual])

        inserted = await ensure_peer_mappings(companies, peers)

        assert inserted == 2
        assert set(peers.groups) == set(PEER_GROUPS)
        assert peers.mappings["00126380"].peer_code == "SEMI"
        assert peers.mappings["KRX_123456"].peer_code == "BIO"
        assert peers.mappings["00258801"] == manual
        assert "00999999" not in peers.mappings

    @pytest.mark.asyncio
    async def test_second_run_inserts_nothing(self):
        companies = InMemoryCompanies(
            [Company(company_id="00126380", ticker="005930", name="삼성전자")]
        )
        peers = InMemoryPeers()

        await ensure_peer_mappings(companies, peers)
        assert await ensure_peer_mappings(companies, peers) == 0
