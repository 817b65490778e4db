"""Valuation score composition and band labelling."""

from __future__ import annotations

from filingscore.core.data_helpers import round_half_up
from filingscore.domain import BandLabel, Percentiles, SnapshotDraft


SCORE_WEIGHTS: dict[str, float] = {
    "per": 0.25,
    "pbr": 0.20,
    "psr": 0.15,
    "roe": 0.20,
    "opm": 0.20,
}

NEUTRAL_SCORE = 50

# (lower bound, label), checked from the top
BAND_THRESHOLDS: tuple[tuple[int, BandLabel], ...] = (
    (80, BandLabel.TOP),
    (60, BandLabel.GOOD),
    (40, BandLabel.NEUTRAL),
    (20, BandLabel.LOW),
)


def compose_score(pcts: Percentiles) -> int:
    """Weighted blend of the available percentiles, 0 to 100.

    Weights are renormalised over the metrics that have a percentile. With
    none available the score is neutral (50).
    """
    weighted_sum = 0.0
    total_weight = 0.0
    for metric, weight in SCORE_WEIGHTS.items():
        value = getattr(pcts, metric)
        if value is None:
            continue
        weighted_sum += value * weight
        total_weight += weight

    if total_weight == 0:
        return NEUTRAL_SCORE

    score = int(round_half_up(weighted_sum / total_weight))
    return max(0, min(100, score))


def band_for(score: int | None) -> BandLabel:
    if score is None:
        return BandLabel.NEUTRAL
    for threshold, label in BAND_THRESHOLDS:
        if score >= threshold:
            return label
    return BandLabel.VERY_LOW


def score_snapshot(draft: SnapshotDraft) -> SnapshotDraft:
    """Set score and band on a ranked draft."""
    draft.score = compose_score(draft.percentiles)
    draft.band_label = band_for(draft.score)
    return draft
