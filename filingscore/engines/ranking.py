"""Peer-relative percentile ranking.

Within each peer group and for each ranked metric, companies with a value
are sorted ascending and given ``rank / count × 100``. Lower-is-better
multiples (PER, PBR, PSR) are inverted so that a high percentile always
means "better placed in the peer group".

Equal values are not averaged: ``rank(method="first")`` keeps their input
order, so two identical PERs get adjacent, different percentiles.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence

import pandas as pd

from filingscore.core.data_helpers import round_half_up
from filingscore.domain import SnapshotDraft


# metric name → inverted (lower raw value ranks higher)
RANKED_METRICS: dict[str, bool] = {
    "per": True,
    "pbr": True,
    "psr": True,
    "roe": False,
    "opm": False,
}


def percentiles(values: Sequence[float | None], inverted: bool = False) -> list[float | None]:
    """Percentile for each value, None where the value is None.

    Args:
        values: Raw metric values in input order
        inverted: Flip to ``100 - p`` for lower-is-better metrics

    Returns:
        Percentiles rounded half-up to one decimal, aligned with ``values``
    """
    series = pd.Series(values, dtype="float64")
    valid = series.dropna()
    result: list[float | None] = [None] * len(values)
    if valid.empty:
        return result

    ranks = valid.rank(method="first", ascending=True)
    count = len(valid)
    for idx, rank in ranks.items():
        pct = round_half_up(rank / count * 100, 1)
        if inverted:
            pct = round_half_up(100 - pct, 1)
        result[idx] = pct
    return result


def rank_peer_group(drafts: Sequence[SnapshotDraft]) -> None:
    """Fill the percentiles of one peer group's drafts in place."""
    for metric, inverted in RANKED_METRICS.items():
        values = [getattr(d.metrics, metric) for d in drafts]
        for draft, pct in zip(drafts, percentiles(values, inverted=inverted)):
            setattr(draft.percentiles, metric, pct)


def rank_snapshots(drafts: Iterable[SnapshotDraft]) -> dict[str, int]:
    """Rank every draft against its peer group.

    Must run after all drafts for the day exist. Returns group sizes by
    peer code.
    """
    groups: dict[str, list[SnapshotDraft]] = defaultdict(list)
    for draft in drafts:
        groups[draft.peer_code].append(draft)
    for members in groups.values():
        rank_peer_group(members)
    return {code: len(members) for code, members in groups.items()}
