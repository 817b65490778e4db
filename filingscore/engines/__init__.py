"""Classification, financial aggregation and valuation engines."""

from . import classifier, merger, metrics, peers, ranking, scoring, ttm


__all__ = [
    "classifier",
    "merger",
    "metrics",
    "peers",
    "ranking",
    "scoring",
    "ttm",
]
