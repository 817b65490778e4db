"""Shared defaults for scheduled jobs.

Job Naming Convention:
    <domain>_<frequency>

Jobs:
    - disclosure_hourly: Poll OpenDART and write new filings (every hour)
    - valuation_daily: Prices, peer mapping and valuation snapshots (07:00 UTC)
"""

from __future__ import annotations

from datetime import timedelta

from filingscore.domain import BatchType


# =============================================================================
# SCHEDULE DEFINITIONS
# =============================================================================
# Format: job_name -> (cron_expression, human_description)

DEFAULT_SCHEDULES: dict[str, tuple[str, str]] = {
    "disclosure_hourly": (
        "0 * * * *",
        "Disclosure poll - fetches the last day of OpenDART filings, classifies them "
        "and merges performance numbers into quarterly financials. Idempotent."
    ),
    "valuation_daily": (
        "0 7 * * *",
        "Daily valuation - loads KRX closes, maps peers and writes one scored "
        "snapshot per company. Skips when today's snapshot exists."
    ),
}


# =============================================================================
# STALE RUN THRESHOLDS
# =============================================================================
# A running row older than this is assumed dead and is failed by the next run.

STALE_THRESHOLDS: dict[BatchType, timedelta] = {
    BatchType.DISCLOSURE: timedelta(minutes=15),
    BatchType.VALUATION: timedelta(hours=2),
}
