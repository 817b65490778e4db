#!/usr/bin/env python3
"""Run a batch manually.

Usage:
    python scripts/run_batch.py disclosure
    python scripts/run_batch.py disclosure 2024-05-01 2024-05-14
    python scripts/run_batch.py valuation [YYYY-MM-DD]
"""
import asyncio
import sys
from datetime import date

from filingscore.core.logging import setup_logging
from filingscore.database import close_database
from filingscore.jobs.definitions import run_filing_batch, run_valuation_batch


async def main(argv: list[str]) -> int:
    if not argv or argv[0] not in ("disclosure", "valuation"):
        print(__doc__)
        return 2

    batch_type, dates = argv[0], [date.fromisoformat(a) for a in argv[1:]]
    try:
        if batch_type == "disclosure":
            if len(dates) == 2:
                result = await run_filing_batch(start=dates[0], end=dates[1])
            else:
                result = await run_filing_batch()
        else:
            result = await run_valuation_batch(snap_date=dates[0] if dates else None)
    finally:
        await close_database()

    print("Result:", result.model_dump_json(indent=2))
    return 0 if result.status.value != "failed" else 1


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(main(sys.argv[1:])))
