"""
Centralized Data Conversion Helpers.

Safe type conversion and rounding utilities shared by sources, engines and
repositories.

Usage:
    from filingscore.core.data_helpers import safe_float, parse_number, round_half_up
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import pandas as pd


_NON_NUMERIC = re.compile(r"[^\d.\-]")


def safe_float(value: Any, default: float | None = None) -> float | None:
    """
    Safely convert value to float.

    Handles None, NaN, Inf, pandas NA and conversion errors gracefully.
    """
    if value is None:
        return default
    try:
        if pd.isna(value):
            return default
    except (TypeError, ValueError):
        pass
    try:
        f = float(value)
        if f != f or f == float("inf") or f == float("-inf"):
            return default
        return f
    except (ValueError, TypeError):
        return default


def safe_int(value: Any, default: int | None = None) -> int | None:
    """Safely convert value to int, accepting float strings like "123.0"."""
    f = safe_float(value)
    if f is None:
        return default
    return int(f)


def parse_number(value: Any) -> float | None:
    """Parse a KRX-formatted number such as "71,500" or "1,234 원".

    Thousands separators, whitespace and unit text are stripped. Returns
    None for blanks, dashes and anything that does not parse.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return safe_float(value)
    cleaned = _NON_NUMERIC.sub("", str(value).replace(",", "").strip())
    if cleaned in ("", "-", ".", "-."):
        return None
    return safe_float(cleaned)


def parse_trade_date(value: Any) -> date | None:
    """Parse YYYYMMDD, YYYY-MM-DD, YYYY.MM.DD or YYYY/MM/DD.

    Returns None for anything else, including well-formed but impossible
    dates such as "20241399".
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        if re.fullmatch(r"\d{8}", text):
            return datetime.strptime(text, "%Y%m%d").date()
        if re.fullmatch(r"\d{4}[-./]\d{2}[-./]\d{2}", text):
            return datetime.strptime(re.sub(r"[./]", "-", text), "%Y-%m-%d").date()
    except ValueError:
        return None
    return None


def round_half_up(value: float, places: int = 0) -> float:
    """Round half away from zero to a fixed number of decimal places.

    Python's round() uses banker's rounding; ratios and percentiles are
    reported with half-up rounding instead.
    """
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def to_decimal(value: float | int | None) -> Decimal | None:
    """Convert to Decimal for Numeric columns, keeping None."""
    if value is None:
        return None
    return Decimal(str(value))
