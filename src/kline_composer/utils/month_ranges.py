"""Monthly archive range utilities.

The Binance public-data download script stores monthly archives under a
folder named after the requested range, e.g. ``2017-01-01_2023-12-31``,
with one archive per month named ``{TICKER}-1m-{YYYY-MM}.zip``.
"""

from __future__ import annotations

from datetime import date
import re

import pandas as pd

DATE_RANGE_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2})_(\d{4}-\d{2}-\d{2})$")


def parse_date_range(date_range: str) -> tuple[date, date]:
    """Parse a ``{startDate}_{endDate}`` download range.

    Args:
        date_range: e.g. "2017-01-01_2023-12-31"

    Returns:
        (start, end) dates

    Raises:
        ValueError: Malformed string or end before start
    """
    match = DATE_RANGE_PATTERN.match(date_range.strip())
    if not match:
        raise ValueError(f"Invalid download date range: {date_range!r} (expected YYYY-MM-DD_YYYY-MM-DD)")

    start = date.fromisoformat(match.group(1))
    end = date.fromisoformat(match.group(2))
    if end < start:
        raise ValueError(f"Download date range ends before it starts: {date_range!r}")
    return start, end


def month_ranges(start: date, end: date) -> list[str]:
    """List every month touched by [start, end] as ``YYYY-MM``, oldest first."""
    periods = pd.period_range(start=start, end=end, freq="M")
    return [p.strftime("%Y-%m") for p in periods]


def months_for_date_range(date_range: str) -> list[str]:
    """Months covered by a download date range string."""
    start, end = parse_date_range(date_range)
    return month_ranges(start, end)
