"""Shared utilities for the kline composer."""

from .month_ranges import (
    parse_date_range,
    month_ranges,
    months_for_date_range,
)
from .timezone import (
    UTC_TZ,
    MS_PER_MINUTE,
    DEFAULT_EPOCH_BASE,
    DEFAULT_EPOCH_BASE_MS,
    to_utc,
    to_epoch_ms,
    from_epoch_ms,
    format_epoch_ms,
)

__all__ = [
    "parse_date_range",
    "month_ranges",
    "months_for_date_range",
    "UTC_TZ",
    "MS_PER_MINUTE",
    "DEFAULT_EPOCH_BASE",
    "DEFAULT_EPOCH_BASE_MS",
    "to_utc",
    "to_epoch_ms",
    "from_epoch_ms",
    "format_epoch_ms",
]
