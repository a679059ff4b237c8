"""UTC epoch-millisecond helpers.

Binance kline timestamps are integer milliseconds since the Unix epoch
(UTC). Bucket arithmetic is anchored at a fixed epoch base, by default
2017-01-01 00:00:00 UTC, which precedes every Binance spot kline.
"""

from __future__ import annotations

from datetime import datetime
from typing import Union

import pandas as pd
import pytz

UTC_TZ = pytz.UTC

MS_PER_MINUTE = 60_000

DEFAULT_EPOCH_BASE = "2017-01-01T00:00:00Z"
DEFAULT_EPOCH_BASE_MS = 1_483_228_800_000


def to_utc(value: Union[str, datetime, pd.Timestamp]) -> pd.Timestamp:
    """Convert a timestamp-like value to a UTC Timestamp.

    Naive values are interpreted as UTC.
    """
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        return ts.tz_localize(UTC_TZ)
    return ts.tz_convert(UTC_TZ)


def to_epoch_ms(value: Union[str, datetime, pd.Timestamp, int]) -> int:
    """Convert a timestamp-like value to integer epoch milliseconds.

    Integers are taken to already be epoch milliseconds.

    Args:
        value: ISO string, datetime, Timestamp or epoch milliseconds

    Returns:
        Milliseconds since 1970-01-01 00:00:00 UTC
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    return to_utc(value).value // 1_000_000


def from_epoch_ms(ms: int) -> pd.Timestamp:
    """Convert epoch milliseconds to a UTC Timestamp."""
    return pd.Timestamp(ms, unit="ms", tz=UTC_TZ)


def format_epoch_ms(ms: int) -> str:
    """Format epoch milliseconds for log messages."""
    return from_epoch_ms(ms).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3] + "Z"
