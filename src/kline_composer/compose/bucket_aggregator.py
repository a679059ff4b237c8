"""Phase-shifted bucket aggregation of 1-minute klines.

Bucket boundaries are fixed-width windows of ``period_minutes`` anchored
at an epoch base shifted by ``phase_offset_minutes``:

    period_ms       = period_minutes * 60000
    base_ms         = epoch_base_ms + phase_offset_minutes * 60000
    bucket_open(t)  = (t - base_ms) // period_ms * period_ms + base_ms
    bucket_close(t) = bucket_open(t) + period_ms - 1

Aggregation convention per bucket:
| Field                   | Rule                          |
|-------------------------|-------------------------------|
| open                    | first contributing kline      |
| high / low              | max / min over the bucket     |
| close, ignore           | last contributing kline       |
| volume, quote_volume,   | sum                           |
| trade_count, taker_buy_*|                               |
| open_time / close_time  | bucket boundaries             |

Input must arrive in non-decreasing ``open_time`` order; the aggregator
does not sort. Klines that precede ``base_ms`` are skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Iterable, Iterator, Optional

import numpy as np
import pandas as pd

from ..utils.timezone import DEFAULT_EPOCH_BASE_MS, MS_PER_MINUTE
from .record_parser import KLINE_COLUMNS, KlineRecord


LOGGER = logging.getLogger(__name__)

SUM_COLUMNS = [
    "volume",
    "quote_volume",
    "trade_count",
    "taker_buy_base_volume",
    "taker_buy_quote_volume",
]


@dataclass(frozen=True)
class AggregatorConfig:
    """Bucket geometry for one aggregation pass."""

    period_minutes: int
    phase_offset_minutes: int = 0
    epoch_base_ms: int = DEFAULT_EPOCH_BASE_MS

    def __post_init__(self):
        if self.period_minutes <= 0:
            raise ValueError(f"period_minutes must be positive, got {self.period_minutes}")
        if not 0 <= self.phase_offset_minutes < self.period_minutes:
            raise ValueError(
                f"phase_offset_minutes must be in [0, {self.period_minutes}), "
                f"got {self.phase_offset_minutes}"
            )

    @property
    def period_ms(self) -> int:
        return self.period_minutes * MS_PER_MINUTE

    @property
    def base_ms(self) -> int:
        return self.epoch_base_ms + self.phase_offset_minutes * MS_PER_MINUTE


def bucket_open(timestamp_ms: int, config: AggregatorConfig) -> int:
    """Return the open time of the bucket containing ``timestamp_ms``.

    Raises:
        ValueError: If the timestamp precedes the phase-shifted epoch base
    """
    base_ms = config.base_ms
    if timestamp_ms < base_ms:
        raise ValueError(f"timestamp {timestamp_ms} precedes epoch base {base_ms}")
    return (timestamp_ms - base_ms) // config.period_ms * config.period_ms + base_ms


def bucket_close(timestamp_ms: int, config: AggregatorConfig) -> int:
    """Return the inclusive close time of the bucket containing ``timestamp_ms``."""
    return bucket_open(timestamp_ms, config) + config.period_ms - 1


@dataclass
class KlineAccumulator:
    """Running aggregate for the bucket currently being filled."""

    open_time: int = 0
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    close: float = 0.0
    volume: float = 0.0
    close_time: int = 0
    quote_volume: float = 0.0
    trade_count: int = 0
    taker_buy_base_volume: float = 0.0
    taker_buy_quote_volume: float = 0.0
    ignore: float = 0.0
    num_records: int = 0

    @property
    def is_empty(self) -> bool:
        return self.num_records == 0

    def reset(self) -> None:
        """Return every field to its empty value."""
        for f in fields(self):
            setattr(self, f.name, f.default)

    def open_bucket(self, open_time: int, close_time: int) -> None:
        self.open_time = open_time
        self.close_time = close_time

    def merge(self, record: KlineRecord) -> None:
        """Fold one source kline into the running aggregate."""
        if self.num_records == 0:
            self.open = record.open
            self.high = record.high
            self.low = record.low
        else:
            self.high = max(self.high, record.high)
            self.low = min(self.low, record.low)

        self.close = record.close
        self.ignore = record.ignore
        self.volume += record.volume
        self.quote_volume += record.quote_volume
        self.trade_count += record.trade_count
        self.taker_buy_base_volume += record.taker_buy_base_volume
        self.taker_buy_quote_volume += record.taker_buy_quote_volume
        self.num_records += 1

    def to_record(self) -> KlineRecord:
        return KlineRecord(**{column: getattr(self, column) for column in KLINE_COLUMNS})


class BucketAggregator:
    """Stream 1-minute klines into phase-shifted N-minute klines."""

    def __init__(self, config: AggregatorConfig):
        """Initialize aggregator.

        Args:
            config: Bucket period, phase offset and epoch base
        """
        self.config = config
        self.emitted = 0
        self.skipped_records = 0
        self._accumulator = KlineAccumulator()

    @property
    def pending(self) -> int:
        """Number of source klines in the open bucket."""
        return self._accumulator.num_records

    def add(self, record: KlineRecord) -> Optional[KlineRecord]:
        """Merge one kline.

        Args:
            record: Source kline, no earlier than the previous one

        Returns:
            The bucket completed by this kline crossing a boundary, or None
        """
        if record.open_time < self.config.base_ms:
            self.skipped_records += 1
            LOGGER.debug(
                "Skipping kline at %d before epoch base %d",
                record.open_time,
                self.config.base_ms,
            )
            return None

        open_time = bucket_open(record.open_time, self.config)
        acc = self._accumulator
        completed = None
        if acc.is_empty or open_time != acc.open_time:
            completed = self.flush()
            acc.open_bucket(open_time, open_time + self.config.period_ms - 1)

        acc.merge(record)
        return completed

    def flush(self) -> Optional[KlineRecord]:
        """Emit the open bucket (if non-empty) and reset the accumulator."""
        acc = self._accumulator
        if acc.is_empty:
            acc.reset()
            return None

        record = acc.to_record()
        acc.reset()
        self.emitted += 1
        return record

    def aggregate(self, records: Iterable[KlineRecord]) -> Iterator[KlineRecord]:
        """Aggregate a whole ordered stream, including the final flush.

        Args:
            records: Source klines in non-decreasing open_time order

        Yields:
            Completed N-minute klines in bucket order
        """
        for record in records:
            completed = self.add(record)
            if completed is not None:
                yield completed

        last = self.flush()
        if last is not None:
            yield last


def format_ignore(value: float) -> str:
    if value == 0:
        return "0"
    return f"{value:.8f}"


def format_kline(record: KlineRecord) -> str:
    """Serialize a kline as one CSV line (without newline)."""
    return (
        f"{record.open_time:d},{record.open:.8f},{record.high:.8f},"
        f"{record.low:.8f},{record.close:.8f},{record.volume:.8f},"
        f"{record.close_time:d},{record.quote_volume:.8f},{record.trade_count:d},"
        f"{record.taker_buy_base_volume:.8f},{record.taker_buy_quote_volume:.8f},"
        f"{format_ignore(record.ignore)}"
    )


def aggregate_frame(df: pd.DataFrame, config: AggregatorConfig) -> pd.DataFrame:
    """Aggregate a DataFrame of 1-minute klines with pandas groupby.

    Vectorized counterpart of :class:`BucketAggregator`, used to verify
    composed files offline.

    Args:
        df: DataFrame with KLINE_COLUMNS, one row per source kline
        config: Bucket geometry

    Returns:
        DataFrame with KLINE_COLUMNS plus num_records, one row per bucket
    """
    if len(df) == 0:
        return pd.DataFrame(columns=KLINE_COLUMNS + ["num_records"])

    df = df[df["open_time"] >= config.base_ms]
    df = df.sort_values("open_time", kind="stable")

    offsets = df["open_time"].to_numpy(dtype=np.int64) - config.base_ms
    bucket = offsets // config.period_ms * config.period_ms + config.base_ms
    df = df.assign(bucket=bucket)

    agg_dict = {
        "open": "first",
        "high": "max",
        "low": "min",
        "close": "last",
        "ignore": "last",
        "open_time": "count",  # num_records
    }
    agg_dict.update({column: "sum" for column in SUM_COLUMNS})

    result = df.groupby("bucket", sort=True).agg(agg_dict)
    result = result.rename(columns={"open_time": "num_records"}).reset_index()
    result["open_time"] = result["bucket"].astype(np.int64)
    result["close_time"] = result["open_time"] + config.period_ms - 1

    return result[KLINE_COLUMNS + ["num_records"]]
