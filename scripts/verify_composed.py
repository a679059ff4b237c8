from __future__ import annotations

"""Cross-check composed kline files against a pandas re-aggregation.

Reads a ticker's 1-minute archives into a DataFrame, re-aggregates them
with ``aggregate_frame`` for each requested phase offset and compares the
result with the composed CSV written by ``kline-composer compose``.
Prices and volumes are compared after rounding to the 8 decimals used in
the output files.
"""

import argparse
import logging
from pathlib import Path

import numpy as np
import pandas as pd

from kline_composer.compose import (
    KLINE_COLUMNS,
    AggregatorConfig,
    ArchiveReader,
    ArchiveScanner,
    KlineWriter,
    aggregate_frame,
    iter_records,
    read_composed_klines,
)
from kline_composer.utils.timezone import DEFAULT_EPOCH_BASE, to_epoch_ms


LOGGER = logging.getLogger(__name__)

FLOAT_COLUMNS = [c for c in KLINE_COLUMNS if c not in ("open_time", "close_time", "trade_count")]


def load_minute_klines(folder: str, date_range: str, ticker: str, market: str) -> pd.DataFrame:
    scanner = ArchiveScanner(folder, date_range, market=market)
    reader = ArchiveReader()
    records = iter_records(reader.iter_ticker_lines(scanner.iter_archives(ticker)))
    return pd.DataFrame([vars(r) for r in records], columns=KLINE_COLUMNS)


def compare(expected: pd.DataFrame, actual: pd.DataFrame) -> int:
    """Return the number of mismatching rows (or row-count difference)."""
    if len(expected) != len(actual):
        LOGGER.error("Row count differs: expected %d, found %d", len(expected), len(actual))
        return abs(len(expected) - len(actual))

    expected = expected.reset_index(drop=True)
    actual = actual.reset_index(drop=True)

    int_cols = ["open_time", "close_time", "trade_count"]
    bad = (expected[int_cols].to_numpy() != actual[int_cols].to_numpy()).any(axis=1)
    bad |= ~np.isclose(
        expected[FLOAT_COLUMNS].round(8).to_numpy(dtype=float),
        actual[FLOAT_COLUMNS].to_numpy(dtype=float),
        rtol=0,
        atol=1e-8,
    ).all(axis=1)

    for idx in np.flatnonzero(bad)[:5]:
        LOGGER.error("Mismatch at open_time=%s", expected.loc[idx, "open_time"])
    return int(bad.sum())


def main() -> int:
    ap = argparse.ArgumentParser(description="Verify composed klines against a pandas re-aggregation.")
    ap.add_argument("--folder", required=True, help="Binance download folder")
    ap.add_argument("--download-date-range", default="2017-01-01_2023-12-31")
    ap.add_argument("--ticker", required=True)
    ap.add_argument("--interval", type=int, default=30)
    ap.add_argument("--offsets", default=None, help="Comma-separated offsets (default: all)")
    ap.add_argument("--market", default="spot")
    ap.add_argument("--epoch-base", default=DEFAULT_EPOCH_BASE)
    ap.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = ap.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO), format="%(levelname)s %(message)s")

    ticker = args.ticker.upper()
    if args.offsets:
        offsets = [int(o.strip()) for o in args.offsets.split(",")]
    else:
        offsets = list(range(args.interval))

    minutes = load_minute_klines(args.folder, args.download_date_range, ticker, args.market)
    LOGGER.info("Loaded %d 1-minute klines for %s", len(minutes), ticker)

    writer = KlineWriter(Path(args.folder.rstrip("/")) / "composed_klines", market=args.market)
    epoch_base_ms = to_epoch_ms(args.epoch_base)

    failures = 0
    for offset in offsets:
        path = writer.output_path(ticker, args.interval, offset)
        cfg = AggregatorConfig(args.interval, offset, epoch_base_ms)
        expected = aggregate_frame(minutes, cfg)[KLINE_COLUMNS]

        try:
            actual = read_composed_klines(path)
        except FileNotFoundError as e:
            LOGGER.error("%s", e)
            failures += 1
            continue

        mismatches = compare(expected, actual)
        if mismatches:
            LOGGER.error("%s: %d mismatching rows", path.name, mismatches)
            failures += 1
        else:
            LOGGER.info("%s: %d klines OK", path.name, len(actual))

    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
