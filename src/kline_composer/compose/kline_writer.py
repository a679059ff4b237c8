"""Output helpers for composed klines.

Composed klines are written as plain CSV (same 12-field layout as the
Binance source files), one file per (ticker, interval, phase offset):

    {base_dir}/{market}-klines-{TICKER}-{N}m-{OO}.csv

Per-pass statistics go to a small Parquet QC report per ticker.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator

import pandas as pd

from .bucket_aggregator import format_kline
from .record_parser import KLINE_COLUMNS, KlineRecord


LOGGER = logging.getLogger(__name__)


class KlineWriter:
    """Write composed klines and QC reports."""

    def __init__(self, base_dir: str | Path, market: str = "spot"):
        """Initialize writer.

        Args:
            base_dir: Output directory (created on first write)
            market: Market segment used as the filename prefix
        """
        self.base_dir = Path(base_dir)
        self.market = market

    def output_path(self, ticker: str, interval: int, offset: int) -> Path:
        prefix = self.market.replace("/", "-")
        return self.base_dir / f"{prefix}-klines-{ticker}-{interval}m-{offset:02d}.csv"

    @contextmanager
    def open_sink(
        self,
        ticker: str,
        interval: int,
        offset: int,
    ) -> Iterator[Callable[[KlineRecord], None]]:
        """Open the output file for one pass and yield a write function.

        Any previous file is truncated. If the pass raises, the partial
        file is deleted before the exception propagates.

        Args:
            ticker: Trading pair
            interval: Output period in minutes
            offset: Phase offset in minutes

        Yields:
            Callable writing one KlineRecord as a newline-terminated line
        """
        path = self.output_path(ticker, interval, offset)
        path.parent.mkdir(parents=True, exist_ok=True)

        fh = open(path, "w", encoding="utf-8", newline="\n")

        def write(record: KlineRecord) -> None:
            fh.write(format_kline(record))
            fh.write("\n")

        try:
            yield write
        except BaseException:
            fh.close()
            path.unlink(missing_ok=True)
            LOGGER.warning("Removed incomplete output %s", path)
            raise
        else:
            fh.close()

    def write_qc_report(self, stats: list[dict], ticker: str, interval: int) -> Path:
        """Write per-pass statistics for a ticker to Parquet."""
        output_dir = self.base_dir / "qc"
        output_dir.mkdir(parents=True, exist_ok=True)

        output_path = output_dir / f"{ticker}-{interval}m_qc.parquet"
        df = pd.DataFrame(stats)
        df.to_parquet(output_path, index=False)

        return output_path


def read_composed_klines(path: str | Path) -> pd.DataFrame:
    """Read a composed kline CSV into a DataFrame."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Composed klines not found: {path}")

    return pd.read_csv(path, names=KLINE_COLUMNS, header=None)


def read_qc_report(base_dir: str | Path, ticker: str, interval: int) -> pd.DataFrame:
    """Read a ticker's QC report from Parquet."""
    path = Path(base_dir) / "qc" / f"{ticker}-{interval}m_qc.parquet"
    if not path.exists():
        raise FileNotFoundError(f"QC report not found: {path}")

    return pd.read_parquet(path)
