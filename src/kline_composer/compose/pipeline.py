"""Compose pipeline: monthly 1-minute archives to N-minute klines.

For every ticker the pipeline runs one independent pass per phase offset
``0..interval-1``; each pass streams the ticker's archives in month order
through a fresh BucketAggregator and writes its own output file.
"""

from __future__ import annotations

import concurrent.futures
import logging
from datetime import datetime

import pandas as pd

from ..config import ComposeConfig
from .archive_scanner import ArchiveScanner
from .bucket_aggregator import AggregatorConfig, BucketAggregator
from .kline_writer import KlineWriter
from .streaming_reader import ArchiveReader, StreamStats, iter_records


LOGGER = logging.getLogger(__name__)


class ComposePipeline:
    """Run (ticker, offset) composition passes."""

    def __init__(self, config: ComposeConfig):
        """Initialize pipeline.

        Args:
            config: Source layout, tickers, interval and run options
        """
        self.config = config

        self.scanner = ArchiveScanner(
            config.folder,
            config.download_date_range,
            market=config.market,
        )
        self.reader = ArchiveReader()
        self.writer = KlineWriter(config.output_dir, market=config.market)

    def compose_pass(self, ticker: str, offset: int) -> dict:
        """Compose one ticker at one phase offset.

        Args:
            ticker: Trading pair (e.g., "BTCUSDT")
            offset: Phase offset in minutes, 0 <= offset < interval

        Returns:
            Dictionary with pass statistics
        """
        start_time = datetime.now()
        interval = self.config.interval
        ticker = ticker.upper()

        archives = self.scanner.scan_ticker(ticker)
        if not archives:
            LOGGER.info("No archives for %s in %s", ticker, self.scanner.ticker_dir(ticker))
            return {"ticker": ticker, "interval": interval, "offset": offset, "status": "no_archives"}

        aggregator = BucketAggregator(
            AggregatorConfig(
                period_minutes=interval,
                phase_offset_minutes=offset,
                epoch_base_ms=self.config.epoch_base_ms,
            )
        )
        stream_stats = StreamStats()
        lines = self.reader.iter_ticker_lines(archives, stream_stats)
        records = iter_records(lines, strict=self.config.strict_numeric, stats=stream_stats)

        output_path = self.writer.output_path(ticker, interval, offset)
        with self.writer.open_sink(ticker, interval, offset) as write:
            for kline in aggregator.aggregate(records):
                write(kline)

        LOGGER.info("Created: %s", output_path)

        elapsed = (datetime.now() - start_time).total_seconds()
        return {
            "ticker": ticker,
            "interval": interval,
            "offset": offset,
            "status": "success",
            **stream_stats.to_dict(),
            "skipped_records": aggregator.skipped_records,
            "klines_written": aggregator.emitted,
            "output": str(output_path),
            "elapsed_seconds": round(elapsed, 2),
        }

    def safe_compose_pass(self, ticker: str, offset: int) -> dict:
        """Run compose_pass, recording a failure instead of raising."""
        try:
            return self.compose_pass(ticker, offset)
        except Exception as e:
            LOGGER.exception("Error composing %s offset %d", ticker, offset)
            return _error_row(ticker.upper(), self.config.interval, offset, e)

    def process_ticker(self, ticker: str) -> list[dict]:
        """Compose one ticker at every phase offset."""
        return [
            self.safe_compose_pass(ticker, offset)
            for offset in range(self.config.interval)
        ]

    def get_coverage_report(self, ticker: str) -> pd.DataFrame:
        """Get archive coverage by month for a ticker.

        Args:
            ticker: Trading pair

        Returns:
            DataFrame with one row per expected month
        """
        ticker = ticker.upper()
        found = {a.month: a for a in self.scanner.iter_archives(ticker)}

        records = []
        for month in self.scanner.months:
            archive = found.get(month)
            records.append({
                "ticker": ticker,
                "month": month,
                "found": archive is not None,
                "file_size_mb": round(archive.file_size / (1024 * 1024), 2) if archive else 0.0,
                "path": str(self.scanner.archive_path(ticker, month)),
            })

        return pd.DataFrame(records)


def _error_row(ticker: str, interval: int, offset: int, error: BaseException) -> dict:
    return {
        "ticker": ticker,
        "interval": interval,
        "offset": offset,
        "status": "error",
        "error": f"{type(error).__name__}: {error}",
    }


def _compose_task(config: ComposeConfig, ticker: str, offset: int) -> dict:
    return ComposePipeline(config).safe_compose_pass(ticker, offset)


def run_compose(config: ComposeConfig) -> dict[str, list[dict]]:
    """Compose every (ticker, offset) pair.

    Pairs run sequentially when ``config.workers == 1`` and in a process
    pool otherwise. A failing pair is recorded with status "error" and
    does not stop the others.

    Args:
        config: Compose configuration

    Returns:
        Dictionary mapping ticker -> pass statistics ordered by offset
    """
    pipeline = ComposePipeline(config)
    tickers = list(dict.fromkeys(t.upper() for t in config.tickers))
    tasks = [(ticker, offset) for ticker in tickers for offset in range(config.interval)]

    LOGGER.info(
        "Composing %dm klines for %s (%d passes, %d worker(s))",
        config.interval,
        ", ".join(tickers),
        len(tasks),
        config.workers,
    )

    rows: list[dict] = []
    if config.workers == 1:
        for ticker in tickers:
            rows.extend(pipeline.process_ticker(ticker))
    else:
        with concurrent.futures.ProcessPoolExecutor(max_workers=config.workers) as executor:
            future_to_task = {
                executor.submit(_compose_task, config, ticker, offset): (ticker, offset)
                for ticker, offset in tasks
            }
            for future in concurrent.futures.as_completed(future_to_task):
                ticker, offset = future_to_task[future]
                try:
                    rows.append(future.result())
                except Exception as e:
                    LOGGER.exception("Worker failed for %s offset %d", ticker, offset)
                    rows.append(_error_row(ticker, config.interval, offset, e))

    results: dict[str, list[dict]] = {ticker: [] for ticker in tickers}
    for row in rows:
        results[row["ticker"]].append(row)

    for ticker, ticker_rows in results.items():
        ticker_rows.sort(key=lambda r: r["offset"])
        if any(r["status"] != "no_archives" for r in ticker_rows):
            try:
                pipeline.writer.write_qc_report(ticker_rows, ticker, config.interval)
            except Exception:
                LOGGER.exception("Failed to write QC report for %s", ticker)

        failed = sum(r["status"] == "error" for r in ticker_rows)
        if failed:
            LOGGER.warning("%s: %d of %d passes failed", ticker, failed, len(ticker_rows))

    return results
