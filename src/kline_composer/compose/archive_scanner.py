"""Scanner for Binance monthly 1-minute kline archives.

Archives follow the layout written by the official Binance public-data
download script:

    {folder}/data/{market}/monthly/klines/{TICKER}/1m/{date_range}/{TICKER}-1m-{YYYY-MM}.zip
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from ..utils.month_ranges import months_for_date_range


SOURCE_INTERVAL = "1m"


@dataclass
class ArchiveFile:
    """Metadata for one monthly archive."""

    path: Path
    ticker: str
    month: str      # e.g., "2021-03"
    file_size: int

    @property
    def filename(self) -> str:
        return self.path.name


class ArchiveScanner:
    """Locate a ticker's monthly archives in chronological order."""

    def __init__(
        self,
        folder: str | Path,
        download_date_range: str,
        market: str = "spot",
    ):
        """Initialize scanner.

        Args:
            folder: Root folder passed to the download script
            download_date_range: "{startDate}_{endDate}" used for the download
            market: Binance market segment ("spot", "futures/um", ...)
        """
        self.folder = Path(folder)
        self.download_date_range = download_date_range
        self.market = market
        self.months = months_for_date_range(download_date_range)

    def ticker_dir(self, ticker: str) -> Path:
        return (
            self.folder / "data" / self.market / "monthly" / "klines"
            / ticker / SOURCE_INTERVAL / self.download_date_range
        )

    def archive_path(self, ticker: str, month: str) -> Path:
        return self.ticker_dir(ticker) / f"{ticker}-{SOURCE_INTERVAL}-{month}.zip"

    def iter_archives(self, ticker: str) -> Iterator[ArchiveFile]:
        """Iterate over a ticker's existing archives, oldest month first.

        Months without an archive are skipped.

        Args:
            ticker: Trading pair (e.g., "BTCUSDT")

        Yields:
            ArchiveFile objects
        """
        ticker = ticker.upper()
        for month in self.months:
            path = self.archive_path(ticker, month)
            if not path.is_file():
                continue
            yield ArchiveFile(
                path=path,
                ticker=ticker,
                month=month,
                file_size=path.stat().st_size,
            )

    def scan_ticker(self, ticker: str) -> list[ArchiveFile]:
        return list(self.iter_archives(ticker))

    def discover_tickers(self) -> list[str]:
        """List tickers that have a folder for this download range."""
        klines_dir = self.folder / "data" / self.market / "monthly" / "klines"
        if not klines_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in klines_dir.iterdir()
            if (entry / SOURCE_INTERVAL / self.download_date_range).is_dir()
        )

    def get_archive_stats(self, ticker: str) -> dict:
        """Get statistics for a ticker's archives.

        Args:
            ticker: Trading pair

        Returns:
            Dictionary with archive statistics
        """
        archives = self.scan_ticker(ticker)

        if not archives:
            return {
                "ticker": ticker.upper(),
                "archive_count": 0,
                "expected_months": len(self.months),
                "total_size_mb": 0,
                "month_range": None,
                "missing_months": list(self.months),
            }

        found = {a.month for a in archives}
        total_size = sum(a.file_size for a in archives)

        return {
            "ticker": ticker.upper(),
            "archive_count": len(archives),
            "expected_months": len(self.months),
            "total_size_mb": round(total_size / (1024 * 1024), 2),
            "month_range": (archives[0].month, archives[-1].month),
            "missing_months": [m for m in self.months if m not in found],
        }
