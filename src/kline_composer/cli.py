"""Command-line interface for the kline composer.

Usage:
    kline-composer compose --folder /data/binance --tickers BTCUSDT,ETHUSDT --interval 30
    kline-composer compose --config config/default.yaml
    kline-composer info --folder /data/binance --ticker BTCUSDT
    kline-composer offsets --interval 30 --timestamp 2021-03-01T12:07:00Z
"""

import logging
from typing import Optional

import typer

from .config import ComposeConfig, load_config
from .utils.timezone import DEFAULT_EPOCH_BASE, format_epoch_ms, to_epoch_ms

app = typer.Typer(
    name="kline-composer",
    help="Compose Binance 1-minute klines into N-minute klines at every phase offset",
    add_completion=False,
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def setup_logging(log_level: str) -> None:
    level = log_level.upper()
    if level not in LOG_LEVELS:
        raise typer.BadParameter(f"Unknown log level {log_level!r}; choose from {', '.join(LOG_LEVELS)}")
    logging.basicConfig(level=getattr(logging, level), format="%(levelname)s %(message)s")


def build_config(config: Optional[str], **overrides) -> ComposeConfig:
    """Merge an optional YAML file with command-line overrides.

    Raises ``typer.BadParameter`` with a clear message on failure.
    """
    try:
        cfg = load_config(config) if config else {}
    except OSError as e:
        raise typer.BadParameter(f"Cannot read config {config}: {e}")

    try:
        return ComposeConfig.from_mapping(cfg, **overrides)
    except ValueError as e:
        raise typer.BadParameter(str(e))


@app.command()
def compose(
    config: Optional[str] = typer.Option(
        None,
        "--config", "-c",
        help="Path to YAML configuration file",
    ),
    folder: Optional[str] = typer.Option(
        None,
        "--folder", "-f",
        help="Folder used by the Binance download script for 1-minute klines",
    ),
    download_date_range: Optional[str] = typer.Option(
        None,
        "--download-date-range",
        help="{startDate}_{endDate} used when downloading (e.g., 2017-01-01_2023-12-31)",
    ),
    tickers: Optional[str] = typer.Option(
        None,
        "--tickers", "-t",
        help="Comma-separated trading pairs (e.g., BTCUSDT,ETHUSDT)",
    ),
    interval: Optional[int] = typer.Option(
        None,
        "--interval", "-n",
        help="Output kline period in minutes",
    ),
    market: Optional[str] = typer.Option(None, "--market", help="Market segment (default spot)"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Worker processes"),
    strict: Optional[bool] = typer.Option(
        None,
        "--strict/--lenient",
        help="Reject lines with malformed numbers instead of reading them as 0",
    ),
    log_level: str = typer.Option("INFO", "--log-level", help="DEBUG, INFO, WARNING or ERROR"),
):
    """Compose N-minute klines for every phase offset 0..N-1."""
    from .compose import run_compose

    setup_logging(log_level)
    compose_cfg = build_config(
        config,
        folder=folder,
        download_date_range=download_date_range,
        tickers=tickers,
        interval=interval,
        market=market,
        workers=workers,
        strict_numeric=strict,
    )

    typer.echo(f"Composing {compose_cfg.interval}m klines for: {', '.join(compose_cfg.tickers)}")
    typer.echo(f"Output: {compose_cfg.output_dir}")

    results = run_compose(compose_cfg)

    failed = 0
    for ticker, rows in results.items():
        done = [r for r in rows if r["status"] == "success"]
        errors = [r for r in rows if r["status"] == "error"]
        failed += len(errors)

        if not done and not errors:
            typer.echo(f"{ticker}: no archives found")
            continue

        klines = sum(r["klines_written"] for r in done)
        malformed = sum(r["malformed_lines"] for r in done)
        typer.echo(
            f"{ticker}: {len(done)}/{len(rows)} offsets composed, "
            f"{klines:,} klines written, {malformed:,} malformed lines"
        )
        for r in errors:
            typer.echo(f"  offset {r['offset']:02d} failed: {r['error']}")

    if failed:
        raise typer.Exit(code=1)


@app.command()
def info(
    folder: str = typer.Option(..., "--folder", "-f", help="Download folder"),
    download_date_range: str = typer.Option(
        "2017-01-01_2023-12-31",
        "--download-date-range",
        help="{startDate}_{endDate} used when downloading",
    ),
    ticker: Optional[str] = typer.Option(None, "--ticker", "-t", help="Trading pair (default: all found)"),
    market: str = typer.Option("spot", "--market", help="Market segment"),
):
    """Show which monthly archives are available."""
    from .compose import ArchiveScanner

    try:
        scanner = ArchiveScanner(folder, download_date_range, market=market)
    except ValueError as e:
        raise typer.BadParameter(str(e))

    tickers = [ticker.upper()] if ticker else scanner.discover_tickers()
    if not tickers:
        typer.echo(f"No tickers found under {folder}")
        return

    for name in tickers:
        stats = scanner.get_archive_stats(name)

        typer.echo(f"\nArchives for {name}:")
        typer.echo(f"  Files: {stats['archive_count']}/{stats['expected_months']}")
        typer.echo(f"  Size: {stats['total_size_mb']:.1f} MB")

        month_range = stats.get("month_range")
        if month_range:
            typer.echo(f"  Months: {month_range[0]} - {month_range[1]}")

        missing = stats.get("missing_months", [])
        if missing and stats["archive_count"]:
            typer.echo(f"  Missing: {len(missing)} (first: {missing[0]})")


@app.command()
def offsets(
    interval: int = typer.Option(..., "--interval", "-n", help="Kline period in minutes"),
    timestamp: str = typer.Option(..., "--timestamp", help="Epoch milliseconds or ISO timestamp (UTC)"),
    epoch_base: str = typer.Option(DEFAULT_EPOCH_BASE, "--epoch-base", help="Zero point for bucket arithmetic"),
):
    """Show the bucket containing a timestamp at every phase offset."""
    from .compose import AggregatorConfig, bucket_open

    try:
        ts_ms = to_epoch_ms(int(timestamp) if timestamp.isdigit() else timestamp)
        base_ms = to_epoch_ms(epoch_base)
        AggregatorConfig(interval, 0, base_ms)
        configs = [AggregatorConfig(interval, offset, base_ms) for offset in range(interval)]
    except ValueError as e:
        raise typer.BadParameter(str(e))

    for cfg in configs:
        try:
            open_ms = bucket_open(ts_ms, cfg)
        except ValueError as e:
            typer.echo(f"offset {cfg.phase_offset_minutes:02d}: {e}")
            continue
        close_ms = open_ms + cfg.period_ms - 1
        typer.echo(
            f"offset {cfg.phase_offset_minutes:02d}: "
            f"{open_ms} - {close_ms} ({format_epoch_ms(open_ms)} - {format_epoch_ms(close_ms)})"
        )


def main() -> None:
    """Entrypoint for the console script."""
    app()


if __name__ == "__main__":
    main()
