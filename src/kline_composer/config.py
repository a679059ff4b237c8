from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from .utils.month_ranges import months_for_date_range
from .utils.timezone import DEFAULT_EPOCH_BASE, to_epoch_ms


def load_config(config_path: str | Path) -> dict:
    """Load configuration from YAML file."""
    with open(config_path) as f:
        return yaml.safe_load(f) or {}


@dataclass(frozen=True)
class ComposeConfig:
    folder: str
    tickers: tuple[str, ...]
    interval: int = 30

    # "{startDate}_{endDate}" passed to the Binance download script
    download_date_range: str = "2017-01-01_2023-12-31"
    market: str = "spot"

    # Zero point for bucket arithmetic; must precede every source kline
    epoch_base: str = DEFAULT_EPOCH_BASE

    # Worker processes for the (ticker, offset) sweep; 1 runs sequentially
    workers: int = 1

    # Reject malformed numeric sub-fields instead of reading them as 0
    strict_numeric: bool = False

    def __post_init__(self):
        if not self.folder:
            raise ValueError("folder must be set")
        if not self.tickers:
            raise ValueError("at least one ticker is required")
        if self.interval <= 0:
            raise ValueError(f"interval must be positive, got {self.interval}")
        if self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers}")
        # Fail early on malformed values
        months_for_date_range(self.download_date_range)
        to_epoch_ms(self.epoch_base)

    @property
    def epoch_base_ms(self) -> int:
        return to_epoch_ms(self.epoch_base)

    @property
    def output_dir(self) -> Path:
        return Path(self.folder) / "composed_klines"

    @property
    def months(self) -> list[str]:
        return months_for_date_range(self.download_date_range)

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any], **overrides: Any) -> "ComposeConfig":
        """Build a config from a YAML mapping; non-None overrides win.

        Expected layout::

            paths:
              folder: /data/binance
              download_date_range: 2017-01-01_2023-12-31
            tickers: [BTCUSDT, ETHUSDT]
            compose:
              interval: 30
              market: spot
              epoch_base: "2017-01-01T00:00:00Z"
              workers: 1
              strict_numeric: false
        """
        paths = cfg.get("paths") or {}
        compose = cfg.get("compose") or {}

        values: dict[str, Any] = {}
        if "folder" in paths:
            values["folder"] = str(paths["folder"]).rstrip("/")
        if "download_date_range" in paths:
            values["download_date_range"] = str(paths["download_date_range"])
        if cfg.get("tickers"):
            values["tickers"] = _normalize_tickers(cfg["tickers"])
        for key in ("interval", "market", "epoch_base", "workers", "strict_numeric"):
            if key in compose:
                values[key] = compose[key]
        if "epoch_base" in values:
            values["epoch_base"] = str(values["epoch_base"])

        for key, value in overrides.items():
            if value is None:
                continue
            if key == "tickers":
                value = _normalize_tickers(value)
            elif key == "folder":
                value = str(value).rstrip("/")
            values[key] = value

        values.setdefault("folder", "")
        values.setdefault("tickers", ())
        return cls(**values)


def _normalize_tickers(tickers: str | list[str] | tuple[str, ...]) -> tuple[str, ...]:
    if isinstance(tickers, str):
        tickers = tickers.split(",")
    return tuple(t.strip().upper() for t in tickers if t and t.strip())
