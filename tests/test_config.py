"""Tests for compose configuration."""

from pathlib import Path

import pytest

from kline_composer.config import ComposeConfig, load_config
from kline_composer.utils.timezone import DEFAULT_EPOCH_BASE_MS


DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / "config" / "default.yaml"


class TestComposeConfig:
    """Tests for ComposeConfig construction and validation."""

    def test_defaults(self):
        cfg = ComposeConfig(folder="/data", tickers=("BTCUSDT",))
        assert cfg.interval == 30
        assert cfg.market == "spot"
        assert cfg.workers == 1
        assert cfg.strict_numeric is False
        assert cfg.epoch_base_ms == DEFAULT_EPOCH_BASE_MS
        assert cfg.output_dir == Path("/data/composed_klines")
        assert len(cfg.months) == 84

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"folder": ""},
            {"tickers": ()},
            {"interval": 0},
            {"workers": 0},
            {"download_date_range": "2017"},
            {"epoch_base": "yesterday-ish"},
        ],
    )
    def test_invalid(self, kwargs):
        values = {"folder": "/data", "tickers": ("BTCUSDT",)}
        values.update(kwargs)
        with pytest.raises(ValueError):
            ComposeConfig(**values)

    def test_from_mapping(self):
        cfg = ComposeConfig.from_mapping({
            "paths": {"folder": "/data/binance/", "download_date_range": "2020-01-01_2020-06-30"},
            "tickers": ["btcusdt", " ethusdt "],
            "compose": {"interval": 15, "workers": 4, "strict_numeric": True},
        })
        assert cfg.folder == "/data/binance"
        assert cfg.tickers == ("BTCUSDT", "ETHUSDT")
        assert cfg.interval == 15
        assert cfg.workers == 4
        assert cfg.strict_numeric is True
        assert cfg.months[-1] == "2020-06"

    def test_overrides_win(self):
        cfg = ComposeConfig.from_mapping(
            {"paths": {"folder": "/a"}, "tickers": ["BTCUSDT"], "compose": {"interval": 15}},
            folder="/b",
            tickers="SOLUSDT,DOGEUSDT",
            interval=None,
        )
        assert cfg.folder == "/b"
        assert cfg.tickers == ("SOLUSDT", "DOGEUSDT")
        assert cfg.interval == 15

    def test_missing_tickers(self):
        with pytest.raises(ValueError):
            ComposeConfig.from_mapping({"paths": {"folder": "/a"}})

    def test_default_yaml(self):
        cfg = ComposeConfig.from_mapping(load_config(DEFAULT_CONFIG))
        assert cfg.interval == 30
        assert "BTCUSDT" in cfg.tickers
        assert cfg.download_date_range == "2017-01-01_2023-12-31"
        assert cfg.epoch_base_ms == DEFAULT_EPOCH_BASE_MS
