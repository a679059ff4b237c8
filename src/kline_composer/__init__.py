"""Compose Binance 1-minute klines into N-minute klines at every phase offset."""

__version__ = "0.1.0"
