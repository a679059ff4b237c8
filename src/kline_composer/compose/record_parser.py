"""Parser for 1-minute kline CSV lines.

Binance public-data archives store one kline per line with 12
comma-separated fields:

    open_time, open, high, low, close, volume, close_time,
    quote_volume, trade_count, taker_buy_base_volume,
    taker_buy_quote_volume, ignore

Numeric parsing is lenient by default: a sub-field that does not parse
as the expected type decodes to zero instead of rejecting the line.
Pass ``strict=True`` to raise :class:`NumericFieldError` instead.
"""

from __future__ import annotations

import re
from dataclasses import dataclass


KLINE_COLUMNS = [
    "open_time",
    "open",
    "high",
    "low",
    "close",
    "volume",
    "close_time",
    "quote_volume",
    "trade_count",
    "taker_buy_base_volume",
    "taker_buy_quote_volume",
    "ignore",
]

INT_COLUMNS = frozenset({"open_time", "close_time", "trade_count"})

INT_PATTERN = re.compile(r"[+-]?[0-9]+")
FLOAT_PATTERN = re.compile(
    r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|[+-]?inf(?:inity)?|nan",
    re.IGNORECASE,
)


class ParseError(ValueError):
    """A line could not be decoded into a kline."""


class EmptyLineError(ParseError):
    """The line is empty after trimming whitespace."""

    def __init__(self):
        super().__init__("empty line")


class FieldCountError(ParseError):
    """The line does not split into exactly 12 fields."""

    def __init__(self, count: int):
        super().__init__(f"expected {len(KLINE_COLUMNS)} fields, got {count}")
        self.count = count


class NumericFieldError(ParseError):
    """A numeric sub-field failed to parse (strict mode only)."""

    def __init__(self, column: str, value: str):
        super().__init__(f"invalid value for {column}: {value!r}")
        self.column = column
        self.value = value


@dataclass(frozen=True)
class KlineRecord:
    """One OHLCV kline."""

    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    close_time: int
    quote_volume: float
    trade_count: int
    taker_buy_base_volume: float
    taker_buy_quote_volume: float
    ignore: float


def _parse_number(column: str, value: str, strict: bool) -> int | float:
    if column in INT_COLUMNS:
        cast, pattern = int, INT_PATTERN
    else:
        cast, pattern = float, FLOAT_PATTERN
    # int() and float() also accept underscores and surrounding whitespace
    if pattern.fullmatch(value):
        return cast(value)
    if strict:
        raise NumericFieldError(column, value)
    return cast(0)


def parse_kline(line: str, strict: bool = False) -> KlineRecord:
    """Parse one CSV line into a KlineRecord.

    Args:
        line: Raw text line (surrounding whitespace is ignored)
        strict: Raise on malformed numeric sub-fields instead of using 0

    Returns:
        Parsed KlineRecord

    Raises:
        EmptyLineError: Line is empty after trimming
        FieldCountError: Line does not have exactly 12 fields
        NumericFieldError: Malformed numeric sub-field with strict=True
    """
    line = line.strip()
    if not line:
        raise EmptyLineError()

    pieces = line.split(",")
    if len(pieces) != len(KLINE_COLUMNS):
        raise FieldCountError(len(pieces))

    values = {
        column: _parse_number(column, value, strict)
        for column, value in zip(KLINE_COLUMNS, pieces)
    }
    return KlineRecord(**values)
