"""Tests for utility modules."""

import pytest
from datetime import date, datetime

import pandas as pd

from kline_composer.utils.month_ranges import (
    parse_date_range,
    month_ranges,
    months_for_date_range,
)
from kline_composer.utils.timezone import (
    DEFAULT_EPOCH_BASE,
    DEFAULT_EPOCH_BASE_MS,
    UTC_TZ,
    format_epoch_ms,
    from_epoch_ms,
    to_epoch_ms,
    to_utc,
)


class TestMonthRanges:
    """Tests for download range utilities."""

    def test_parse_date_range(self):
        start, end = parse_date_range("2017-01-01_2023-12-31")
        assert start == date(2017, 1, 1)
        assert end == date(2023, 12, 31)

    def test_parse_invalid(self):
        for value in ("2017-01-01", "2017-01-01-2023-12-31", "2017-13-01_2018-01-01", ""):
            with pytest.raises(ValueError):
                parse_date_range(value)

    def test_parse_inverted(self):
        with pytest.raises(ValueError):
            parse_date_range("2020-01-01_2019-12-31")

    def test_month_ranges_partial_months(self):
        assert month_ranges(date(2017, 1, 15), date(2017, 3, 2)) == ["2017-01", "2017-02", "2017-03"]

    def test_month_ranges_cross_year(self):
        assert month_ranges(date(2019, 11, 1), date(2020, 2, 1)) == [
            "2019-11", "2019-12", "2020-01", "2020-02",
        ]

    def test_default_download_range(self):
        months = months_for_date_range("2017-01-01_2023-12-31")
        assert len(months) == 84
        assert months[0] == "2017-01"
        assert months[-1] == "2023-12"


class TestTimezone:
    """Tests for epoch-millisecond helpers."""

    def test_default_epoch_base(self):
        assert to_epoch_ms(DEFAULT_EPOCH_BASE) == DEFAULT_EPOCH_BASE_MS

    def test_naive_values_are_utc(self):
        assert to_epoch_ms("2017-01-01 00:00:00") == DEFAULT_EPOCH_BASE_MS
        assert to_epoch_ms(datetime(2017, 1, 1)) == DEFAULT_EPOCH_BASE_MS

    def test_aware_values_are_converted(self):
        assert to_epoch_ms("2017-01-01T08:00:00+08:00") == DEFAULT_EPOCH_BASE_MS

    def test_integers_pass_through(self):
        assert to_epoch_ms(1614600420000) == 1614600420000

    def test_invalid_string(self):
        with pytest.raises(ValueError):
            to_epoch_ms("not a time")

    def test_from_epoch_ms(self):
        ts = from_epoch_ms(DEFAULT_EPOCH_BASE_MS + 90_000)
        assert ts == pd.Timestamp("2017-01-01 00:01:30", tz=UTC_TZ)
        assert to_utc(ts) == ts

    def test_format_epoch_ms(self):
        assert format_epoch_ms(DEFAULT_EPOCH_BASE_MS + 1) == "2017-01-01 00:00:00.001Z"
