"""Composition of 1-minute klines into phase-shifted N-minute klines."""

from .record_parser import (
    KLINE_COLUMNS,
    KlineRecord,
    ParseError,
    EmptyLineError,
    FieldCountError,
    NumericFieldError,
    parse_kline,
)
from .bucket_aggregator import (
    AggregatorConfig,
    KlineAccumulator,
    BucketAggregator,
    bucket_open,
    bucket_close,
    format_kline,
    aggregate_frame,
)
from .archive_scanner import ArchiveScanner, ArchiveFile
from .streaming_reader import ArchiveReader, StreamStats, iter_records
from .kline_writer import KlineWriter, read_composed_klines, read_qc_report
from .pipeline import ComposePipeline, run_compose

__all__ = [
    "KLINE_COLUMNS",
    "KlineRecord",
    "ParseError",
    "EmptyLineError",
    "FieldCountError",
    "NumericFieldError",
    "parse_kline",
    "AggregatorConfig",
    "KlineAccumulator",
    "BucketAggregator",
    "bucket_open",
    "bucket_close",
    "format_kline",
    "aggregate_frame",
    "ArchiveScanner",
    "ArchiveFile",
    "ArchiveReader",
    "StreamStats",
    "iter_records",
    "KlineWriter",
    "read_composed_klines",
    "read_qc_report",
    "ComposePipeline",
    "run_compose",
]
