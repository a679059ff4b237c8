"""Streaming reader for zipped 1-minute kline archives.

Each monthly archive holds a single CSV member. Lines are streamed one at
a time so a multi-year history never has to fit in memory.
"""

from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass, asdict
from typing import Iterable, Iterator, Optional

from .archive_scanner import ArchiveFile
from .record_parser import EmptyLineError, KlineRecord, ParseError, parse_kline


LOGGER = logging.getLogger(__name__)


@dataclass
class StreamStats:
    """Counters collected while streaming one pass."""

    archives: int = 0
    lines_read: int = 0
    records_parsed: int = 0
    empty_lines: int = 0
    malformed_lines: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class ArchiveReader:
    """Read kline lines out of monthly zip archives."""

    def __init__(self, encoding: str = "utf-8", errors: str = "replace"):
        """Initialize reader.

        Args:
            encoding: Text encoding of the CSV members
            errors: Decoding error handler. The default substitutes bad
                bytes so the line fails to parse instead of aborting the pass.
        """
        self.encoding = encoding
        self.errors = errors

    def iter_lines(self, archive: ArchiveFile) -> Iterator[str]:
        """Iterate over the lines of an archive's first member.

        Unreadable archives are logged and yield nothing.

        Args:
            archive: ArchiveFile to open

        Yields:
            Raw text lines
        """
        try:
            zf = zipfile.ZipFile(archive.path)
        except (zipfile.BadZipFile, OSError) as e:
            LOGGER.warning("Cannot open archive %s: %s", archive.path, e)
            return

        with zf:
            members = zf.infolist()
            if not members:
                LOGGER.warning("Archive %s has no members", archive.path)
                return

            with zf.open(members[0]) as raw:
                text = io.TextIOWrapper(
                    raw, encoding=self.encoding, errors=self.errors, newline=""
                )
                for line in text:
                    yield line

    def iter_ticker_lines(
        self,
        archives: Iterable[ArchiveFile],
        stats: Optional[StreamStats] = None,
    ) -> Iterator[str]:
        """Concatenate lines from several archives in the given order.

        Args:
            archives: Archives in chronological order
            stats: Optional counters to update

        Yields:
            Raw text lines
        """
        for archive in archives:
            if stats is not None:
                stats.archives += 1
            LOGGER.debug("Reading %s", archive.path)
            yield from self.iter_lines(archive)


def iter_records(
    lines: Iterable[str],
    strict: bool = False,
    stats: Optional[StreamStats] = None,
) -> Iterator[KlineRecord]:
    """Parse lines into klines, skipping lines that fail to parse.

    Args:
        lines: Raw text lines
        strict: Reject malformed numeric sub-fields instead of using 0
        stats: Optional counters to update

    Yields:
        Parsed KlineRecord objects
    """
    if stats is None:
        stats = StreamStats()

    for line in lines:
        stats.lines_read += 1
        try:
            record = parse_kline(line, strict=strict)
        except EmptyLineError:
            stats.empty_lines += 1
            LOGGER.debug("Skipping empty line %d", stats.lines_read)
            continue
        except ParseError as e:
            stats.malformed_lines += 1
            LOGGER.warning("Failed to parse line %d (%s): %r", stats.lines_read, e, line.strip())
            continue

        stats.records_parsed += 1
        yield record
