"""
Zip container helpers for NEMWEB exports.

NEMWEB publishes each report as a zip holding one (occasionally several)
MMS CSV entries. These helpers only open the container and hand raw
entry bytes to the batch aggregator; decoding and parsing happen there
so that one bad entry never hides the others.

``parse_zip`` hands the aggregator a reader per entry rather than the
bytes themselves, so an entry whose compressed data is corrupt fails on
its own as an ``EntryFailure`` while the healthy entries are still parsed.
"""

from __future__ import annotations

import functools
import io
import logging
import zipfile
import zlib
from pathlib import Path
from typing import Iterator

from nem_mms_ingest.batch import ParseResultCollection, parse_entries
from nem_mms_ingest.config import IngestConfig
from nem_mms_ingest.exceptions import FetchError
from nem_mms_ingest.schema_registry import SchemaRegistry

logger = logging.getLogger(__name__)

# What zipfile raises for a damaged entry: CRC mismatch, bad deflate
# stream, truncated data, unsupported compression method.
_ENTRY_READ_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError)


def _open_zip(source: str | Path | bytes) -> zipfile.ZipFile:
    try:
        if isinstance(source, (bytes, bytearray)):
            return zipfile.ZipFile(io.BytesIO(source))
        return zipfile.ZipFile(source)
    except zipfile.BadZipFile as exc:
        label = "<bytes>" if isinstance(source, (bytes, bytearray)) else str(source)
        raise FetchError(f"Not a readable zip archive: {label}: {exc}") from exc


def _read_entry(zf: zipfile.ZipFile, info: zipfile.ZipInfo) -> bytes:
    try:
        return zf.read(info)
    except _ENTRY_READ_ERRORS as exc:
        raise FetchError(f"Corrupt zip entry {info.filename}: {exc}") from exc


def _file_entries(zf: zipfile.ZipFile) -> list[zipfile.ZipInfo]:
    return [info for info in zf.infolist() if not info.is_dir()]


def iter_zip_entries(source: str | Path | bytes) -> Iterator[tuple[str, bytes]]:
    """Yield ``(entry name, raw bytes)`` for every file entry, in archive order.

    Directory entries are skipped. *source* is a path or the archive bytes.

    Raises:
        FileNotFoundError: If *source* is a path that does not exist.
        FetchError: If *source* is not a zip archive, or an entry's data
            is corrupt.
    """
    with _open_zip(source) as zf:
        for info in _file_entries(zf):
            yield info.filename, _read_entry(zf, info)


def parse_zip(
    source: str | Path | bytes,
    registry: SchemaRegistry | None = None,
    config: IngestConfig | None = None,
    source_name: str | None = None,
) -> ParseResultCollection:
    """Parse every entry of a zip archive into one collection.

    The collection's ``source`` is *source_name*, or the path when *source*
    is a path; ``input_size_bytes`` is the size of the zip itself. A corrupt
    entry is reported in ``failures`` like any other entry that cannot be
    parsed.
    """
    if isinstance(source, (bytes, bytearray)):
        size = len(source)
        name = source_name
    else:
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Zip file not found: {path}")
        size = path.stat().st_size
        name = source_name or str(path)

    with _open_zip(source) as zf:
        infos = _file_entries(zf)
        logger.info("Opened %s: %d entries, %s bytes", name or "<bytes>", len(infos), f"{size:,}")
        return parse_entries(
            [(info.filename, functools.partial(_read_entry, zf, info)) for info in infos],
            registry=registry,
            config=config,
            source=name,
            input_size_bytes=size,
        )
