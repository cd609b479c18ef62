"""
nem-mms-ingest: typed parsing of AEMO NEMWEB "MMS CSV" exports.

An MMS CSV file interleaves several record kinds, each introduced by an
``I`` (information) row and followed by ``D`` (data) rows, and ends with a
``C,"END OF REPORT",n`` control row. This package turns such files into
typed, UTC-normalized pydantic records.

Public API surface:

- ``parse_lines(lines, ...)`` / ``parse_text(text, ...)`` -- scan one
  file's content; returns a ``ScanResult`` with ``records`` (flat, file
  order), ``sections`` (grouped by header), ``issues`` and
  ``unrecognized``.

- ``parse_entries(entries, ...)`` -- parse ``(name, bytes)`` pairs into a
  ``ParseResultCollection``; an entry that fails becomes an
  ``EntryFailure`` and never stops the batch.

- ``parse_zip(path_or_bytes, ...)`` -- the same for every entry of a zip.

- ``NemwebClient`` -- fetch directory listings and report zips from
  NEMWEB and parse them.

Registry: ``default_registry()`` knows TRADING/INTERCONNECTORRES v2,
TRADING/PRICE v3, ROOFTOP/ACTUAL v2 and ROOFTOP/FORECAST v1. Pass a
registry from ``build_registry()`` to parse other kinds.

Example::

    import nem_mms_ingest

    result = nem_mms_ingest.parse_zip("PUBLIC_TRADINGIS_202403031335_0000000412683134.zip")
    prices = result.records_of("price")
    frames = result.to_frames()
"""

from __future__ import annotations

from typing import Iterable

from nem_mms_ingest.archive import iter_zip_entries, parse_zip
from nem_mms_ingest.batch import EntryFailure, ParseResultCollection, parse_entries
from nem_mms_ingest.config import IngestConfig, NemwebConfig, load_config, save_config
from nem_mms_ingest.exceptions import MmsIngestError
from nem_mms_ingest.nemweb import NemwebClient, extract_zip_links
from nem_mms_ingest.records import (
    InterconnectorRecord,
    MmsRecord,
    PriceRecord,
    RecordVariant,
    RooftopPvActualRecord,
    RooftopPvForecastRecord,
)
from nem_mms_ingest.schema_registry import (
    Schema,
    SchemaKey,
    SchemaRegistry,
    build_registry,
    default_registry,
)
from nem_mms_ingest.sections import (
    IssueCode,
    RowIssue,
    ScanResult,
    Section,
    SectionScanner,
    UnrecognizedSchema,
)
from nem_mms_ingest.timeconv import to_utc

__all__ = [
    "parse_lines",
    "parse_text",
    "parse_entries",
    "parse_zip",
    "iter_zip_entries",
    "NemwebClient",
    "extract_zip_links",
    "IngestConfig",
    "NemwebConfig",
    "load_config",
    "save_config",
    "MmsIngestError",
    "MmsRecord",
    "InterconnectorRecord",
    "PriceRecord",
    "RooftopPvActualRecord",
    "RooftopPvForecastRecord",
    "RecordVariant",
    "Schema",
    "SchemaKey",
    "SchemaRegistry",
    "build_registry",
    "default_registry",
    "SectionScanner",
    "ScanResult",
    "Section",
    "RowIssue",
    "IssueCode",
    "UnrecognizedSchema",
    "EntryFailure",
    "ParseResultCollection",
    "to_utc",
]

__version__ = "0.1.0"


def parse_lines(
    lines: Iterable[str],
    registry: SchemaRegistry | None = None,
    config: IngestConfig | None = None,
    entry: str | None = None,
) -> ScanResult:
    """Scan the lines of one MMS CSV file.

    Args:
        lines: The file's lines, with or without terminators.
        registry: Schemas to dispatch to. Defaults to ``default_registry()``.
        config: Timezone, timestamp format and row-error policy.
        entry: Name attached to any issues, for diagnostics.

    Returns:
        A ``ScanResult``.

    Raises:
        RowError / MalformedRowError: Only with ``on_row_error="abort"``.
    """
    return SectionScanner(registry, config).scan(lines, entry=entry)


def parse_text(
    text: str,
    registry: SchemaRegistry | None = None,
    config: IngestConfig | None = None,
    entry: str | None = None,
) -> ScanResult:
    """Scan already-decoded MMS CSV content. See ``parse_lines()``."""
    return SectionScanner(registry, config).scan_text(text, entry=entry)
