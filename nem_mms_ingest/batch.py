"""
Batch aggregator for nem-mms-ingest.

Parses a sequence of ``(entry name, raw bytes)`` pairs -- typically the
CSV entries of one NEMWEB zip archive -- into a single
``ParseResultCollection``.

Failure isolation is per entry: an entry that cannot be decoded, or that
aborts under ``on_row_error="abort"``, becomes one ``EntryFailure`` and
the batch moves on. Records from the other entries are unaffected, and
records in the collection always appear in entry order, then file order,
even when entries are parsed on a thread pool.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Iterable, Union

import pandas as pd

from nem_mms_ingest.config import IngestConfig
from nem_mms_ingest.exceptions import EntryFailureError, MmsIngestError
from nem_mms_ingest.records import MmsRecord
from nem_mms_ingest.schema_registry import SchemaRegistry, default_registry
from nem_mms_ingest.sections import RowIssue, ScanResult, SectionScanner, UnrecognizedSchema

logger = logging.getLogger(__name__)

# Raw entry bytes, or a zero-argument reader that returns them (and may
# raise MmsIngestError when the entry cannot be read).
EntryData = Union[bytes, Callable[[], bytes]]


@dataclass(frozen=True, slots=True)
class EntryFailure:
    """One entry that produced no records at all."""
    entry_name: str
    error_type: str         # exception class name, e.g. "UnicodeDecodeError"
    message: str


@dataclass
class ParseResultCollection:
    """Ordered outcome of parsing a batch of entries.

    Attributes:
        records: Records from every successful entry, entry order then file order.
        source: Name of the container (zip path/URL), if any.
        processing_time_ms: Wall-clock time spent in ``parse_entries()``.
        input_size_bytes: Container size when known, else the summed entry sizes.
        entry_count: Entries attempted, failed ones included.
        failures: One ``EntryFailure`` per entry that could not be parsed.
        issues: Row-level problems from the entries that were parsed.
        unrecognized: Header blocks with no registered schema.
    """

    records: list[MmsRecord] = field(default_factory=list)
    source: str | None = None
    processing_time_ms: float = 0.0
    input_size_bytes: int = 0
    entry_count: int = 0
    failures: list[EntryFailure] = field(default_factory=list)
    issues: list[RowIssue] = field(default_factory=list)
    unrecognized: list[UnrecognizedSchema] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when no entry failed."""
        return not self.failures

    @property
    def all_failed(self) -> bool:
        """True when there was at least one entry and every one failed."""
        return self.entry_count > 0 and len(self.failures) == self.entry_count

    def records_of(self, kind: str) -> list[MmsRecord]:
        """Records whose ``kind`` tag equals *kind*, in collection order."""
        return [r for r in self.records if r.kind == kind]

    def counts_by_kind(self) -> dict[str, int]:
        return dict(Counter(r.kind for r in self.records))

    def summary(self) -> str:
        """One-line description suitable for a log message."""
        kinds = ", ".join(f"{k}={n}" for k, n in self.counts_by_kind().items()) or "none"
        return (
            f"{self.source or '<entries>'}: {self.entry_count} entries, "
            f"{len(self.records)} records ({kinds}), "
            f"{len(self.failures)} failures, {len(self.issues)} issues, "
            f"{len(self.unrecognized)} unrecognized, "
            f"{self.input_size_bytes:,} bytes in {self.processing_time_ms:.1f} ms"
        )

    def raise_for_failures(self) -> None:
        """Raise ``EntryFailureError`` describing the first failed entry, if any."""
        if self.failures:
            first = self.failures[0]
            raise EntryFailureError(
                f"{len(self.failures)} of {self.entry_count} entries failed; "
                f"first: {first.entry_name} ({first.error_type}: {first.message})"
            )

    def to_frames(self) -> dict[str, pd.DataFrame]:
        """One DataFrame per record kind, columns in file order.

        Timestamps stay timezone-aware (UTC). No files are written.
        """
        grouped: dict[str, list[MmsRecord]] = {}
        for record in self.records:
            grouped.setdefault(record.kind, []).append(record)

        frames: dict[str, pd.DataFrame] = {}
        for kind, records in grouped.items():
            columns = list(type(records[0]).model_fields)
            frames[kind] = pd.DataFrame(
                [r.model_dump() for r in records],
                columns=columns,
            )
        return frames


# ---------------------------------------------------------------------------
# Per-entry parsing
# ---------------------------------------------------------------------------

@dataclass
class _EntryOutcome:
    name: str
    size: int
    scan: ScanResult | None = None
    failure: EntryFailure | None = None


def _parse_entry(
    scanner: SectionScanner,
    name: str,
    data: EntryData,
    encoding: str,
) -> _EntryOutcome:
    outcome = _EntryOutcome(name=name, size=0)
    try:
        if callable(data):
            data = data()
        outcome.size = len(data)
        text = data.decode(encoding, errors="strict")
        outcome.scan = scanner.scan_text(text, entry=name)
    except (UnicodeError, MmsIngestError) as exc:
        outcome.failure = EntryFailure(
            entry_name=name,
            error_type=type(exc).__name__,
            message=str(exc),
        )
    return outcome


def _merge(collection: ParseResultCollection, outcome: _EntryOutcome) -> None:
    collection.entry_count += 1
    collection.input_size_bytes += outcome.size
    if outcome.failure is not None:
        collection.failures.append(outcome.failure)
        logger.warning(
            "Entry %s failed: %s: %s",
            outcome.name, outcome.failure.error_type, outcome.failure.message,
        )
        return
    scan = outcome.scan
    collection.records.extend(scan.records)
    collection.issues.extend(scan.issues)
    collection.unrecognized.extend(scan.unrecognized)
    logger.info(
        "Entry %s: %d records, %d issues, %d unrecognized",
        outcome.name, len(scan.records), len(scan.issues), len(scan.unrecognized),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_entries(
    entries: Iterable[tuple[str, EntryData]],
    registry: SchemaRegistry | None = None,
    config: IngestConfig | None = None,
    source: str | None = None,
    input_size_bytes: int | None = None,
) -> ParseResultCollection:
    """Parse every entry and merge the results in entry order.

    Args:
        entries: ``(name, raw bytes)`` pairs. The bytes may instead be a
            zero-argument reader, called inside the entry's own failure
            isolation.
        registry: Schemas to dispatch to. Defaults to ``default_registry()``.
        config: Decoding, timezone and error policy; ``max_workers > 1``
            parses entries concurrently.
        source: Container name recorded on the collection.
        input_size_bytes: Container size to record instead of the summed
            entry sizes (e.g. the zip file's size).

    Returns:
        A ``ParseResultCollection``. This function does not raise for bad
        entries; inspect ``failures`` / ``all_failed`` instead.
    """
    config = config or IngestConfig()
    registry = registry if registry is not None else default_registry()
    scanner = SectionScanner(registry, config)
    started = time.perf_counter()

    items = list(entries)
    if config.max_workers > 1 and len(items) > 1:
        workers = min(config.max_workers, len(items))
        logger.debug("Parsing %d entries on %d threads", len(items), workers)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(
                pool.map(lambda item: _parse_entry(scanner, item[0], item[1], config.encoding), items)
            )
    else:
        outcomes = [_parse_entry(scanner, name, data, config.encoding) for name, data in items]

    collection = ParseResultCollection(source=source)
    for outcome in outcomes:
        _merge(collection, outcome)
    if input_size_bytes is not None:
        collection.input_size_bytes = input_size_bytes
    collection.processing_time_ms = (time.perf_counter() - started) * 1000.0

    logger.info("Parsed %s", collection.summary())
    return collection
