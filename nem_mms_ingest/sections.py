"""
Section state machine for MMS CSV files.

An MMS CSV file is a flat sequence of sections::

    C,...                      banner (ignored)
    I,TRADING,PRICE,3,...      header -> activates schema TRADING,PRICE,3
    D,TRADING,PRICE,3,...      data   -> PriceRecord
    D,TRADING,PRICE,3,...
    I,TRADING,INTERCONNECTORRES,2,...   new header supersedes the previous one
    D,...
    C,"END OF REPORT",15       terminates the scan

Sections never nest; they only repeat. The scanner keeps exactly one
piece of state that matters -- the active schema set by the most recent
header -- in a ``ScanState`` that lives for one ``scan()`` call only, so
any number of files can be scanned concurrently with the same scanner.

Error policy (``IngestConfig.on_row_error``):

- ``"skip"`` (default): a bad row is recorded as a ``RowIssue`` and
  scanning continues; rows parsed before and after it are kept.
- ``"abort"``: the first row-level error is raised out of ``scan()``.

Headers whose key is not registered are never errors under either
policy: they produce one ``UnrecognizedSchema`` entry (plus a matching
issue) and the data rows of that block are skipped.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from nem_mms_ingest.config import IngestConfig
from nem_mms_ingest.exceptions import (
    AmbiguousLocalTimeError,
    FieldError,
    MalformedRowError,
    MalformedTimestampError,
    RowError,
    SchemaMismatchError,
)
from nem_mms_ingest.records import MmsRecord
from nem_mms_ingest.rows import Row, RowKind, classify_line
from nem_mms_ingest.schema_registry import Schema, SchemaKey, SchemaRegistry, default_registry

logger = logging.getLogger(__name__)


class IssueCode(str, Enum):
    """Typed classification of row-level problems."""
    malformed_row = "malformed_row"
    unrecognized_schema = "unrecognized_schema"
    schema_mismatch = "schema_mismatch"
    orphan_data = "orphan_data"                     # data row before any header
    field_type = "field_type"
    malformed_timestamp = "malformed_timestamp"
    ambiguous_local_time = "ambiguous_local_time"


def _issue_code_for(exc: Exception) -> IssueCode:
    if isinstance(exc, MalformedRowError):
        return IssueCode.malformed_row
    if isinstance(exc, MalformedTimestampError):
        return IssueCode.malformed_timestamp
    if isinstance(exc, AmbiguousLocalTimeError):
        return IssueCode.ambiguous_local_time
    if isinstance(exc, FieldError):
        return IssueCode.field_type
    return IssueCode.schema_mismatch


@dataclass(frozen=True, slots=True)
class RowIssue:
    """A row that was skipped, and why."""
    code: IssueCode
    detail: str
    line_number: int
    raw: str                        # the unmodified line
    entry: str | None = None        # file/entry name, when known
    field: str | None = None        # offending field, for field-level errors


@dataclass(slots=True)
class UnrecognizedSchema:
    """A header whose key is not in the registry; its block was skipped."""
    key: SchemaKey
    header_fields: tuple[str, ...]
    line_number: int
    entry: str | None = None
    skipped_rows: int = 0          # data rows dropped under this header


@dataclass
class Section:
    """One header and the records parsed from the data rows under it."""
    key: SchemaKey
    kind: str
    header_fields: tuple[str, ...]
    line_number: int
    records: list[MmsRecord] = field(default_factory=list)


@dataclass
class ScanState:
    """Mutable state of a single scan."""
    active_schema: Schema | None = None
    active_key: SchemaKey | None = None
    section: Section | None = None
    unrecognized: UnrecognizedSchema | None = None


@dataclass
class ScanResult:
    """Everything one pass over one file produced.

    Attributes:
        records: Records in file order (flat view).
        sections: The same records grouped under their header (grouped view).
        issues: Rows that were skipped, in file order.
        unrecognized: Headers with no registered schema, in file order.
        terminated: True when an ``END OF REPORT`` control row was reached.
        lines_read: Lines consumed, including the terminating control row.
    """
    records: list[MmsRecord] = field(default_factory=list)
    sections: list[Section] = field(default_factory=list)
    issues: list[RowIssue] = field(default_factory=list)
    unrecognized: list[UnrecognizedSchema] = field(default_factory=list)
    terminated: bool = False
    lines_read: int = 0

    @property
    def ok(self) -> bool:
        """True when no row had to be skipped (unrecognized blocks excluded)."""
        return not any(i.code is not IssueCode.unrecognized_schema for i in self.issues)


class SectionScanner:
    """Demultiplexes the sections of one MMS CSV file into typed records.

    Args:
        registry: Schemas to dispatch to. Defaults to ``default_registry()``.
        config: Timezone, timestamp format and row-error policy.
    """

    def __init__(
        self,
        registry: SchemaRegistry | None = None,
        config: IngestConfig | None = None,
    ) -> None:
        self.registry = registry if registry is not None else default_registry()
        self.config = config or IngestConfig()

    def scan_text(self, text: str, entry: str | None = None) -> ScanResult:
        r"""Scan already-decoded file content.

        Lines are split on ``\n`` only (``\r\n`` is tolerated), so control
        characters such as ``\x0c`` or ``\u2028`` inside a field stay in it.
        """
        return self.scan(io.StringIO(text), entry=entry)

    def scan(self, lines: Iterable[str], entry: str | None = None) -> ScanResult:
        """Scan a sequence of lines (terminators optional) in order.

        Raises:
            RowError / MalformedRowError: Only under ``on_row_error="abort"``.
        """
        state = ScanState()
        result = ScanResult()

        for line_number, line in enumerate(lines, start=1):
            result.lines_read = line_number
            try:
                row = classify_line(line, line_number)
            except MalformedRowError as exc:
                self._reject(result, exc, line_number, line.rstrip("\r\n"), entry)
                continue

            if row.kind is RowKind.HEADER:
                self._on_header(state, result, row, entry)
            elif row.kind is RowKind.DATA:
                self._on_data(state, result, row, entry)
            elif row.kind is RowKind.CONTROL and row.is_end_of_report:
                result.terminated = True
                break
            # other control rows and ignored rows leave the state untouched

        logger.debug(
            "Scanned %s: %d lines, %d records, %d sections, %d issues%s",
            entry or "<lines>",
            result.lines_read,
            len(result.records),
            len(result.sections),
            len(result.issues),
            "" if result.terminated else " (no END OF REPORT)",
        )
        return result

    # -- transitions ---------------------------------------------------------

    def _on_header(self, state: ScanState, result: ScanResult, row: Row, entry: str | None) -> None:
        key = SchemaKey.from_fields(row.fields)
        schema = self.registry.lookup(key)

        if schema is None:
            state.active_schema = None
            state.active_key = None
            state.section = None
            state.unrecognized = UnrecognizedSchema(
                key=key,
                header_fields=row.fields,
                line_number=row.line_number,
                entry=entry,
            )
            result.unrecognized.append(state.unrecognized)
            result.issues.append(
                RowIssue(
                    code=IssueCode.unrecognized_schema,
                    detail=f"no schema registered for '{key}'",
                    line_number=row.line_number,
                    raw=row.raw,
                    entry=entry,
                )
            )
            logger.warning(
                "Unrecognized schema '%s' at %s line %d; skipping its data rows",
                key, entry or "<lines>", row.line_number,
            )
            return

        columns = list(row.fields[4:])
        if columns and columns != schema.column_names:
            logger.warning(
                "Header columns for '%s' at %s line %d differ from %s: %s",
                key, entry or "<lines>", row.line_number,
                schema.model.__name__, columns,
            )

        state.active_schema = schema
        state.active_key = key
        state.unrecognized = None
        state.section = Section(
            key=key,
            kind=schema.kind,
            header_fields=row.fields,
            line_number=row.line_number,
        )
        result.sections.append(state.section)

    def _on_data(self, state: ScanState, result: ScanResult, row: Row, entry: str | None) -> None:
        schema = state.active_schema
        if schema is None:
            if state.unrecognized is not None:
                state.unrecognized.skipped_rows += 1
                return
            self._reject(
                result,
                SchemaMismatchError("data row before any information row", line_number=row.line_number),
                row.line_number,
                row.raw,
                entry,
                code=IssueCode.orphan_data,
            )
            return

        tag = SchemaKey.from_fields(row.fields)
        if tag != state.active_key:
            self._reject(
                result,
                SchemaMismatchError(
                    f"data row tagged '{tag}' under active schema '{state.active_key}'",
                    line_number=row.line_number,
                ),
                row.line_number,
                row.raw,
                entry,
            )
            return

        try:
            record = schema.deserialize(
                row.fields,
                tz=self.config.timezone,
                fmt=self.config.timestamp_format,
            )
        except FieldError as exc:
            exc.line_number = row.line_number
            self._reject(result, exc, row.line_number, row.raw, entry)
            return

        result.records.append(record)
        state.section.records.append(record)

    # -- errors --------------------------------------------------------------

    def _reject(
        self,
        result: ScanResult,
        exc: RowError | MalformedRowError,
        line_number: int,
        raw: str,
        entry: str | None,
        code: IssueCode | None = None,
    ) -> None:
        """Record *exc* as an issue, or raise it under the abort policy."""
        if self.config.on_row_error == "abort":
            raise exc
        issue = RowIssue(
            code=code or _issue_code_for(exc),
            detail=str(exc),
            line_number=line_number,
            raw=raw,
            entry=entry,
            field=getattr(exc, "field", None),
        )
        result.issues.append(issue)
        logger.debug("Skipped %s line %d (%s): %s", entry or "<lines>", line_number, issue.code.value, exc)
