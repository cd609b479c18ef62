"""
Row classifier for MMS CSV files.

Each physical line of an MMS CSV file is one row. Field 0 is a one-letter
row-type tag:

  C  control row      (file banner, ``C,"END OF REPORT",15`` trailer)
  I  information row  (section header: category, report type, version, column names)
  D  data row         (one record for the most recent information row)

Anything else (blank lines, stray text) is ignored.

Splitting uses the stdlib ``csv`` reader in strict mode so quoted fields
may contain commas and doubled quotes, while broken quoting is reported
as ``MalformedRowError`` rather than silently re-joined.

Every field is trimmed after unquoting, quoted ones included, so
``"  NSW1 "`` and ``NSW1`` read the same.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from enum import Enum

from nem_mms_ingest.exceptions import MalformedRowError

END_OF_REPORT = "END OF REPORT"


class RowKind(str, Enum):
    """What a row is, derived from its first field."""
    CONTROL = "C"
    HEADER = "I"
    DATA = "D"
    IGNORE = ""


_KIND_BY_TAG = {
    "C": RowKind.CONTROL,
    "I": RowKind.HEADER,
    "D": RowKind.DATA,
}


@dataclass(frozen=True, slots=True)
class Row:
    """One classified line."""
    kind: RowKind
    fields: tuple[str, ...]
    line_number: int            # 1-based, within its file
    raw: str

    @property
    def is_end_of_report(self) -> bool:
        """True for the ``C,"END OF REPORT",n`` trailer (case-insensitive)."""
        return (
            self.kind is RowKind.CONTROL
            and len(self.fields) > 1
            and self.fields[1].upper() == END_OF_REPORT
        )


def split_fields(line: str, *, line_number: int | None = None) -> tuple[str, ...]:
    """Split one line into trimmed fields, honouring ``"``-quoting.

    Raises:
        MalformedRowError: On an unterminated quote or text after a closing quote.
    """
    try:
        parsed = next(csv.reader([line], strict=True), [])
    except csv.Error as exc:
        where = f"line {line_number}: " if line_number is not None else ""
        raise MalformedRowError(f"{where}{exc}: {line[:80]!r}", line_number=line_number) from exc
    return tuple(f.strip() for f in parsed)


def classify_fields(fields: tuple[str, ...]) -> RowKind:
    """Map field 0 to a RowKind."""
    if not fields:
        return RowKind.IGNORE
    return _KIND_BY_TAG.get(fields[0], RowKind.IGNORE)


def classify_line(line: str, line_number: int = 0) -> Row:
    """Split and classify a single line (already stripped of its terminator)."""
    line = line.rstrip("\r\n")
    fields = split_fields(line, line_number=line_number)
    return Row(
        kind=classify_fields(fields),
        fields=fields,
        line_number=line_number,
        raw=line,
    )
