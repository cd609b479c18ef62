"""
Custom exception hierarchy for nem-mms-ingest.

Row-level errors (``RowError`` and its subclasses) are attributable to a
single line of one MMS CSV file. With the default ``on_row_error="skip"``
policy the section scanner records them as ``RowIssue`` entries and keeps
going; they are only raised out of a scan under ``on_row_error="abort"``.

Entry-level errors never escape ``parse_entries()``: they become
``EntryFailure`` records on the returned collection.
"""

from __future__ import annotations


class MmsIngestError(Exception):
    """Base exception for all nem-mms-ingest errors."""


class MalformedRowError(MmsIngestError):
    """Raised when a line cannot be split into fields.

    Typically an unterminated quoted field or stray characters after a
    closing quote.
    """

    def __init__(self, message: str, line_number: int | None = None) -> None:
        super().__init__(message)
        self.line_number = line_number


class SchemaRegistrationError(MmsIngestError):
    """Raised when a schema is registered under a key that is already taken."""


class RowError(MmsIngestError):
    """A problem attributable to exactly one row of a file."""

    def __init__(self, message: str, line_number: int | None = None) -> None:
        super().__init__(message)
        self.line_number = line_number


class UnrecognizedSchemaError(RowError):
    """Raised by ``SchemaRegistry.require()`` for a key that is not registered."""


class SchemaMismatchError(RowError):
    """Raised when a Data row's embedded tag disagrees with the active schema.

    Also used for Data rows that appear before any Header row.
    """


class FieldError(RowError):
    """A single field of a Data row could not be converted."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        line_number: int | None = None,
    ) -> None:
        super().__init__(message, line_number=line_number)
        self.field = field


class FieldTypeError(FieldError):
    """Raised when a field fails to convert to its declared type."""


class MalformedTimestampError(FieldError):
    """Raised when a timestamp string does not match the expected pattern."""


class AmbiguousLocalTimeError(FieldError):
    """Raised when a local wall-clock time has no unique UTC mapping.

    This happens inside a DST gap (the time never existed) or a DST
    overlap (the time occurred twice).
    """


class EntryFailureError(MmsIngestError):
    """Raised by strict helpers when a batch entry could not be parsed at all."""


class ConfigValidationError(MmsIngestError):
    """Raised when an ingest config file is empty or fails validation."""


class FetchError(MmsIngestError):
    """Raised when a remote index page or zip archive cannot be fetched."""
