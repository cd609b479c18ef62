"""
Local wall-clock -> UTC conversion for MMS CSV timestamps.

AEMO writes every timestamp as market local time in
``YYYY/MM/DD HH:MM:SS`` form, usually quote-wrapped
(``"2024/03/03 13:35:00"``). The zone defaults to Australia/Sydney, which
observes DST, so a handful of wall-clock times each year either never
happen (spring-forward gap) or happen twice (fall-back overlap). Those
have no unique UTC instant and are rejected instead of guessed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from nem_mms_ingest.config import DEFAULT_TIMESTAMP_FORMAT, DEFAULT_TIMEZONE
from nem_mms_ingest.exceptions import AmbiguousLocalTimeError, MalformedTimestampError


@lru_cache(maxsize=None)
def get_zone(name: str) -> ZoneInfo:
    """Resolve an IANA zone name once per process."""
    return ZoneInfo(name)


def parse_local(value: str, fmt: str = DEFAULT_TIMESTAMP_FORMAT, *, field: str | None = None) -> datetime:
    """Parse a (possibly quote-wrapped) local timestamp into a naive datetime.

    Raises:
        MalformedTimestampError: If *value* does not match *fmt*.
    """
    if not isinstance(value, str):
        raise MalformedTimestampError(
            f"{field or 'timestamp'}: expected text, got {type(value).__name__}",
            field=field,
        )
    s = value.strip().strip('"').strip()
    try:
        return datetime.strptime(s, fmt)
    except ValueError:
        raise MalformedTimestampError(
            f"{field or 'timestamp'}: {value!r} does not match {fmt!r}",
            field=field,
        ) from None


def localize(naive: datetime, tz: str = DEFAULT_TIMEZONE, *, field: str | None = None) -> datetime:
    """Attach *tz* to a naive wall-clock time, refusing gaps and overlaps.

    ``fold=0`` and ``fold=1`` resolve to the same offset for every
    unambiguous wall time; they differ exactly when the time falls inside
    a DST transition.
    """
    zone = get_zone(tz)
    early = naive.replace(tzinfo=zone, fold=0)
    late = naive.replace(tzinfo=zone, fold=1)
    if early.utcoffset() != late.utcoffset():
        round_trip = early.astimezone(timezone.utc).astimezone(zone).replace(tzinfo=None)
        reason = "falls in a DST gap" if round_trip != naive else "is repeated by a DST overlap"
        raise AmbiguousLocalTimeError(
            f"{field or 'timestamp'}: local time {naive:%Y-%m-%d %H:%M:%S} {reason} in {tz}",
            field=field,
        )
    return early


def to_utc(
    value: str,
    tz: str = DEFAULT_TIMEZONE,
    fmt: str = DEFAULT_TIMESTAMP_FORMAT,
    *,
    field: str | None = None,
) -> datetime:
    """Convert a local MMS timestamp string to an aware UTC datetime.

    Args:
        value: Timestamp text, e.g. ``'"2024/03/03 19:30:00"'``.
        tz: IANA zone the value is expressed in.
        fmt: strptime pattern of the value (quotes excluded).
        field: Field name, used only in error messages.

    Returns:
        A ``datetime`` with ``tzinfo=timezone.utc``.

    Raises:
        MalformedTimestampError: If the text does not match *fmt*, or the
            instant falls outside the range ``datetime`` can hold in UTC
            (e.g. ``0001/01/01 00:00:00`` in a zone east of UTC).
        AmbiguousLocalTimeError: If the wall time has no unique UTC mapping.

    Example::

        >>> to_utc('"2024/03/03 19:30:00"').isoformat()
        '2024-03-03T08:30:00+00:00'
    """
    naive = parse_local(value, fmt, field=field)
    try:
        return localize(naive, tz, field=field).astimezone(timezone.utc)
    except OverflowError:
        raise MalformedTimestampError(
            f"{field or 'timestamp'}: {value!r} is out of range in {tz}",
            field=field,
        ) from None
