"""
NEMWEB report file names and publication intervals.

Every NEMWEB zip is named ``<PREFIX>_<timestamp>_<unique key>.zip``, e.g.::

    PUBLIC_TRADINGIS_202403091025_0000000413211611.zip
    PUBLIC_ROOFTOP_PV_ACTUAL_MEASUREMENT_20240303200000_0000000412717346.zip

The timestamp is market local time with 12 (``YYYYMMDDHHMM``) or 14
(``YYYYMMDDHHMMSS``) digits. ``ReportName`` sorts by timestamp first, so
a lookup built from a directory listing iterates oldest to newest.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable

STAMP_FORMAT = "%Y%m%d%H%M%S"

_REPORT_NAME_RE = re.compile(
    r"(?P<prefix>[^/]+?)_(?P<stamp>\d{14}|\d{12})_(?P<key>\d+)\.zip$",
    re.IGNORECASE,
)


@dataclass(frozen=True, order=True)
class ReportName:
    """Identity of one published report, parsed from its file name or href."""
    timestamp: datetime
    prefix: str
    unique_key: str
    directory: str = field(default="", compare=False)
    href: str = field(default="", compare=False)

    @property
    def file_name(self) -> str:
        return self.href.rsplit("/", 1)[-1]


def parse_report_name(href: str) -> ReportName:
    """Parse a NEMWEB zip name, relative href or absolute URL.

    Raises:
        ValueError: If *href* does not look like a NEMWEB report zip.
    """
    match = _REPORT_NAME_RE.search(href)
    if match is None:
        raise ValueError(f"Not a NEMWEB report name: {href!r}")
    stamp = match.group("stamp")
    fmt = STAMP_FORMAT if len(stamp) == 14 else "%Y%m%d%H%M"
    try:
        timestamp = datetime.strptime(stamp, fmt)
    except ValueError:
        raise ValueError(f"Invalid report timestamp {stamp!r} in {href!r}") from None
    return ReportName(
        timestamp=timestamp,
        prefix=match.group("prefix"),
        unique_key=match.group("key"),
        directory=href[: match.start()],
        href=href,
    )


def build_report_lookup(hrefs: Iterable[str]) -> dict[ReportName, str]:
    """Map each parsed report name to its href, ordered oldest first.

    Duplicate hrefs collapse to one entry.

    Raises:
        ValueError: If any href is not a report name.
    """
    parsed = {parse_report_name(h): h for h in hrefs}
    return dict(sorted(parsed.items()))


def reports_between(
    lookup: dict[ReportName, str],
    start: datetime,
    end: datetime,
) -> list[str]:
    """Hrefs whose report timestamp lies in ``[start, end]``, oldest first."""
    return [href for name, href in lookup.items() if start <= name.timestamp <= end]


class Interval(Enum):
    """Publication cadence of a report family."""
    FIVE_MINUTES = 5 * 60
    THIRTY_MINUTES = 30 * 60

    @property
    def seconds(self) -> int:
        return self.value

    @property
    def duration(self) -> timedelta:
        return timedelta(seconds=self.value)


def _offset_into_interval(value: datetime, interval: Interval) -> int:
    return (value.minute * 60 + value.second) % interval.seconds


def align_start(value: datetime, interval: Interval) -> datetime:
    """Round *value* down to the start of its interval."""
    offset = _offset_into_interval(value, interval)
    return value.replace(microsecond=0) - timedelta(seconds=offset)


def align_end(value: datetime, interval: Interval) -> datetime:
    """Round *value* up to the next interval boundary (unchanged if already on one)."""
    offset = _offset_into_interval(value, interval)
    if offset == 0 and value.microsecond == 0:
        return value
    return value.replace(microsecond=0) + timedelta(seconds=interval.seconds - offset)


def interval_timestamps(start: datetime, end: datetime, interval: Interval) -> list[datetime]:
    """Every interval boundary from ``align_start(start)`` to ``align_end(end)``, inclusive.

    Example::

        >>> [t.strftime("%H:%M") for t in interval_timestamps(
        ...     datetime(2023, 4, 1, 0, 3), datetime(2023, 4, 1, 0, 12), Interval.FIVE_MINUTES)]
        ['00:00', '00:05', '00:10', '00:15']
    """
    current = align_start(start, interval)
    last = align_end(end, interval)
    stamps: list[datetime] = []
    while current <= last:
        stamps.append(current)
        current += interval.duration
    return stamps


def format_stamp(value: datetime) -> str:
    """Render a timestamp the way NEMWEB file names do (14 digits)."""
    return value.strftime(STAMP_FORMAT)
