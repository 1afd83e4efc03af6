"""Dateline formatting and parsing.

A dateline introduces every serialized message::

    2022-06-01 13:45:00-0500
    2022-06-01 14:15:00-0500 (2)

The offset is part of the record and is written back exactly as captured,
never normalized to UTC. The optional ``(N)`` suffix carries an explicit
message index and is only written at jump points.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from .errors import MalformedDateline

_DATELINE_PATTERN = re.compile(
    r"(\d{4})-(\d{2})-(\d{2}) (\d{2}):(\d{2}):(\d{2})([+-])(\d{2})([0-5]\d)",
    re.ASCII,
)
_INDEX_PATTERN = re.compile(r"\(([0-9]+)\)")


def format_offset(dt: datetime) -> str:
    """Format a datetime's UTC offset as ``±HHMM``."""
    offset = dt.utcoffset()
    if offset is None:
        raise ValueError("dateline timestamps must carry a UTC offset")

    minutes = int(offset.total_seconds()) // 60
    sign = "-" if minutes < 0 else "+"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}{minutes:02d}"


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as ``YYYY-MM-DD HH:MM:SS±HHMM``."""
    return (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}{format_offset(dt)}"
    )


def format_dateline(dt: datetime, index: Optional[int] = None) -> str:
    """Format a dateline, appending `` (N)`` only when an index is given."""
    line = format_timestamp(dt)
    if index is not None:
        line = f"{line} ({index})"
    return line


def parse_timestamp(text: str) -> datetime:
    """Parse a ``YYYY-MM-DD HH:MM:SS±HHMM`` timestamp.

    Raises:
        MalformedDateline: If the text does not match the pattern or names
            an impossible date, time, or offset.
    """
    match = _DATELINE_PATTERN.fullmatch(text)
    if match is None:
        raise MalformedDateline("Timestamp does not match YYYY-MM-DD HH:MM:SS+HHMM", line=text)

    year, month, day, hour, minute, second, sign, off_hours, off_minutes = match.groups()

    try:
        offset = timedelta(hours=int(off_hours), minutes=int(off_minutes))
        if sign == "-":
            offset = -offset
        return datetime(
            int(year), int(month), int(day),
            int(hour), int(minute), int(second),
            tzinfo=timezone(offset),
        )
    except ValueError as e:
        raise MalformedDateline(f"Invalid timestamp ({e})", line=text) from e


def parse_dateline(line: str) -> tuple[Optional[int], datetime]:
    """Split a dateline into its optional index and its timestamp.

    Returns:
        Tuple of (index or None, timestamp)

    Raises:
        MalformedDateline: If the index suffix is not a non-negative integer
            or the timestamp segment is unparsable.
    """
    index = None
    stamp = line

    if line.endswith(")"):
        stamp, sep, suffix = line.rpartition(" ")
        if not sep:
            raise MalformedDateline("Index suffix is not separated from the timestamp", line=line)

        match = _INDEX_PATTERN.fullmatch(suffix)
        if match is None:
            raise MalformedDateline("Index suffix is not a non-negative integer", line=line)
        index = int(match.group(1))

    return index, parse_timestamp(stamp)
