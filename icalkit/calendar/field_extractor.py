"""Keyed value lookup over raw iCalendar lines.

Lookups work on plain text lines rather than a parsed component tree. A key
matches any line that *contains* it, so ``DTSTART`` also finds
``DTSTART;TZID=Europe/Rome:20200101T120000``; callers pick the parameter or
value part by splitting on ``:``/``;``/``=``. Keys that are substrings of
other keys present in the same block will collide. Pass ``strict=True`` to
match only lines that start with the key followed by ``:`` or ``;``.
"""

from collections.abc import Sequence
from enum import Enum
from typing import Optional


class Segment(str, Enum):
    """Which part of a split line to return."""

    FIRST = "first"
    LAST = "last"
    REST = "rest"  # everything after the first separator, separators kept


def _line_matches(line: str, key: str, strict: bool) -> bool:
    if not strict:
        return key in line
    if not line.startswith(key):
        return False
    return line[len(key) : len(key) + 1] in (":", ";")


def find_line(lines: Sequence[str], key: str, strict: bool = False) -> Optional[str]:
    """Return the first line matching ``key``, or None."""
    for line in lines:
        if _line_matches(line, key, strict):
            return line
    return None


def split_segment(line: str, separator: str = ":", segment: Segment = Segment.LAST) -> Optional[str]:
    """Split ``line`` on ``separator`` and return the chosen segment without CRs.

    Empty pieces produced by adjacent or trailing separators are ignored.
    With ``Segment.REST`` a line that has the separator but nothing after it
    gives ``""``; None means the separator is missing.
    """
    line = line.replace("\r", "")
    if segment is Segment.REST:
        _, found, rest = line.partition(separator)
        return rest if found else None

    parts = [part for part in line.split(separator) if part]
    if not parts:
        return None
    return parts[0] if segment is Segment.FIRST else parts[-1]


def get_value(
    lines: Sequence[str],
    key: str,
    separator: str = ":",
    segment: Segment = Segment.LAST,
    strict: bool = False,
) -> Optional[str]:
    """Find the first line containing ``key`` and return one of its segments.

    Args:
        lines: Lines to search, in document order
        key: Property name (or ``KEY=`` token for RRULE parameters)
        separator: Character to split the matched line on
        segment: Segment to return
        strict: Require the line to start with ``key`` plus ``:`` or ``;``

    Returns:
        Segment text with carriage returns removed, or None if no line matches
    """
    line = find_line(lines, key, strict=strict)
    if line is None:
        return None
    return split_segment(line, separator, segment)


def all_lines_with_prefix(lines: Sequence[str], key: str) -> list[str]:
    """Return every line starting with ``key`` (used for repeatable properties)."""
    return [line for line in lines if line.startswith(key)]


def parameter_value(line: str, name: str) -> Optional[str]:
    """Return a ``NAME=value`` parameter from the property-name part of a line.

    ``parameter_value("DTSTART;TZID=Europe/Rome:20200101T120000", "TZID")``
    returns ``"Europe/Rome"``.
    """
    head = split_segment(line, ":", Segment.FIRST)
    if head is None:
        return None
    prefix = f"{name}="
    for param in head.split(";")[1:]:
        if param.startswith(prefix):
            value = param[len(prefix) :].strip('"')
            return value or None
    return None
