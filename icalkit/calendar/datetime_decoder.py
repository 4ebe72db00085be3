"""Decoding of compact iCalendar date and date-time literals.

Literals are sliced by position (``YYYYMMDD`` then optional ``HHMMSS``)
after removing the ``T`` and ``Z`` markers, so ``20200615``,
``20200615T120000`` and ``20200615T120000Z`` are all accepted.
"""

import datetime
import logging
from collections.abc import Sequence
from typing import Optional

from icalkit.calendar.field_extractor import find_line, parameter_value, split_segment
from icalkit.calendar.models import Instant
from icalkit.core.timezone_utils import TimeZoneResolver, get_local_timezone

logger = logging.getLogger(__name__)


def _take_int(text: str, start: int, width: Optional[int] = None) -> Optional[int]:
    piece = text[start:] if width is None else text[start : start + width]
    if not piece or (width is not None and len(piece) < width):
        return None
    try:
        return int(piece)
    except ValueError:
        return None


class DateTimeDecoder:
    """Decode ``YYYYMMDD[THHMMSS[Z]]`` literals into dates or local datetimes."""

    def __init__(
        self,
        resolver: Optional[TimeZoneResolver] = None,
        local_timezone: Optional[datetime.tzinfo] = None,
    ):
        """Initialize decoder.

        Args:
            resolver: Resolver for TZID parameters
            local_timezone: Zone decoded date-times are converted into
                            (defaults to the process local zone)
        """
        self.resolver = resolver or TimeZoneResolver()
        self.local_timezone = local_timezone or get_local_timezone()

    def decode(self, literal: Optional[str], tzid: Optional[str] = None) -> Optional[Instant]:
        """Decode a literal, returning None when the date part is unusable.

        Date-only literals return a ``datetime.date`` and are never shifted.
        Date-times are read in the zone resolved from ``tzid``; a trailing
        ``Z`` or an unresolved zone means UTC. The result is an aware
        datetime in the local zone.
        """
        if not literal:
            return None
        literal = literal.strip()
        is_utc = literal.endswith("Z")
        compact = literal.replace("T", "").replace("Z", "")

        year = _take_int(compact, 0, 4)
        month = _take_int(compact, 4, 2)
        day = _take_int(compact, 6, 2)
        if year is None or month is None or day is None:
            logger.debug("Undecodable date literal %r", literal)
            return None

        try:
            if len(compact) <= 8:
                return datetime.date(year, month, day)

            hour = _take_int(compact, 8, 2) or 0
            minute = _take_int(compact, 10, 2) or 0
            second = _take_int(compact, 12) or 0
            naive = datetime.datetime(year, month, day, hour, minute, second)
        except ValueError as e:
            logger.debug("Out-of-range date literal %r: %s", literal, e)
            return None

        source_zone: datetime.tzinfo = datetime.timezone.utc
        if not is_utc:
            resolved = self.resolver.resolve(tzid)
            if resolved is not None:
                source_zone = resolved

        return naive.replace(tzinfo=source_zone).astimezone(self.local_timezone)

    def decode_line(self, line: str) -> Optional[Instant]:
        """Decode the value of a property line, honoring its TZID parameter."""
        return self.decode(split_segment(line, ":"), parameter_value(line, "TZID"))

    def decode_property(
        self, lines: Sequence[str], key: str, strict: bool = False
    ) -> Optional[Instant]:
        """Find ``key`` in ``lines`` and decode its value."""
        line = find_line(lines, key, strict=strict)
        if line is None:
            return None
        return self.decode_line(line)
