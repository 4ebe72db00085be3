"""RRULE decoding into structured recurrence rules.

The decoder turns ``FREQ=MONTHLY;BYDAY=-1SU;COUNT=5`` into a
``RecurrenceRule``. It does not enumerate occurrences.

Failure handling is per parameter: unusable list entries are dropped and an
unusable INTERVAL falls back to 1. Only a missing or unknown FREQ discards
the whole rule.
"""

import logging
from collections.abc import Sequence
from typing import Optional

from icalkit.calendar.datetime_decoder import DateTimeDecoder
from icalkit.calendar.field_extractor import get_value
from icalkit.calendar.models import (
    CountEnd,
    Frequency,
    Instant,
    NoEnd,
    RecurrenceRule,
    UntilEnd,
    Weekday,
    WeekdayRule,
)

logger = logging.getLogger(__name__)

_WEEKDAY_CODES = {day.value: day for day in Weekday}


def _parse_int(text: Optional[str]) -> Optional[int]:
    if text is None:
        return None
    try:
        return int(text.strip())
    except ValueError:
        return None


def parse_int_list(value: Optional[str]) -> Optional[tuple[int, ...]]:
    """Parse ``"1,-1,x"`` into ``(1, -1)``; None when the parameter is absent."""
    if value is None:
        return None
    numbers = (_parse_int(token) for token in value.split(","))
    return tuple(n for n in numbers if n is not None)


def parse_weekday_token(token: str) -> Optional[WeekdayRule]:
    """Parse one BYDAY token such as ``FR``, ``2FR`` or ``-1SU``."""
    token = token.replace("\r", "").strip()
    weekday = _WEEKDAY_CODES.get(token[-2:])
    if weekday is None:
        return None
    ordinal = _parse_int(token[:-2]) if token[:-2] else None
    return WeekdayRule(weekday=weekday, ordinal=ordinal or 0)


def parse_by_day(value: Optional[str]) -> Optional[tuple[WeekdayRule, ...]]:
    """Parse a BYDAY list, skipping tokens without a weekday code."""
    if value is None:
        return None
    rules = []
    for token in value.split(","):
        rule = parse_weekday_token(token)
        if rule is None:
            logger.debug("Skipping BYDAY token %r", token)
            continue
        rules.append(rule)
    return tuple(rules)


class RecurrenceRuleDecoder:
    """Decoder for RRULE values."""

    def __init__(self, datetime_decoder: Optional[DateTimeDecoder] = None):
        self.datetime_decoder = datetime_decoder or DateTimeDecoder()

    def _param(self, params: Sequence[str], name: str) -> Optional[str]:
        # Trailing "=" keeps BYMONTH from matching BYMONTHDAY.
        return get_value(params, f"{name}=", separator="=")

    def decode(self, rule: str, start: Optional[Instant] = None) -> Optional[RecurrenceRule]:
        """Decode an RRULE value.

        Args:
            rule: Raw value, e.g. ``FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE``
            start: Start of the owning event; not used for decoding, kept so
                   callers can derive ``rule.approximate_end(start)``

        Returns:
            RecurrenceRule, or None if FREQ is missing or unrecognized
        """
        params = [param for param in rule.replace("\r", "").split(";") if param]

        frequency_value = self._param(params, "FREQ")
        if frequency_value is None:
            logger.debug("RRULE %r has no FREQ, ignoring rule", rule)
            return None
        try:
            frequency = Frequency(frequency_value.strip().lower())
        except ValueError:
            logger.debug("RRULE %r has unsupported FREQ %r, ignoring rule", rule, frequency_value)
            return None

        interval = _parse_int(self._param(params, "INTERVAL"))
        if interval is None or interval < 1:
            interval = 1

        count = _parse_int(self._param(params, "COUNT"))
        until_literal = self._param(params, "UNTIL")
        if count is not None and count >= 1:
            end = CountEnd(count=count)
        elif until_literal is not None:
            until = self.datetime_decoder.decode(until_literal)
            end = UntilEnd(until=until) if until is not None else NoEnd()
        else:
            end = NoEnd()

        return RecurrenceRule(
            frequency=frequency,
            interval=interval,
            days_of_week=parse_by_day(self._param(params, "BYDAY")),
            days_of_month=parse_int_list(self._param(params, "BYMONTHDAY")),
            days_of_year=parse_int_list(self._param(params, "BYYEARDAY")),
            months_of_year=parse_int_list(self._param(params, "BYMONTH")),
            weeks_of_year=parse_int_list(self._param(params, "BYWEEKNO")),
            set_positions=parse_int_list(self._param(params, "BYSETPOS")),
            end=end,
        )
