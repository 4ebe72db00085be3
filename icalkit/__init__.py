"""icalkit - read iCalendar (.ics) documents into structured calendars.

Decodes calendar and event fields, compact ISO dates with TZID resolution and
RRULE values. Occurrences of recurring events are not expanded.
"""

__version__ = "0.1.0"

from icalkit.calendar.models import (
    Calendar,
    Coordinates,
    CountEnd,
    Event,
    Frequency,
    NoEnd,
    RecurrenceRule,
    UntilEnd,
    Weekday,
    WeekdayRule,
)
from icalkit.core.config_loader import Config, load_config
from icalkit.exceptions import ICalKitError, InvalidDocument, InvalidEncoding, InvalidSource
from icalkit.loader import (
    load_calendar,
    load_calendar_from_path,
    load_calendar_from_url,
    load_calendar_sync,
    parse_calendar,
    parse_calendar_sync,
)

__all__ = [
    "Calendar",
    "Config",
    "Coordinates",
    "CountEnd",
    "Event",
    "Frequency",
    "ICalKitError",
    "InvalidDocument",
    "InvalidEncoding",
    "InvalidSource",
    "NoEnd",
    "RecurrenceRule",
    "UntilEnd",
    "Weekday",
    "WeekdayRule",
    "load_calendar",
    "load_calendar_from_path",
    "load_calendar_from_url",
    "load_calendar_sync",
    "load_config",
    "parse_calendar",
    "parse_calendar_sync",
]
