"""Data models for decoded iCalendar documents."""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict, Field

# Aware datetime for date-time literals, plain date for date-only literals.
Instant = Union[datetime, date]


class Frequency(str, Enum):
    """Recurrence frequencies understood by the rule decoder."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


_FREQUENCY_STEP: dict[Frequency, str] = {
    Frequency.DAILY: "days",
    Frequency.WEEKLY: "weeks",
    Frequency.MONTHLY: "months",
    Frequency.YEARLY: "years",
}


class Weekday(str, Enum):
    """Two-letter weekday codes used by BYDAY."""

    SUNDAY = "SU"
    MONDAY = "MO"
    TUESDAY = "TU"
    WEDNESDAY = "WE"
    THURSDAY = "TH"
    FRIDAY = "FR"
    SATURDAY = "SA"

    @property
    def number(self) -> int:
        """Weekday number with Sunday as 1 and Saturday as 7."""
        return list(Weekday).index(self) + 1


class Coordinates(BaseModel):
    """Geographic position returned by a geocoder."""

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)

    model_config = ConfigDict(frozen=True)


class WeekdayRule(BaseModel):
    """One BYDAY entry, e.g. ``-1SU`` (last Sunday) or ``FR`` (every Friday)."""

    weekday: Weekday
    ordinal: int = Field(default=0, description="Signed occurrence within the period; 0 means unset")

    model_config = ConfigDict(frozen=True)


class NoEnd(BaseModel):
    """Recurrence without a termination condition."""

    kind: Literal["none"] = "none"

    model_config = ConfigDict(frozen=True)


class CountEnd(BaseModel):
    """Recurrence that stops after a number of occurrences."""

    kind: Literal["count"] = "count"
    count: int = Field(..., ge=1)

    model_config = ConfigDict(frozen=True)


class UntilEnd(BaseModel):
    """Recurrence that stops at an instant."""

    kind: Literal["until"] = "until"
    until: Instant

    model_config = ConfigDict(frozen=True)


RecurrenceEnd = Annotated[Union[NoEnd, CountEnd, UntilEnd], Field(discriminator="kind")]


class RecurrenceRule(BaseModel):
    """Structured form of an RRULE value. Occurrences are not expanded."""

    frequency: Frequency
    interval: int = Field(default=1, ge=1)
    days_of_week: Optional[tuple[WeekdayRule, ...]] = None
    days_of_month: Optional[tuple[int, ...]] = None
    days_of_year: Optional[tuple[int, ...]] = None
    months_of_year: Optional[tuple[int, ...]] = None
    weeks_of_year: Optional[tuple[int, ...]] = None
    set_positions: Optional[tuple[int, ...]] = None
    end: RecurrenceEnd = Field(default_factory=NoEnd)

    model_config = ConfigDict(frozen=True)

    def approximate_end(self, start: Instant) -> Optional[Instant]:
        """Return the last occurrence implied by the termination condition.

        For COUNT rules the last occurrence is ``count - 1`` steps of
        ``interval`` frequency units after ``start``. BY* filters are ignored,
        so this is an upper bound for rules that skip periods.
        """
        if isinstance(self.end, UntilEnd):
            return self.end.until
        if isinstance(self.end, CountEnd):
            steps = self.interval * (self.end.count - 1)
            return start + relativedelta(**{_FREQUENCY_STEP[self.frequency]: steps})
        return None


class Event(BaseModel):
    """A single decoded VEVENT block."""

    id: str
    name: str
    start: Instant
    end: Instant
    location: Optional[Coordinates] = None
    location_text: Optional[str] = Field(default=None, description="Raw LOCATION value")
    notes: Optional[str] = None
    url: Optional[str] = None
    recurrence_rule: Optional[RecurrenceRule] = None
    alert_offset: Optional[timedelta] = None
    exclusion_dates: tuple[Instant, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_rule is not None

    @property
    def is_all_day(self) -> bool:
        return not isinstance(self.start, datetime)


class Calendar(BaseModel):
    """Calendar name plus its events in document order."""

    name: str
    events: tuple[Event, ...] = ()

    model_config = ConfigDict(frozen=True)
