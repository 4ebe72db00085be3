"""Calendar assembly from raw iCalendar text.

The assembler walks the document line by line:

    BeforeFirstEvent -> ScanningBlock -> BetweenEvents -> ScanningBlock ... -> Done

Lines before the first ``BEGIN:VEVENT`` are dropped. Each block runs up to
and including the next ``END:VEVENT`` and is consumed before the scan
continues; the scan is done when no end marker remains. Blocks missing a
required field (UID, SUMMARY, DTSTART, DTEND) or with an undecodable date
are skipped without failing the document.

Locations are geocoded after all blocks are decoded, through a bounded
fan-out with a per-call timeout. Results are written back by event index so
the output does not depend on completion order.
"""

import logging
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from icalkit.calendar.datetime_decoder import DateTimeDecoder
from icalkit.calendar.field_extractor import (
    Segment,
    all_lines_with_prefix,
    get_value,
    parameter_value,
    split_segment,
)
from icalkit.calendar.models import Calendar, Coordinates, Event, Instant, RecurrenceRule
from icalkit.calendar.rrule_decoder import RecurrenceRuleDecoder
from icalkit.core.async_utils import AsyncOrchestrator
from icalkit.exceptions import InvalidDocument
from icalkit.geocoding import Geocoder, NullGeocoder

logger = logging.getLogger(__name__)

CALENDAR_NAME_KEY = "X-WR-CALNAME"
EVENT_BEGIN_KEY = "BEGIN:VEVENT"
EVENT_END_KEY = "END:VEVENT"
EVENT_ID_KEY = "UID"
EVENT_NAME_KEY = "SUMMARY"
EVENT_START_KEY = "DTSTART"
EVENT_END_DATE_KEY = "DTEND"
EVENT_LOCATION_KEY = "LOCATION"
EVENT_NOTES_KEY = "DESCRIPTION"
EVENT_URL_KEY = "URL"
EVENT_RRULE_KEY = "RRULE"
EVENT_TRIGGER_KEY = "TRIGGER"
EVENT_EXDATE_KEY = "EXDATE"

_TAG_RE = re.compile(r"<[^>]+>")
_TRIGGER_RE = re.compile(r"-PT(\d+)([MH])")
_TRIGGER_UNITS = {"M": 60, "H": 3600}


def strip_markup(text: str) -> str:
    """Remove HTML tags from DESCRIPTION text."""
    return _TAG_RE.sub("", text)


def unescape_text(text: str) -> str:
    """Undo iCalendar TEXT escaping (``\\n``, ``\\,``, ``\\;``, ``\\\\``)."""
    return re.sub(
        r"\\([nN,;\\])",
        lambda m: "\n" if m.group(1) in "nN" else m.group(1),
        text,
    )


def decode_trigger(value: Optional[str]) -> Optional[timedelta]:
    """Decode ``-PT<n>M`` / ``-PT<n>H`` into a reminder offset; other forms give None."""
    if not value:
        return None
    match = _TRIGGER_RE.fullmatch(value.strip())
    if match is None:
        return None
    return timedelta(seconds=int(match.group(1)) * _TRIGGER_UNITS[match.group(2)])


def iter_event_blocks(lines: Sequence[str]) -> Iterator[list[str]]:
    """Yield each event block, end marker included, in document order."""
    position = 0
    # BeforeFirstEvent
    while position < len(lines) and EVENT_BEGIN_KEY not in lines[position]:
        position += 1

    while True:
        end = next(
            (i for i in range(position, len(lines)) if EVENT_END_KEY in lines[i]),
            None,
        )
        if end is None:
            # Done
            return
        # ScanningBlock
        yield list(lines[position : end + 1])
        # BetweenEvents
        position = end + 1


@dataclass
class _DecodedEvent:
    """Event fields decoded from one block, before geocoding."""

    id: str
    name: str
    start: Instant
    end: Instant
    location_text: Optional[str] = None
    notes: Optional[str] = None
    url: Optional[str] = None
    recurrence_rule: Optional[RecurrenceRule] = None
    alert_offset: Optional[timedelta] = None
    exclusion_dates: list[Instant] = field(default_factory=list)

    def to_event(self, location: Optional[Coordinates]) -> Event:
        return Event(
            id=self.id,
            name=self.name,
            start=self.start,
            end=self.end,
            location=location,
            location_text=self.location_text,
            notes=self.notes,
            url=self.url,
            recurrence_rule=self.recurrence_rule,
            alert_offset=self.alert_offset,
            exclusion_dates=tuple(self.exclusion_dates),
        )


class CalendarAssembler:
    """Turns iCalendar text into a ``Calendar``."""

    def __init__(
        self,
        datetime_decoder: Optional[DateTimeDecoder] = None,
        rrule_decoder: Optional[RecurrenceRuleDecoder] = None,
        geocoder: Optional[Geocoder] = None,
        orchestrator: Optional[AsyncOrchestrator] = None,
        strict_keys: bool = False,
    ):
        """Initialize assembler.

        Args:
            datetime_decoder: Decoder for DTSTART/DTEND/EXDATE literals
            rrule_decoder: Decoder for RRULE values
            geocoder: Collaborator resolving LOCATION text (disabled if None)
            orchestrator: Bounded fan-out used for geocoding
            strict_keys: Match property keys at line start instead of anywhere
        """
        self.datetime_decoder = datetime_decoder or DateTimeDecoder()
        self.rrule_decoder = rrule_decoder or RecurrenceRuleDecoder(self.datetime_decoder)
        self.geocoder: Geocoder = geocoder or NullGeocoder()
        self.orchestrator = orchestrator or AsyncOrchestrator()
        self.strict_keys = strict_keys

    def _text(self, block: Sequence[str], key: str) -> Optional[str]:
        """Return the unescaped value of ``key``; ``""`` when present but empty."""
        value = get_value(block, key, segment=Segment.REST, strict=self.strict_keys)
        if value is None:
            return None
        return unescape_text(value).strip()

    def _optional_text(self, block: Sequence[str], key: str) -> Optional[str]:
        return self._text(block, key) or None

    def _exclusion_dates(self, block: Sequence[str]) -> list[Instant]:
        dates: list[Instant] = []
        for line in all_lines_with_prefix(block, EVENT_EXDATE_KEY):
            tzid = parameter_value(line, "TZID")
            value = split_segment(line, ":") or ""
            for literal in value.split(","):
                decoded = self.datetime_decoder.decode(literal, tzid)
                if decoded is None:
                    logger.debug("Skipping undecodable EXDATE %r", literal)
                    continue
                dates.append(decoded)
        return dates

    def decode_block(self, block: Sequence[str]) -> Optional[_DecodedEvent]:
        """Decode one event block, or None if a required field is unusable."""
        uid = self._text(block, EVENT_ID_KEY)
        name = self._text(block, EVENT_NAME_KEY)
        start = self.datetime_decoder.decode_property(block, EVENT_START_KEY, self.strict_keys)
        end = self.datetime_decoder.decode_property(block, EVENT_END_DATE_KEY, self.strict_keys)
        if uid is None or name is None or start is None or end is None:
            return None

        rule_value = get_value(block, EVENT_RRULE_KEY, segment=Segment.REST, strict=self.strict_keys)
        recurrence_rule = self.rrule_decoder.decode(rule_value, start) if rule_value else None

        notes = self._optional_text(block, EVENT_NOTES_KEY)
        if notes is not None:
            notes = strip_markup(notes).strip() or None

        trigger = get_value(block, EVENT_TRIGGER_KEY, strict=self.strict_keys)

        return _DecodedEvent(
            id=uid,
            name=name,
            start=start,
            end=end,
            location_text=self._optional_text(block, EVENT_LOCATION_KEY),
            notes=notes,
            url=self._optional_text(block, EVENT_URL_KEY),
            recurrence_rule=recurrence_rule,
            alert_offset=decode_trigger(trigger),
            exclusion_dates=self._exclusion_dates(block),
        )

    def decode_events(self, lines: Sequence[str]) -> list[_DecodedEvent]:
        """Decode every usable event block in ``lines``."""
        decoded: list[_DecodedEvent] = []
        for index, block in enumerate(iter_event_blocks(lines)):
            event = self.decode_block(block)
            if event is None:
                logger.debug("Skipping event block %d: missing or undecodable required field", index)
                continue
            decoded.append(event)
        return decoded

    async def _geocode_all(self, decoded: Sequence[_DecodedEvent]) -> list[Optional[Coordinates]]:
        locations: list[Optional[Coordinates]] = [None] * len(decoded)
        pending = [i for i, event in enumerate(decoded) if event.location_text]
        if not pending:
            return locations

        factories = [
            (lambda text=decoded[i].location_text: self.geocoder.geocode(text)) for i in pending
        ]
        results = await self.orchestrator.bounded_gather(factories)
        logger.debug("Geocoded %d locations: %s", len(pending), self.orchestrator.get_stats())
        for index, coordinates in zip(pending, results):
            locations[index] = coordinates
        return locations

    async def assemble(self, text: str, load_events: bool = True) -> Calendar:
        """Parse ``text`` into a Calendar.

        Args:
            text: Full iCalendar document
            load_events: When False only the calendar name is read

        Returns:
            Calendar with every successfully decoded event, in document order

        Raises:
            InvalidDocument: If the document has no calendar name
        """
        lines = text.split("\n")
        name = self._text(lines, CALENDAR_NAME_KEY)
        if name is None:
            raise InvalidDocument(f"No {CALENDAR_NAME_KEY} found in document")

        if not load_events:
            return Calendar(name=name)

        decoded = self.decode_events(lines)
        locations = await self._geocode_all(decoded)
        events = tuple(event.to_event(location) for event, location in zip(decoded, locations))

        logger.info("Parsed calendar %r with %d events", name, len(events))
        return Calendar(name=name, events=events)
