"""Unit tests for icalkit.calendar.assembler."""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from unittest.mock import AsyncMock

import pytest

from icalkit.calendar.assembler import (
    CalendarAssembler,
    decode_trigger,
    iter_event_blocks,
    strip_markup,
    unescape_text,
)
from icalkit.calendar.datetime_decoder import DateTimeDecoder
from icalkit.calendar.models import Coordinates, CountEnd, Frequency, UntilEnd
from icalkit.core.async_utils import AsyncOrchestrator
from icalkit.exceptions import InvalidDocument

pytestmark = [pytest.mark.unit]


def make_event(uid: str, summary: str, *extra: str, start: str = "20200615T100000Z") -> list[str]:
    lines = ["BEGIN:VEVENT", f"UID:{uid}", f"SUMMARY:{summary}"]
    if start:
        lines.append(f"DTSTART:{start}")
    lines.append("DTEND:20200615T110000Z")
    lines.extend(extra)
    lines.append("END:VEVENT")
    return lines


def make_document(*events: list[str], name: Optional[str] = "Work") -> str:
    lines = ["BEGIN:VCALENDAR", "VERSION:2.0"]
    if name is not None:
        lines.append(f"X-WR-CALNAME:{name}")
    for event in events:
        lines.extend(event)
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"


@pytest.fixture
def assembler(utc_decoder: DateTimeDecoder) -> CalendarAssembler:
    return CalendarAssembler(datetime_decoder=utc_decoder)


class TestHelpers:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("-PT15M", timedelta(seconds=900)),
            ("-PT2H", timedelta(seconds=7200)),
            ("-PT0M", timedelta(0)),
            ("PT15M", None),
            ("-P1D", None),
            ("-PT15S", None),
            ("", None),
            (None, None),
        ],
    )
    def test_decode_trigger(self, value, expected) -> None:
        assert decode_trigger(value) == expected

    def test_strip_markup(self) -> None:
        assert strip_markup("<p>Hello <b>team</b></p>") == "Hello team"

    def test_unescape_text(self) -> None:
        assert unescape_text(r"Rome\, Italy\nRoom 2\; floor 1\\") == "Rome, Italy\nRoom 2; floor 1\\"


class TestBlockScanner:
    def test_lines_before_first_event_are_discarded(self) -> None:
        lines = ["X-WR-CALNAME:Work", "DTSTART:19990101", "BEGIN:VEVENT", "UID:1", "END:VEVENT"]
        assert list(iter_event_blocks(lines)) == [["BEGIN:VEVENT", "UID:1", "END:VEVENT"]]

    def test_blocks_include_end_marker_and_are_consumed_in_order(self) -> None:
        lines = ["BEGIN:VEVENT", "UID:1", "END:VEVENT", "BEGIN:VEVENT", "UID:2", "END:VEVENT", "END:VCALENDAR"]
        blocks = list(iter_event_blocks(lines))
        assert [block[1] for block in blocks] == ["UID:1", "UID:2"]
        assert all(block[-1] == "END:VEVENT" for block in blocks)

    def test_trailing_block_without_end_marker_is_ignored(self) -> None:
        lines = ["BEGIN:VEVENT", "UID:1", "END:VEVENT", "BEGIN:VEVENT", "UID:2"]
        assert len(list(iter_event_blocks(lines))) == 1

    def test_document_without_events(self) -> None:
        assert list(iter_event_blocks(["BEGIN:VCALENDAR", "END:VCALENDAR"])) == []


class TestAssemble:
    @pytest.mark.asyncio
    async def test_missing_calendar_name_raises_invalid_document(self, assembler) -> None:
        with pytest.raises(InvalidDocument):
            await assembler.assemble(make_document(make_event("1", "A"), name=None))

    @pytest.mark.asyncio
    async def test_block_missing_dtstart_is_dropped(self, assembler) -> None:
        text = make_document(make_event("1", "Broken", start=""), make_event("2", "Good"))
        calendar = await assembler.assemble(text)
        assert [event.id for event in calendar.events] == ["2"]

    @pytest.mark.asyncio
    async def test_empty_summary_keeps_untitled_event(self, assembler) -> None:
        lines = [
            "BEGIN:VEVENT",
            "UID:1",
            "SUMMARY:",
            "DTSTART:20200615T100000Z",
            "DTEND:20200615T110000Z",
            "END:VEVENT",
        ]
        calendar = await assembler.assemble(make_document(lines))

        assert len(calendar.events) == 1
        assert calendar.events[0].id == "1"
        assert calendar.events[0].name == ""

    @pytest.mark.asyncio
    async def test_empty_optional_fields_are_absent(self, assembler) -> None:
        text = make_document(make_event("1", "A", "LOCATION:", "DESCRIPTION:<br>", "URL:"))
        event = (await assembler.assemble(text)).events[0]

        assert event.location_text is None
        assert event.notes is None
        assert event.url is None

    @pytest.mark.asyncio
    async def test_block_with_undecodable_date_is_dropped(self, assembler) -> None:
        text = make_document(make_event("1", "Bad date", start="2020XX15"), make_event("2", "Good"))
        calendar = await assembler.assemble(text)
        assert [event.id for event in calendar.events] == ["2"]

    @pytest.mark.asyncio
    async def test_load_events_false_returns_name_only(self, assembler) -> None:
        calendar = await assembler.assemble(make_document(make_event("1", "A")), load_events=False)
        assert calendar.name == "Work"
        assert calendar.events == ()

    @pytest.mark.asyncio
    async def test_optional_fields_are_decoded(self, assembler) -> None:
        event_lines = make_event(
            "1",
            "Planning",
            "RRULE:FREQ=MONTHLY;BYDAY=-1FR;COUNT=6",
            "DESCRIPTION:<p>Agenda\\, <i>draft</i></p>",
            "URL:https://example.com/plan",
            "TRIGGER:-PT15M",
            "EXDATE:20200715T100000Z,20200815T100000Z",
            "EXDATE;TZID=Europe/Rome:20200915T120000",
        )
        calendar = await assembler.assemble(make_document(event_lines))
        event = calendar.events[0]

        assert event.name == "Planning"
        assert event.start == datetime(2020, 6, 15, 10, 0, tzinfo=timezone.utc)
        assert event.notes == "Agenda, draft"
        assert event.url == "https://example.com/plan"
        assert event.alert_offset == timedelta(seconds=900)
        assert event.recurrence_rule is not None
        assert event.recurrence_rule.frequency is Frequency.MONTHLY
        assert event.recurrence_rule.end == CountEnd(count=6)
        assert event.exclusion_dates == (
            datetime(2020, 7, 15, 10, 0, tzinfo=timezone.utc),
            datetime(2020, 8, 15, 10, 0, tzinfo=timezone.utc),
            datetime(2020, 9, 15, 10, 0, tzinfo=timezone.utc),
        )
        assert event.location is None

    @pytest.mark.asyncio
    async def test_invalid_rrule_leaves_event_without_rule(self, assembler) -> None:
        text = make_document(make_event("1", "A", "RRULE:FREQ=HOURLY;COUNT=3"))
        calendar = await assembler.assemble(text)
        assert calendar.events[0].recurrence_rule is None

    @pytest.mark.asyncio
    async def test_all_day_event_with_until(self, assembler) -> None:
        lines = [
            "BEGIN:VEVENT",
            "UID:holiday",
            "SUMMARY:Holiday",
            "DTSTART;VALUE=DATE:20200101",
            "DTEND;VALUE=DATE:20200102",
            "RRULE:FREQ=YEARLY;UNTIL=20250101",
            "END:VEVENT",
        ]
        calendar = await assembler.assemble(make_document(lines))
        event = calendar.events[0]
        assert event.start == date(2020, 1, 1)
        assert event.is_all_day
        assert event.recurrence_rule.end == UntilEnd(until=date(2025, 1, 1))


class TestGeocodingFanOut:
    @pytest.mark.asyncio
    async def test_locations_follow_event_order_regardless_of_completion(self, utc_decoder) -> None:
        coordinates = {
            "First": Coordinates(latitude=1.0, longitude=1.0),
            "Second": Coordinates(latitude=2.0, longitude=2.0),
            "Third": Coordinates(latitude=3.0, longitude=3.0),
        }
        delays = {"First": 0.03, "Second": 0.0, "Third": 0.01}

        async def geocode(address: str) -> Optional[Coordinates]:
            await asyncio.sleep(delays[address])
            return coordinates[address]

        geocoder = AsyncMock()
        geocoder.geocode.side_effect = geocode
        assembler = CalendarAssembler(datetime_decoder=utc_decoder, geocoder=geocoder)

        text = make_document(
            make_event("1", "A", "LOCATION:First"),
            make_event("2", "B"),
            make_event("3", "C", "LOCATION:Second"),
            make_event("4", "D", "LOCATION:Third"),
        )
        calendar = await assembler.assemble(text)

        assert [event.location for event in calendar.events] == [
            coordinates["First"],
            None,
            coordinates["Second"],
            coordinates["Third"],
        ]
        assert geocoder.geocode.await_count == 3
        assert calendar.events[0].location_text == "First"

    @pytest.mark.asyncio
    async def test_geocode_failure_and_timeout_leave_location_empty(self, utc_decoder, caplog) -> None:
        async def geocode(address: str) -> Optional[Coordinates]:
            if address == "Slow":
                await asyncio.sleep(5)
            if address == "Broken":
                raise RuntimeError("service down")
            return None

        geocoder = AsyncMock()
        geocoder.geocode.side_effect = geocode
        orchestrator = AsyncOrchestrator(max_concurrency=2, default_timeout=0.05)
        assembler = CalendarAssembler(
            datetime_decoder=utc_decoder, geocoder=geocoder, orchestrator=orchestrator
        )
        text = make_document(
            make_event("1", "A", "LOCATION:Slow"),
            make_event("2", "B", "LOCATION:Broken"),
            make_event("3", "C", "LOCATION:Nowhere"),
        )
        with caplog.at_level(logging.DEBUG, logger="icalkit.calendar.assembler"):
            calendar = await assembler.assemble(text)

        assert [event.id for event in calendar.events] == ["1", "2", "3"]
        assert all(event.location is None for event in calendar.events)
        stats = orchestrator.get_stats()
        assert (stats["operations"], stats["errors"], stats["timeouts"]) == (3, 2, 1)
        assert "Geocoded 3 locations" in caplog.text


class TestStrictKeys:
    @pytest.mark.asyncio
    async def test_strict_keys_ignore_key_mentioned_in_other_lines(self, utc_decoder) -> None:
        lines = make_event("1", "A", "DESCRIPTION:see URL below", "URL:https://example.com")
        legacy = CalendarAssembler(datetime_decoder=utc_decoder)
        strict = CalendarAssembler(datetime_decoder=utc_decoder, strict_keys=True)

        legacy_event = (await legacy.assemble(make_document(lines))).events[0]
        strict_event = (await strict.assemble(make_document(lines))).events[0]

        assert legacy_event.url == "see URL below"
        assert strict_event.url == "https://example.com"
