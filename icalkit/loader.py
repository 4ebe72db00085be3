"""Entry points that turn a URL, a path or raw text into a Calendar."""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

import httpx

from icalkit.calendar.assembler import CalendarAssembler
from icalkit.calendar.datetime_decoder import DateTimeDecoder
from icalkit.calendar.models import Calendar
from icalkit.calendar.rrule_decoder import RecurrenceRuleDecoder
from icalkit.core.async_utils import AsyncOrchestrator
from icalkit.core.config_loader import Config
from icalkit.core.http_client import close_all_clients
from icalkit.core.timezone_utils import TimeZoneResolver, get_local_timezone
from icalkit.fetcher import ICSFetcher, read_text_file
from icalkit.geocoding import Geocoder, NominatimGeocoder, NullGeocoder

logger = logging.getLogger(__name__)


def build_geocoder(config: Config) -> Geocoder:
    """Return the geocoder selected by ``config``."""
    if not config.geocoding_enabled:
        return NullGeocoder()
    return NominatimGeocoder(base_url=config.nominatim_url, user_agent=config.user_agent)


def build_assembler(config: Optional[Config] = None, geocoder: Optional[Geocoder] = None) -> CalendarAssembler:
    """Wire decoders, geocoder and orchestrator according to ``config``."""
    config = config or Config()
    datetime_decoder = DateTimeDecoder(
        resolver=TimeZoneResolver(),
        local_timezone=get_local_timezone(config.local_timezone),
    )
    return CalendarAssembler(
        datetime_decoder=datetime_decoder,
        rrule_decoder=RecurrenceRuleDecoder(datetime_decoder),
        geocoder=geocoder or build_geocoder(config),
        orchestrator=AsyncOrchestrator(
            max_concurrency=config.geocode_concurrency,
            default_timeout=config.geocode_timeout_seconds,
        ),
        strict_keys=config.strict_keys,
    )


async def parse_calendar(
    text: str,
    config: Optional[Config] = None,
    geocoder: Optional[Geocoder] = None,
    load_events: bool = True,
) -> Calendar:
    """Parse iCalendar text.

    Raises:
        InvalidDocument: If the text has no calendar name
    """
    return await build_assembler(config, geocoder).assemble(text, load_events=load_events)


async def load_calendar_from_url(
    url: str,
    config: Optional[Config] = None,
    geocoder: Optional[Geocoder] = None,
    load_events: bool = True,
    client: Optional[httpx.AsyncClient] = None,
) -> Calendar:
    """Fetch a calendar over HTTP(S) and parse it.

    Raises:
        InvalidSource: If the URL is invalid or the request fails
        InvalidEncoding: If the body is not text
        InvalidDocument: If the document has no calendar name
    """
    config = config or Config()
    fetcher = ICSFetcher(timeout_seconds=config.request_timeout_seconds, client=client)
    text = await fetcher.fetch_text(url)
    return await parse_calendar(text, config, geocoder, load_events)


async def load_calendar_from_path(
    path: Union[str, Path],
    config: Optional[Config] = None,
    geocoder: Optional[Geocoder] = None,
    load_events: bool = True,
) -> Calendar:
    """Read a local .ics file in a worker thread and parse it.

    Raises:
        InvalidSource: If the file cannot be read
        InvalidEncoding: If the file is not UTF-8
        InvalidDocument: If the document has no calendar name
    """
    text = await asyncio.to_thread(read_text_file, path)
    return await parse_calendar(text, config, geocoder, load_events)


def is_url(source: str) -> bool:
    return urlparse(source).scheme in ("http", "https")


async def load_calendar(
    source: str,
    config: Optional[Config] = None,
    geocoder: Optional[Geocoder] = None,
    load_events: bool = True,
) -> Calendar:
    """Load from ``source``, which is either an http(s) URL or a file path."""
    if is_url(source):
        return await load_calendar_from_url(source, config, geocoder, load_events)
    return await load_calendar_from_path(source, config, geocoder, load_events)


def load_calendar_sync(
    source: str,
    config: Optional[Config] = None,
    geocoder: Optional[Geocoder] = None,
    load_events: bool = True,
) -> Calendar:
    """Blocking wrapper around ``load_calendar`` for callers without a loop."""

    async def _run() -> Calendar:
        try:
            return await load_calendar(source, config, geocoder, load_events)
        finally:
            await close_all_clients()

    return asyncio.run(_run())


def parse_calendar_sync(
    text: str,
    config: Optional[Config] = None,
    geocoder: Optional[Geocoder] = None,
    load_events: bool = True,
) -> Calendar:
    """Blocking wrapper around ``parse_calendar``."""

    async def _run() -> Calendar:
        try:
            return await parse_calendar(text, config, geocoder, load_events)
        finally:
            await close_all_clients()

    return asyncio.run(_run())
