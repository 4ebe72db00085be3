"""Command-line entry for icalkit.

Loads a calendar from a URL or a file and prints a summary or JSON.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from icalkit.calendar.models import Calendar, Event
from icalkit.core.config_loader import load_config, load_env_file
from icalkit.core.logging_config import configure_logging
from icalkit.exceptions import ICalKitError
from icalkit.loader import load_calendar_sync

logger = logging.getLogger("icalkit.cli")


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the icalkit CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="icalkit",
        description="Read an iCalendar document and print its events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m icalkit calendar.ics                      # Summary of a local file
  python -m icalkit https://example.com/cal.ics --json
  python -m icalkit calendar.ics --timezone Europe/Rome --no-geocode
        """,
    )
    parser.add_argument("source", help="http(s) URL or path of the .ics document")
    parser.add_argument("--config", metavar="PATH", help="YAML or JSON config file")
    parser.add_argument("--timezone", metavar="TZ", help="IANA zone to convert times into")
    parser.add_argument("--no-events", action="store_true", help="Only read the calendar name")
    parser.add_argument("--no-geocode", action="store_true", help="Skip location lookups")
    parser.add_argument("--json", action="store_true", help="Print the calendar as JSON")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def _format_event(event: Event) -> str:
    line = f"- {event.start} -> {event.end}  {event.name}"
    if event.recurrence_rule is not None:
        rule = event.recurrence_rule
        line += f"  [{rule.frequency.value} x{rule.interval}]"
    if event.location is not None:
        line += f"  @ {event.location.latitude:.5f},{event.location.longitude:.5f}"
    elif event.location_text:
        line += f"  @ {event.location_text}"
    return line


def format_summary(calendar: Calendar) -> str:
    """Render a plain-text summary of ``calendar``."""
    lines = [f"{calendar.name} ({len(calendar.events)} events)"]
    lines.extend(_format_event(event) for event in calendar.events)
    return "\n".join(lines)


def main(argv: Optional[list[str]] = None) -> int:
    """Run the icalkit CLI and return the process exit code."""
    args = _create_parser().parse_args(argv)

    load_env_file()
    config = load_config(args.config)
    configure_logging(config.log_level, debug_mode=args.debug)
    config = config.with_overrides(
        local_timezone=args.timezone,
        geocoding_enabled=False if args.no_geocode else None,
    )

    try:
        calendar = load_calendar_sync(args.source, config, load_events=not args.no_events)
    except ICalKitError as exc:
        logger.error("Failed to load %s: %s", args.source, exc.message)
        return 1

    if args.json:
        print(calendar.model_dump_json(indent=2))
    else:
        print(format_summary(calendar))
    return 0


if __name__ == "__main__":
    sys.exit(main())
