"""Timezone resolution for TZID parameters."""

from __future__ import annotations

import datetime
import logging
from functools import lru_cache
from types import MappingProxyType
from typing import ClassVar, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import tz as dateutil_tz

logger = logging.getLogger(__name__)

# Timezone abbreviation to IANA identifier mapping
_KNOWN_ABBREVIATIONS: dict[str, str] = {
    "ADT": "America/Halifax",
    "AKDT": "America/Juneau",
    "AKST": "America/Juneau",
    "ART": "America/Argentina/Buenos_Aires",
    "AST": "America/Halifax",
    "BDT": "Asia/Dhaka",
    "BRST": "America/Sao_Paulo",
    "BRT": "America/Sao_Paulo",
    "BST": "Europe/London",
    "CAT": "Africa/Harare",
    "CDT": "America/Chicago",
    "CEST": "Europe/Paris",
    "CET": "Europe/Paris",
    "CLST": "America/Santiago",
    "CLT": "America/Santiago",
    "COT": "America/Bogota",
    "CST": "America/Chicago",
    "EAT": "Africa/Addis_Ababa",
    "EDT": "America/New_York",
    "EEST": "Europe/Athens",
    "EET": "Europe/Athens",
    "EST": "America/New_York",
    "GMT": "GMT",
    "GST": "Asia/Dubai",
    "HKT": "Asia/Hong_Kong",
    "HST": "Pacific/Honolulu",
    "ICT": "Asia/Bangkok",
    "IRST": "Asia/Tehran",
    "IST": "Asia/Kolkata",
    "JST": "Asia/Tokyo",
    "KST": "Asia/Seoul",
    "MDT": "America/Denver",
    "MSD": "Europe/Moscow",
    "MSK": "Europe/Moscow",
    "MST": "America/Denver",
    "NZDT": "Pacific/Auckland",
    "NZST": "Pacific/Auckland",
    "PDT": "America/Los_Angeles",
    "PET": "America/Lima",
    "PHT": "Asia/Manila",
    "PKT": "Asia/Karachi",
    "PST": "America/Los_Angeles",
    "SGT": "Asia/Singapore",
    "TRT": "Europe/Istanbul",
    "UTC": "UTC",
    "WAT": "Africa/Lagos",
    "WEST": "Europe/Lisbon",
    "WET": "Europe/Lisbon",
    "WIT": "Asia/Jakarta",
}

# Project-specific entries layered over the standard table
_ABBREVIATION_OVERRIDES: dict[str, str] = {
    "RM": "Europe/Rome",
}


@lru_cache(maxsize=1)
def abbreviation_table() -> Mapping[str, str]:
    """Return the read-only abbreviation -> IANA identifier table.

    Built on first use and shared for the life of the process.
    """
    table = dict(_KNOWN_ABBREVIATIONS)
    table.update(_ABBREVIATION_OVERRIDES)
    return MappingProxyType(table)


def _region(identifier: str) -> str:
    return identifier.split("/", 1)[0]


def _load_zone(identifier: str) -> Optional[ZoneInfo]:
    try:
        return ZoneInfo(identifier)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.warning("Timezone %r is not available: %s", identifier, e)
        return None


class TimeZoneResolver:
    """Maps TZID tokens to ``ZoneInfo`` objects.

    Resolution order:
      1. strip a leading ``TZID=``
      2. an entry whose identifier equals the token
      3. an entry whose identifier shares the token's leading region
         (text before the first ``/``)
      4. the token as an abbreviation key (``EST``, ``RM``)
      5. the token as a Windows zone name (``Pacific Standard Time``)

    Anything else is unresolved; callers treat that as UTC.
    """

    # Common Windows timezones used in ICS files from Outlook/Exchange
    WINDOWS_TZ_MAP: ClassVar[dict[str, str]] = {
        "Pacific Standard Time": "America/Los_Angeles",
        "Mountain Standard Time": "America/Denver",
        "US Mountain Standard Time": "America/Phoenix",
        "Central Standard Time": "America/Chicago",
        "Eastern Standard Time": "America/New_York",
        "Atlantic Standard Time": "America/Halifax",
        "Alaskan Standard Time": "America/Anchorage",
        "Hawaiian Standard Time": "Pacific/Honolulu",
        "GMT Standard Time": "Europe/London",
        "W. Europe Standard Time": "Europe/Berlin",
        "Romance Standard Time": "Europe/Paris",
        "Central European Standard Time": "Europe/Warsaw",
        "China Standard Time": "Asia/Shanghai",
        "Tokyo Standard Time": "Asia/Tokyo",
        "India Standard Time": "Asia/Kolkata",
        "AUS Eastern Standard Time": "Australia/Sydney",
    }

    def __init__(self, table: Optional[Mapping[str, str]] = None):
        self.table = table if table is not None else abbreviation_table()

    def resolve_identifier(self, token: Optional[str]) -> Optional[str]:
        """Return the IANA identifier a TZID token resolves to, or None."""
        if not token:
            return None
        token = token.strip()
        if token.startswith("TZID="):
            token = token[len("TZID=") :]
        token = token.strip('"')
        if not token:
            return None

        for identifier in self.table.values():
            if identifier == token:
                return identifier

        region = _region(token)
        for identifier in self.table.values():
            if _region(identifier) == region:
                logger.debug("TZID %r matched region entry %r", token, identifier)
                return identifier

        if token in self.table:
            return self.table[token]

        return self.WINDOWS_TZ_MAP.get(token)

    def resolve(self, token: Optional[str]) -> Optional[ZoneInfo]:
        """Resolve a TZID token to a timezone, or None if unresolved."""
        identifier = self.resolve_identifier(token)
        if identifier is None:
            if token:
                logger.debug("Unresolved TZID %r, treating as UTC", token)
            return None
        return _load_zone(identifier)


def get_local_timezone(name: Optional[str] = None) -> datetime.tzinfo:
    """Return the zone decoded instants are converted into.

    Args:
        name: Optional IANA identifier; when absent or invalid the process
              local zone is used

    Returns:
        tzinfo for the configured zone, DST-aware
    """
    if name:
        zone = _load_zone(name)
        if zone is not None:
            return zone
        logger.warning("Configured local timezone %r unusable, using process zone", name)
    return dateutil_tz.tzlocal()
