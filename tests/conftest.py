"""Shared fixtures for icalkit tests."""

from collections.abc import Generator
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo

import pytest

from icalkit.calendar.datetime_decoder import DateTimeDecoder
from icalkit.core.timezone_utils import TimeZoneResolver

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def pytest_configure(config: Any) -> None:
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line("markers", "fast: tests that run in milliseconds")
    config.addinivalue_line("markers", "integration: tests crossing module boundaries")


@pytest.fixture
def utc_zone() -> ZoneInfo:
    return ZoneInfo("UTC")


@pytest.fixture
def rome_zone() -> ZoneInfo:
    """Deterministic non-UTC local zone so tests do not depend on the host."""
    return ZoneInfo("Europe/Rome")


@pytest.fixture
def utc_decoder(utc_zone: ZoneInfo) -> DateTimeDecoder:
    return DateTimeDecoder(resolver=TimeZoneResolver(), local_timezone=utc_zone)


@pytest.fixture
def sample_ics_path() -> Path:
    return FIXTURES_DIR / "sample.ics"


@pytest.fixture
def sample_ics_text(sample_ics_path: Path) -> str:
    return sample_ics_path.read_text(encoding="utf-8")


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Keep ICALKIT_* variables from the host out of config tests."""
    for name in (
        "ICALKIT_LOCAL_TIMEZONE",
        "ICALKIT_GEOCODING",
        "ICALKIT_GEOCODE_CONCURRENCY",
        "ICALKIT_GEOCODE_TIMEOUT",
        "ICALKIT_REQUEST_TIMEOUT",
        "ICALKIT_STRICT_KEYS",
        "ICALKIT_LOG_LEVEL",
        "ICALKIT_NOMINATIM_URL",
        "ICALKIT_USER_AGENT",
        "ICALKIT_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
