"""Unit tests for icalkit.core.timezone_utils."""

from zoneinfo import ZoneInfo

import pytest

from icalkit.core.timezone_utils import TimeZoneResolver, abbreviation_table, get_local_timezone

pytestmark = [pytest.mark.unit, pytest.mark.fast]


class TestAbbreviationTable:
    def test_table_contains_project_override(self) -> None:
        assert abbreviation_table()["RM"] == "Europe/Rome"

    def test_table_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            abbreviation_table()["XX"] = "Etc/UTC"  # type: ignore[index]

    def test_table_is_built_once(self) -> None:
        assert abbreviation_table() is abbreviation_table()


class TestTimeZoneResolver:
    def setup_method(self) -> None:
        self.resolver = TimeZoneResolver()

    def test_exact_identifier_match(self) -> None:
        assert self.resolver.resolve_identifier("America/New_York") == "America/New_York"

    def test_tzid_prefix_is_stripped(self) -> None:
        assert self.resolver.resolve_identifier("TZID=Europe/Rome") == "Europe/Rome"

    def test_region_fallback_uses_first_entry_with_same_region(self) -> None:
        table = {"AAA": "Europe/Lisbon", "BBB": "Europe/Paris", "CCC": "Asia/Tokyo"}
        resolver = TimeZoneResolver(table)
        assert resolver.resolve_identifier("Europe/Vienna") == "Europe/Lisbon"

    def test_exact_match_wins_over_region_fallback(self) -> None:
        table = {"AAA": "Europe/Lisbon", "BBB": "Europe/Paris"}
        resolver = TimeZoneResolver(table)
        assert resolver.resolve_identifier("Europe/Paris") == "Europe/Paris"

    def test_abbreviation_key_is_resolved_after_identifier_steps(self) -> None:
        assert self.resolver.resolve_identifier("EST") == "America/New_York"
        assert self.resolver.resolve_identifier("RM") == "Europe/Rome"

    def test_windows_zone_name(self) -> None:
        assert self.resolver.resolve_identifier("Pacific Standard Time") == "America/Los_Angeles"

    @pytest.mark.parametrize("token", [None, "", "TZID=", "Nowhere/Special"])
    def test_unresolvable_tokens(self, token) -> None:
        assert self.resolver.resolve(token) is None

    def test_resolve_returns_zoneinfo(self) -> None:
        assert self.resolver.resolve("America/New_York") == ZoneInfo("America/New_York")


class TestGetLocalTimezone:
    def test_named_zone(self) -> None:
        assert get_local_timezone("Asia/Tokyo") == ZoneInfo("Asia/Tokyo")

    def test_invalid_name_falls_back_to_process_zone(self) -> None:
        assert get_local_timezone("Not/AZone") is not None
