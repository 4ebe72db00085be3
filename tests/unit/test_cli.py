"""Unit tests for the icalkit command-line entry point."""

import json
from pathlib import Path

import pytest

from icalkit.__main__ import _create_parser, main

pytestmark = [pytest.mark.unit]


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch) -> None:
    """Keep a developer's .env out of CLI runs."""
    monkeypatch.chdir(tmp_path)


class TestParser:
    def test_defaults(self) -> None:
        args = _create_parser().parse_args(["cal.ics"])
        assert args.source == "cal.ics"
        assert args.config is None
        assert args.timezone is None
        assert not args.no_events
        assert not args.no_geocode
        assert not args.json

    def test_source_is_required(self) -> None:
        with pytest.raises(SystemExit):
            _create_parser().parse_args([])


class TestMain:
    def test_summary_output(self, sample_ics_path: Path, capsys) -> None:
        exit_code = main([str(sample_ics_path), "--timezone", "UTC", "--no-geocode"])

        out = capsys.readouterr().out
        assert exit_code == 0
        assert out.startswith("Team Calendar (2 events)")
        assert "Daily standup" in out
        assert "[weekly x1]" in out
        assert "@ Piazza del Colosseo, Roma" in out
        assert "Missing start" not in out

    def test_json_output(self, sample_ics_path: Path, capsys) -> None:
        exit_code = main([str(sample_ics_path), "--timezone", "UTC", "--no-geocode", "--json"])

        payload = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert payload["name"] == "Team Calendar"
        assert [event["id"] for event in payload["events"]] == [
            "standup-001@example.com",
            "offsite-003@example.com",
        ]
        assert payload["events"][0]["start"].startswith("2020-06-15T13:00:00")

    def test_no_events(self, sample_ics_path: Path, capsys) -> None:
        assert main([str(sample_ics_path), "--no-events", "--no-geocode"]) == 0
        assert capsys.readouterr().out.strip() == "Team Calendar (0 events)"

    def test_missing_file_exits_with_error(self, tmp_path: Path, capsys) -> None:
        assert main([str(tmp_path / "absent.ics"), "--no-geocode"]) == 1
        assert capsys.readouterr().out == ""

    def test_document_without_name_exits_with_error(self, tmp_path: Path) -> None:
        path = tmp_path / "nameless.ics"
        path.write_text("BEGIN:VCALENDAR\r\nEND:VCALENDAR\r\n", encoding="utf-8")
        assert main([str(path), "--no-geocode"]) == 1

    def test_config_file_is_applied(self, sample_ics_path: Path, tmp_path: Path, capsys) -> None:
        config_path = tmp_path / "icalkit.yaml"
        config_path.write_text(
            "local_timezone: America/New_York\ngeocoding_enabled: false\n", encoding="utf-8"
        )

        assert main([str(sample_ics_path), "--config", str(config_path), "--json"]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload["events"][0]["start"] == "2020-06-15T09:00:00-04:00"
