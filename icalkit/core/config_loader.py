"""icalkit.core.config_loader

Configuration for icalkit.

- Reads YAML (PyYAML) or JSON files, chosen by file suffix.
- Environment variables (optionally seeded from a ``.env`` file) override
  file values.
- Exposes a typed dataclass ``Config`` and a ``load_config()`` helper.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

from icalkit.geocoding import DEFAULT_NOMINATIM_URL

logger = logging.getLogger(__name__)

_TRUTHY = ("1", "true", "yes", "on")


def _coerce_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Config:
    """Typed configuration for icalkit.

    Fields:
        local_timezone: IANA zone decoded date-times are converted into
                        (None means the process zone)
        geocoding_enabled: resolve LOCATION text through the geocoder
        geocode_concurrency: maximum simultaneous geocode calls (1..16)
        geocode_timeout_seconds: per-call geocode timeout (1..120)
        request_timeout_seconds: HTTP read timeout for calendar fetches
        strict_keys: match property keys at line start only
        log_level: logging level name
        nominatim_url: geocoder search endpoint
        user_agent: User-Agent for outgoing requests
    """

    local_timezone: str | None = None
    geocoding_enabled: bool = True
    geocode_concurrency: int = 4
    geocode_timeout_seconds: float = 10.0
    request_timeout_seconds: float = 30.0
    strict_keys: bool = False
    log_level: str = "INFO"
    nominatim_url: str = DEFAULT_NOMINATIM_URL
    user_agent: str = "icalkit/0.1"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and bounds.

        Numeric values are coerced and clamped; every coercion is logged as
        a warning and never raises.
        """
        if data is None:
            data = {}
        defaults = cls()

        def _coerce_number(key: str, default: float, low: float, high: float) -> float:
            raw = data.get(key, default)
            try:
                value = float(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not a number; using default %s", key, raw, default)
                return default
            if value < low:
                logger.warning("Config %s=%s below minimum; coercing to %s", key, value, low)
                return low
            if value > high:
                logger.warning("Config %s=%s above maximum; coercing to %s", key, value, high)
                return high
            return value

        local_timezone = data.get("local_timezone")
        local_timezone = str(local_timezone) if local_timezone else None

        log_level = data.get("log_level", defaults.log_level)
        log_level = str(log_level).upper() if log_level is not None else defaults.log_level

        return cls(
            local_timezone=local_timezone,
            geocoding_enabled=_coerce_bool(data.get("geocoding_enabled", defaults.geocoding_enabled)),
            geocode_concurrency=int(
                _coerce_number("geocode_concurrency", defaults.geocode_concurrency, 1, 16)
            ),
            geocode_timeout_seconds=_coerce_number(
                "geocode_timeout_seconds", defaults.geocode_timeout_seconds, 1, 120
            ),
            request_timeout_seconds=_coerce_number(
                "request_timeout_seconds", defaults.request_timeout_seconds, 1, 300
            ),
            strict_keys=_coerce_bool(data.get("strict_keys", defaults.strict_keys)),
            log_level=log_level,
            nominatim_url=str(data.get("nominatim_url") or defaults.nominatim_url),
            user_agent=str(data.get("user_agent") or defaults.user_agent),
        )

    def with_overrides(self, **changes: Any) -> Config:
        """Return a copy with ``changes`` applied, skipping None values."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


# Environment variable -> config key
ENV_KEYS: dict[str, str] = {
    "ICALKIT_LOCAL_TIMEZONE": "local_timezone",
    "ICALKIT_GEOCODING": "geocoding_enabled",
    "ICALKIT_GEOCODE_CONCURRENCY": "geocode_concurrency",
    "ICALKIT_GEOCODE_TIMEOUT": "geocode_timeout_seconds",
    "ICALKIT_REQUEST_TIMEOUT": "request_timeout_seconds",
    "ICALKIT_STRICT_KEYS": "strict_keys",
    "ICALKIT_LOG_LEVEL": "log_level",
    "ICALKIT_NOMINATIM_URL": "nominatim_url",
    "ICALKIT_USER_AGENT": "user_agent",
}


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Skips blank lines and ``#`` comments and strips quotes from values.
    A missing or unreadable file yields an empty dict.
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}
    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", path, exc_info=True)
        return {}

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        if key:
            result[key] = val.strip().strip('"').strip("'")
    return result


def load_env_file(path: Path | None = None) -> list[str]:
    """Load a .env file into ``os.environ`` without overriding existing values.

    Returns:
        Keys that were set from the file
    """
    env_path = path or Path.cwd() / ".env"
    set_keys = []
    for key, val in parse_env_file(env_path).items():
        if key not in os.environ:
            os.environ[key] = val
            set_keys.append(key)
    if set_keys:
        logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))
    return set_keys


def config_from_env(environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Collect config values from ``ICALKIT_*`` environment variables."""
    env = os.environ if environ is None else environ
    return {key: env[name] for name, key in ENV_KEYS.items() if env.get(name)}


def _load_mapping(path: Path) -> Any:
    """Load a mapping from a YAML or JSON file, by suffix."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    loaded = yaml.safe_load(text)
    # safe_load returns None for empty files
    return {} if loaded is None else loaded


def load_config(path: str | Path | None = None, use_env: bool = True) -> Config:
    """Load configuration from a YAML/JSON file plus environment overrides.

    Args:
        path: Optional config file path; a missing file means defaults
        use_env: Apply ``ICALKIT_*`` environment overrides

    Returns:
        Config instance

    Raises:
        ValueError: If the file's top level is not a mapping
    """
    raw: dict[str, Any] = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            loaded = _load_mapping(p)
            if not isinstance(loaded, dict):
                logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, loaded)
                raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
            raw.update(loaded)
            logger.info("Loaded configuration from %s", p)
        else:
            logger.info("Config file %s not found; using defaults", p)

    if use_env:
        raw.update(config_from_env())

    cfg = Config.from_dict(raw)
    logger.debug("Configuration values: %s", cfg)
    return cfg
