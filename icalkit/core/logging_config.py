"""
Central logging configuration for icalkit.

Installs a colorized console handler on the root logger and quiets the
HTTP stack so parser diagnostics stay readable.
"""

import logging
import os
import sys
from typing import Optional

from colorlog import ColoredFormatter

LOG_FORMAT = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

# Third-party loggers that are noisy at DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "charset_normalizer")


def configure_logging(level_name: Optional[str] = None, debug_mode: bool = False) -> int:
    """
    Configure root logging for icalkit.

    Args:
        level_name: Level name such as "INFO"; unknown names mean INFO
        debug_mode: Force DEBUG for icalkit loggers

    Environment Variables:
        ICALKIT_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        ICALKIT_LOG_LEVEL: Override the root log level

    Returns:
        The root level that was applied
    """
    env_debug = os.getenv("ICALKIT_DEBUG", "").strip().lower() in ("1", "true", "yes", "on")
    env_level = os.getenv("ICALKIT_LOG_LEVEL", "").strip().upper()

    if env_level:
        level_name = env_level
    final_debug = debug_mode or env_debug

    level = logging.INFO
    if isinstance(level_name, str):
        candidate = logging.getLevelName(level_name.upper())
        if isinstance(candidate, int):
            level = candidate
    if final_debug:
        level = logging.DEBUG

    root = logging.getLogger()
    # Only add a handler if none exist to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt="%H:%M:%S", log_colors=LOG_COLORS))
        root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("icalkit").setLevel(logging.DEBUG if final_debug else level)

    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )
    return level
