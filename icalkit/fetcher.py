"""Raw text sources for iCalendar documents: HTTP(S) URLs and local files."""

import logging
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

import httpx

from icalkit.core.http_client import build_timeout, get_shared_client
from icalkit.exceptions import InvalidEncoding, InvalidSource

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8-sig"


def decode_bytes(content: bytes, encoding: Optional[str] = None) -> str:
    """Decode document bytes, raising InvalidEncoding on failure.

    Args:
        content: Raw bytes
        encoding: Declared charset; UTF-8 (BOM tolerated) when absent

    Returns:
        Decoded text
    """
    codec = encoding or DEFAULT_ENCODING
    if codec.lower().replace("_", "-") in ("utf-8", "utf8"):
        codec = DEFAULT_ENCODING
    try:
        return content.decode(codec)
    except (UnicodeDecodeError, LookupError) as e:
        raise InvalidEncoding(f"Content is not valid {codec} text: {e}") from e


def read_text_file(path: Union[str, Path]) -> str:
    """Read a local .ics file.

    Raises:
        InvalidSource: If the path does not name a readable file
        InvalidEncoding: If the bytes are not UTF-8
    """
    file_path = Path(path).expanduser()
    if not file_path.is_file():
        raise InvalidSource(f"Calendar file not found: {file_path}")
    try:
        content = file_path.read_bytes()
    except OSError as e:
        raise InvalidSource(f"Unable to read calendar file {file_path}: {e}") from e
    logger.debug("Read %d bytes from %s", len(content), file_path)
    return decode_bytes(content)


class ICSFetcher:
    """Async HTTP client for downloading ICS documents."""

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize ICS fetcher.

        Args:
            timeout_seconds: Read timeout for the request
            client: Optional HTTP client (defaults to the shared client)
        """
        self.timeout_seconds = timeout_seconds
        self.client = client

    @staticmethod
    def validate_url(url: str) -> None:
        """Raise InvalidSource unless ``url`` is an http(s) URL with a host."""
        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise InvalidSource(f"Invalid URL {url!r}: {e}") from e

        if parsed.scheme not in ("http", "https"):
            raise InvalidSource(f"Unsupported URL scheme {parsed.scheme!r} in {url!r}")
        if not parsed.hostname:
            raise InvalidSource(f"URL {url!r} has no hostname")

    async def fetch_text(self, url: str) -> str:
        """GET ``url`` and return the decoded body.

        Raises:
            InvalidSource: On invalid URL, transport error, timeout or HTTP error status
            InvalidEncoding: If the body cannot be decoded
        """
        self.validate_url(url)
        client = self.client or get_shared_client(
            "fetcher", timeout=build_timeout(self.timeout_seconds)
        )

        logger.debug("Fetching calendar from %s", url)
        try:
            response = await client.get(url)
        except httpx.TimeoutException as e:
            raise InvalidSource(f"Timed out fetching {url}") from e
        except httpx.HTTPError as e:
            raise InvalidSource(f"Network error fetching {url}: {e}") from e

        if response.status_code >= 400:
            raise InvalidSource(
                f"HTTP {response.status_code} fetching {url}", status_code=response.status_code
            )

        logger.debug("Fetched %d bytes from %s", len(response.content), url)
        return decode_bytes(response.content, response.charset_encoding)
