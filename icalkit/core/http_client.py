"""Shared HTTP client manager.

Keeps one ``httpx.AsyncClient`` per client id and event loop so calendar
fetches and geocoding lookups reuse connections instead of opening a new
pool per request.
"""

import asyncio
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

# client_id -> (owning loop, client)
_shared_clients: dict[str, tuple[asyncio.AbstractEventLoop, httpx.AsyncClient]] = {}

DEFAULT_LIMITS = httpx.Limits(
    max_connections=8,
    max_keepalive_connections=4,
)

DEFAULT_TIMEOUT = httpx.Timeout(
    connect=10.0,
    read=30.0,
    write=10.0,
    pool=30.0,
)

DEFAULT_USER_AGENT = "icalkit/0.1"

DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "text/calendar, text/plain, application/octet-stream, */*",
}


def build_timeout(seconds: float) -> httpx.Timeout:
    """Build an httpx timeout with ``seconds`` as the read budget."""
    return httpx.Timeout(connect=min(10.0, seconds), read=seconds, write=10.0, pool=seconds)


def get_shared_client(
    client_id: str = "default",
    timeout: Optional[httpx.Timeout] = None,
    headers: Optional[dict[str, str]] = None,
) -> httpx.AsyncClient:
    """Get or create the shared client for ``client_id`` on the running loop.

    Must be called from within a running event loop. A client created on a
    loop that has since closed is replaced.

    Args:
        client_id: Identifier for the client (allows multiple clients if needed)
        timeout: Timeout configuration used when a client is created
        headers: Extra default headers used when a client is created

    Returns:
        Shared httpx.AsyncClient
    """
    loop = asyncio.get_running_loop()
    entry = _shared_clients.get(client_id)
    if entry is not None:
        owner, client = entry
        if owner is loop and not client.is_closed:
            return client
        logger.debug("Discarding stale shared HTTP client '%s'", client_id)

    merged_headers = {**DEFAULT_HEADERS, **(headers or {})}
    client = httpx.AsyncClient(
        limits=DEFAULT_LIMITS,
        timeout=timeout or DEFAULT_TIMEOUT,
        follow_redirects=True,
        headers=merged_headers,
    )
    _shared_clients[client_id] = (loop, client)
    logger.debug("Created shared HTTP client '%s'", client_id)
    return client


async def close_all_clients() -> None:
    """Close shared clients owned by the running loop and forget the rest.

    Call during shutdown (or at the end of ``asyncio.run``) to release
    connections.
    """
    loop = asyncio.get_running_loop()
    for client_id, (owner, client) in list(_shared_clients.items()):
        if owner is loop and not client.is_closed:
            try:
                await client.aclose()
                logger.debug("Closed shared HTTP client '%s'", client_id)
            except httpx.HTTPError as e:
                logger.warning("Error closing shared HTTP client '%s': %s", client_id, e)
        del _shared_clients[client_id]
