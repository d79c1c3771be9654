"""Shared httpx.AsyncClient for Linear API requests.

One client per process so connections are pooled across operations.
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

_client: Optional[httpx.AsyncClient] = None


def get_http_client(timeout: Optional[float] = None) -> httpx.AsyncClient:
    """Return the shared client, creating it on first use.

    ``timeout`` only applies when the client is created.
    """
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout or DEFAULT_TIMEOUT),
            headers={"User-Agent": "linear-rpc"},
        )
        logger.debug("Created shared HTTP client")
    return _client


async def close_http_client() -> None:
    """Close the shared client (idempotent)."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
        logger.debug("Closed shared HTTP client")
