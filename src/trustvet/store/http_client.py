"""Async HTTP client for fetching foreign audit databases.

A thin wrapper around ``httpx.AsyncClient`` with a fixed timeout, a
user-agent header and redirect following, so that every fetch behaves the
same and tests can patch a single function.
"""

from __future__ import annotations

import logging

import httpx

from trustvet import __version__
from trustvet.exceptions import ImportFetchError

logger = logging.getLogger(__name__)

# Timeout for every request (seconds).
DEFAULT_TIMEOUT: float = 30.0

USER_AGENT: str = f"trustvet/{__version__}"


async def fetch_text(url: str, *, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Fetch a URL and return the response body as text.

    Args:
        url: The URL to fetch.
        timeout: Request timeout in seconds.

    Raises:
        ImportFetchError: On timeouts, HTTP error statuses, or transport
            failures.
    """
    try:
        async with httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        ) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            return resp.text
    except httpx.TimeoutException as exc:
        logger.warning("Timeout fetching %s", url)
        raise ImportFetchError(f"Timed out fetching {url}") from exc
    except httpx.HTTPStatusError as exc:
        logger.warning("HTTP %d from %s", exc.response.status_code, url)
        raise ImportFetchError(
            f"HTTP {exc.response.status_code} fetching {url}"
        ) from exc
    except httpx.RequestError as exc:
        logger.warning("Request error for %s: %s", url, exc)
        raise ImportFetchError(f"Cannot fetch {url}: {exc}") from exc
