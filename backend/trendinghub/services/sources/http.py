"""
HTTP helpers for sources.

Bounded reads: a body larger than the source's ceiling is rejected instead
of being buffered in full.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from trendinghub.core.config import settings
from trendinghub.services.base import ResponseTooLargeError, SourceFetchError
from trendinghub.services.sources.interface import Source

logger = logging.getLogger(__name__)

# Response ceilings
GOLD_MAX_BYTES = 64 * 1024
JSON_MAX_BYTES = 1 << 20  # 1MB
HTML_MAX_BYTES = 2 << 20  # 2MB

DEFAULT_TIMEOUT_SECONDS = 10


async def read_limited(response: aiohttp.ClientResponse, max_bytes: int, service_name: str = "http") -> bytes:
    """
    Read a response body, failing once it grows past max_bytes.
    Raises ResponseTooLargeError.
    """
    declared = response.content_length
    if declared is not None and declared > max_bytes:
        raise ResponseTooLargeError(
            service_name,
            f"Response too large: {declared} bytes declared (limit {max_bytes})",
            {"url": str(response.url)},
        )

    chunks = []
    total = 0
    async for chunk in response.content.iter_chunked(16 * 1024):
        total += len(chunk)
        if total > max_bytes:
            raise ResponseTooLargeError(
                service_name,
                f"Response exceeded {max_bytes} bytes",
                {"url": str(response.url)},
            )
        chunks.append(chunk)
    return b"".join(chunks)


async def fetch_bytes(
    session: aiohttp.ClientSession,
    url: str,
    max_bytes: int,
    service_name: str = "http",
    headers: Optional[dict] = None,
    timeout: Optional[float] = None,
) -> bytes:
    """
    GET a URL and return its (bounded) body.
    Raises SourceFetchError on transport errors or non-200 status.
    """
    request_timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None
    try:
        async with session.get(url, headers=headers, timeout=request_timeout) as response:
            if response.status != 200:
                raise SourceFetchError(
                    service_name,
                    f"Unexpected status {response.status}",
                    {"url": url, "status": response.status},
                )
            return await read_limited(response, max_bytes, service_name)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise SourceFetchError(service_name, f"Request failed: {e!r}", {"url": url}) from e


class HttpSource(Source):
    """Source holding a lazily created aiohttp session."""

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def __init__(self, session: Optional[aiohttp.ClientSession] = None, user_agent: Optional[str] = None):
        self._session = session
        self._owns_session = session is None
        self.user_agent = user_agent or settings.http_user_agent

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an active HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                headers={"User-Agent": self.user_agent},
            )
            self._owns_session = True
        return self._session

    async def get_bytes(self, url: str, max_bytes: int, headers: Optional[dict] = None, timeout: Optional[float] = None) -> bytes:
        session = await self._ensure_session()
        return await fetch_bytes(session, url, max_bytes, self.name, headers=headers, timeout=timeout)

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
