# Shared HTTP access for the platform adapters.

# Conditional GET: the ETag of every 200 response is stored together with its
# decoded body. The next request sends If-None-Match; a 304 then re-serves the
# cached body without downloading or parsing anything, so adapters never need
# to know the difference.

import asyncio
import logging
from typing import Any

import aiohttp

from room_monitor.config import REQUEST_TIMEOUT_SECONDS

log = logging.getLogger(__name__)


class ConditionalHTTPClient:
    """
    Wraps an aiohttp.ClientSession with ETag-based conditional GET support.

    One instance is shared by all adapters; per-URL ETag state lives in a dict.
    """

    def __init__(self, session: aiohttp.ClientSession) -> None:
        self._session = session
        self._cached: dict[str, tuple[str, Any]] = {}   # url → (etag, body)

    async def get_json(self, url: str, timeout: float = REQUEST_TIMEOUT_SECONDS) -> Any:
        """
        Raises:
            aiohttp.ClientResponseError  on non-2xx / non-304 responses
            asyncio.TimeoutError         on request timeout
            ValueError                   when the body is not JSON
        """
        return await self._get(url, timeout, as_json=True)

    async def get_text(self, url: str, timeout: float = REQUEST_TIMEOUT_SECONDS) -> str:
        return await self._get(url, timeout, as_json=False)

    async def _get(self, url: str, timeout: float, as_json: bool) -> Any:
        headers: dict[str, str] = {}
        cached = self._cached.get(url)
        if cached is not None:
            headers["If-None-Match"] = cached[0]

        try:
            async with self._session.get(
                url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as resp:
                if resp.status == 304 and cached is not None:
                    log.debug("304 Not Modified for %s", url)
                    return cached[1]

                resp.raise_for_status()

                if as_json:
                    body = await resp.json(content_type=None)
                else:
                    body = await resp.text()

                etag = resp.headers.get("ETag")
                if etag:
                    self._cached[url] = (etag, body)
                return body

        except aiohttp.ClientResponseError as exc:
            log.warning("HTTP error fetching %s: %s %s", url, exc.status, exc.message)
            raise
        except asyncio.TimeoutError:
            log.warning("Timeout fetching %s", url)
            raise
