"""Tests for ConditionalHTTPClient with a stubbed aiohttp session."""
from unittest.mock import MagicMock

import aiohttp
import pytest

from room_monitor.http_client import ConditionalHTTPClient

pytestmark = pytest.mark.asyncio

URL = "https://kick.com/api/v2/channels/abc"


class FakeResponse:
    def __init__(self, status=200, body=None, etag=None):
        self.status = status
        self._body = body
        self.headers = {"ETag": etag} if etag else {}

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientResponseError(
                request_info=MagicMock(), history=(), status=self.status, message="Server Error",
            )

    async def json(self, content_type=None):
        return self._body

    async def text(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


def _session(*responses):
    session = MagicMock()
    session.get = MagicMock(side_effect=list(responses))
    return session


async def test_304_reserves_cached_body():
    session = _session(FakeResponse(200, {"user": {}}, etag='"v1"'), FakeResponse(304))
    client = ConditionalHTTPClient(session)

    first = await client.get_json(URL)
    second = await client.get_json(URL)

    assert first == second == {"user": {}}
    assert session.get.call_args_list[1].kwargs["headers"] == {"If-None-Match": '"v1"'}


async def test_no_etag_means_no_conditional_header():
    session = _session(FakeResponse(200, "live"), FakeResponse(200, "offline"))
    client = ConditionalHTTPClient(session)

    assert await client.get_text(URL) == "live"
    assert await client.get_text(URL) == "offline"
    assert session.get.call_args_list[1].kwargs["headers"] == {}


async def test_http_error_is_raised():
    client = ConditionalHTTPClient(_session(FakeResponse(503)))
    with pytest.raises(aiohttp.ClientResponseError):
        await client.get_json(URL)
