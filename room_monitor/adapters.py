# Platform adapters: one per streaming site, all sharing one HTTP client.

# An adapter answers "what does this room look like right now" and nothing
# more. It returns a RoomStatus, or None / raises when it cannot tell; the
# refresh engine owns every decision about what to do with either answer.
#
# To add a platform, implement
#     async def fetch(self, room_id, needs_avatar, previous) -> RoomStatus | None
# (plus an optional `async def fetch_avatar(self, room_id) -> str | None`)
# and register it in build_adapters().

import asyncio
import logging
import time
from typing import Callable, Protocol, runtime_checkable

import aiohttp

from room_monitor import parser
from room_monitor.http_client import ConditionalHTTPClient
from room_monitor.models import CacheEntry, Platform, RoomStatus

log = logging.getLogger(__name__)

_TRANSIENT = (aiohttp.ClientError, asyncio.TimeoutError, ValueError)


@runtime_checkable
class FetchAdapter(Protocol):
    async def fetch(
        self,
        room_id: str,
        needs_avatar: bool,
        previous: CacheEntry | None,
    ) -> RoomStatus | None: ...


class BaseAdapter:
    """Holds the shared client and the wall clock used for cache-busting."""

    def __init__(self, http: ConditionalHTTPClient, clock: Callable[[], float] = time.time) -> None:
        self._http = http
        self._clock = clock


class DouyuAdapter(BaseAdapter):
    RATESTREAM_URL = "https://m.douyu.com/api/room/ratestream?rid={id}"
    BETARD_URL = "https://www.douyu.com/betard/{id}"
    AVATAR_URL = "https://open.douyucdn.cn/api/RoomApi/room/{id}"

    async def fetch(self, room_id, needs_avatar, previous):
        now = self._clock()
        try:
            data = await self._http.get_json(self.RATESTREAM_URL.format(id=room_id))
            status = parser.parse_douyu_ratestream(room_id, data, previous, now)
            if status is not None:
                return status
        except _TRANSIENT as exc:
            log.debug("Douyu ratestream failed for %s (%s), trying betard", room_id, exc)

        data = await self._http.get_json(self.BETARD_URL.format(id=room_id))
        return parser.parse_douyu_betard(room_id, data, previous, now)

    async def fetch_avatar(self, room_id: str) -> str | None:
        data = await self._http.get_json(self.AVATAR_URL.format(id=room_id))
        return parser.parse_douyu_avatar(data)


class BilibiliAdapter(BaseAdapter):
    INIT_URL = "https://api.live.bilibili.com/room/v1/Room/room_init?id={id}"
    INFO_URL = "https://api.live.bilibili.com/room/v1/Room/get_info?room_id={id}"
    MASTER_URL = "https://api.live.bilibili.com/live_user/v1/Master/info?uid={uid}"

    async def fetch(self, room_id, needs_avatar, previous):
        now = self._clock()
        init = await self._http.get_json(self.INIT_URL.format(id=room_id))
        status, uid = parser.parse_bilibili_init(room_id, init, previous)

        if status.is_live or status.is_replay:
            try:
                info = await self._http.get_json(self.INFO_URL.format(id=room_id))
                parser.apply_bilibili_room_info(status, info, now)
            except _TRANSIENT as exc:
                log.warning("Bilibili get_info failed for %s, using cached data: %s", room_id, exc)

        has_owner = bool(previous and previous.owner and previous.owner != room_id)
        if uid and (needs_avatar or not has_owner):
            try:
                master = await self._http.get_json(self.MASTER_URL.format(uid=uid))
                owner, avatar = parser.parse_bilibili_master(master)
                status.owner = owner or status.owner
                status.avatar = avatar or status.avatar
            except _TRANSIENT as exc:
                log.debug("Bilibili master info failed for uid %s: %s", uid, exc)
        return status


class TwitchAdapter(BaseAdapter):
    DECAPI_URL = "https://decapi.me/twitch/{endpoint}/{id}"

    def _url(self, endpoint: str, room_id: str) -> str:
        return self.DECAPI_URL.format(endpoint=endpoint, id=room_id)

    async def fetch(self, room_id, needs_avatar, previous):
        now = self._clock()
        uptime = await self._http.get_text(self._url("uptime", room_id))
        status = parser.base_status(room_id, previous)
        status.is_live = not parser.twitch_is_offline(uptime)
        if not status.is_live:
            return status

        title, viewers = await asyncio.gather(
            self._http.get_text(self._url("title", room_id)),
            self._http.get_text(self._url("viewers", room_id)),
            return_exceptions=True,
        )
        if isinstance(title, str) and title:
            status.title = title.strip()
        if isinstance(viewers, str):
            status.heat_value = parser.parse_twitch_viewers(viewers)

        uptime_seconds = parser.parse_uptime_seconds(uptime)
        if uptime_seconds:
            status.start_time = now - uptime_seconds
        status.cover = parser.twitch_cover(room_id, now)
        return status

    async def fetch_avatar(self, room_id: str) -> str | None:
        text = (await self._http.get_text(self._url("avatar", room_id))).strip()
        if not text or "no user" in text.lower():
            return None
        return text


class KickAdapter(BaseAdapter):
    CHANNEL_URL = "https://kick.com/api/v2/channels/{id}"

    async def fetch(self, room_id, needs_avatar, previous):
        data = await self._http.get_json(self.CHANNEL_URL.format(id=room_id))
        return parser.parse_kick_channel(room_id, data, previous, self._clock())


def build_adapters(http: ConditionalHTTPClient) -> dict[Platform, FetchAdapter]:
    return {
        Platform.DOUYU: DouyuAdapter(http),
        Platform.BILIBILI: BilibiliAdapter(http),
        Platform.TWITCH: TwitchAdapter(http),
        Platform.KICK: KickAdapter(http),
    }
