# RoomStatusFetcher: fetch one room, merge the answer into the cache.

# Merge rules (the cache never regresses to blank):
#   - fetch failed / platform unknown:
#       previous entry → kept as is, flagged stale
#       no previous    → bare error entry
#   - fetch succeeded:
#       live           = reported live and not a replay loop
#       heat           = new heat, unless it is 0 and the old one was positive
#       offline rooms  → empty title/owner/cover/avatar backfilled from previous
#       avatar         = new one only if non-empty and different; only then is
#                        its freshness timestamp moved
#   - the diff against the previous entry is attached before committing.
#
# Some adapters can look up a missing avatar separately. That lookup runs as a
# detached task: the room is reported complete without it and the avatar lands
# on the cache whenever it arrives.

import asyncio
import dataclasses
import logging
import time
from typing import Callable, Mapping

from room_monitor.adapters import FetchAdapter
from room_monitor.cache import CacheStore
from room_monitor.config import (
    AVATAR_UPDATE_INTERVAL_SECONDS,
    LOG_CHANGES,
    VIEWER_UNIT_SUFFIX,
    VIEWERS_OFFLINE_TEXT,
    VIEWERS_ONLINE_TEXT,
)
from room_monitor.differ import DataDiffer
from room_monitor.models import CacheEntry, Platform, Room, RoomStatus, format_heat

log = logging.getLogger(__name__)

# platforms whose heat value is a raw viewer count rather than a popularity score
_VIEWER_COUNT_PLATFORMS = frozenset({Platform.TWITCH, Platform.KICK})


def viewers_text(platform: Platform, is_live: bool, heat_value: int) -> str:
    if not is_live:
        return VIEWERS_OFFLINE_TEXT
    if heat_value > 0:
        text = f"{VIEWERS_ONLINE_TEXT} {format_heat(heat_value)}"
        if platform in _VIEWER_COUNT_PLATFORMS:
            text += VIEWER_UNIT_SUFFIX
        return text
    return VIEWERS_ONLINE_TEXT


class RoomStatusFetcher:

    def __init__(
        self,
        adapters: Mapping[Platform, FetchAdapter],
        cache: CacheStore,
        differ: DataDiffer | None = None,
        avatar_update_interval: float = AVATAR_UPDATE_INTERVAL_SECONDS,
        log_changes: bool = LOG_CHANGES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._adapters = adapters
        self._cache = cache
        self._differ = differ or DataDiffer()
        self._avatar_interval = avatar_update_interval
        self._log_changes = log_changes
        self._clock = clock
        self._background: set[asyncio.Task] = set()

    @property
    def pending_background(self) -> int:
        return len(self._background)

    def needs_avatar_refresh(self, prev: CacheEntry | None, now: float) -> bool:
        if prev is None or not prev.avatar or not prev.last_avatar_update:
            return True
        return now - prev.last_avatar_update > self._avatar_interval

    async def fetch_and_merge(self, room: Room, jitter: float = 0.0) -> CacheEntry:
        if jitter > 0:
            await asyncio.sleep(jitter)

        key = room.cache_key
        prev = self._cache.get(key)
        now = self._clock()
        adapter = self._adapters.get(room.platform)

        result: RoomStatus | None = None
        if adapter is None:
            log.warning("No adapter for platform %r (%s)", room.platform, key)
        else:
            try:
                result = await adapter.fetch(room.id, self.needs_avatar_refresh(prev, now), prev)
            except Exception as exc:
                log.error("%s fetch failed: %s", key, exc)

        if result is None:
            entry = self.merge_failure(room, prev)
        else:
            entry = self.merge(room, result, prev, now)
            if not entry.avatar and not result.is_error and hasattr(adapter, "fetch_avatar"):
                self._spawn_avatar_fallback(adapter, room)

        self._cache.commit(key, entry)
        return entry

    def merge_failure(self, room: Room, prev: CacheEntry | None) -> CacheEntry:
        if prev is not None:
            return dataclasses.replace(
                prev,
                stale=True,
                is_error=False,
                loading=False,
                has_changes=False,
                changes=[],
            )
        return CacheEntry(platform=room.platform.value, id=room.id, is_error=True, loading=False)

    def merge(self, room: Room, result: RoomStatus, prev: CacheEntry | None, now: float) -> CacheEntry:
        is_live = result.is_live and not result.is_replay

        heat_value = result.heat_value or 0
        if heat_value <= 0 and prev is not None and prev.heat_value > 0:
            heat_value = prev.heat_value

        title, owner, cover, avatar = result.title, result.owner, result.cover, result.avatar
        if not is_live and not result.is_replay and prev is not None:
            title = title or prev.title
            owner = owner or prev.owner
            cover = cover or prev.cover
            avatar = avatar or prev.avatar

        prev_avatar = prev.avatar if prev is not None else ""
        if avatar and avatar != prev_avatar:
            last_avatar_update = now
        else:
            avatar = prev_avatar
            last_avatar_update = prev.last_avatar_update if prev is not None else 0.0

        entry = CacheEntry(
            platform=room.platform.value,
            id=room.id,
            title=title,
            owner=owner,
            cover=cover,
            avatar=avatar,
            is_live=is_live,
            is_replay=result.is_replay,
            heat_value=heat_value,
            viewers=viewers_text(room.platform, is_live, heat_value),
            start_time=result.start_time,
            is_error=False,
            stale=False,
            loading=False,
            last_avatar_update=last_avatar_update,
        )

        diff = self._differ.compare(prev, entry)
        entry.has_changes = diff.changed
        entry.changes = list(diff.changes)
        if self._log_changes and diff.changed and prev is not None:
            log.debug("%s changed: %s", room.cache_key, self._differ.summarize(prev, entry, diff.changes))
        return entry

    def _spawn_avatar_fallback(self, adapter, room: Room) -> None:
        task = asyncio.create_task(
            self._avatar_fallback(adapter, room),
            name=f"avatar-{room.cache_key}",
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _avatar_fallback(self, adapter, room: Room) -> None:
        key = room.cache_key
        try:
            avatar = await adapter.fetch_avatar(room.id)
        except Exception as exc:
            log.debug("Avatar fallback failed for %s: %s", key, exc)
            return
        if avatar and self._cache.update_avatar(key, avatar):
            log.debug("Avatar fallback applied for %s", key)

    async def drain(self) -> None:
        """Wait for outstanding avatar lookups (teardown and tests)."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
