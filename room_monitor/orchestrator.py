# RefreshOrchestrator: runs one refresh cycle at a time over the whole roster.

# Responsibilities:
#   - admission: one cycle at a time, plus a cooldown between manual refreshes
#   - order the roster favourites-first and size the pool to the roster
#   - hand the rooms to the ConcurrencyPool with fetch-and-merge as the task
#   - report progress, count changes, fire the end-of-cycle hook
#   - always return to idle, whatever happened inside the cycle
#
# State machine: idle → running → idle. A rejected call changes nothing.

import asyncio
import logging
import math
import time
from typing import Any, Awaitable, Callable, Mapping, Sequence

from room_monitor.auto_refresh import AutoRefreshTimer
from room_monitor.cache import CacheStore
from room_monitor.config import RefreshSettings
from room_monitor.fetcher import RoomStatusFetcher
from room_monitor.models import CacheEntry, RefreshOutcome, RejectReason, Room
from room_monitor.pool import ConcurrencyPool
from room_monitor.stats import StatsTracker

log = logging.getLogger(__name__)

ALREADY_REFRESHING_MESSAGE = "Refresh already in progress..."
COOLDOWN_MESSAGE = "Please retry in {seconds}s"
CYCLE_ERROR_MESSAGE = "Refresh failed, check the network connection"

CycleHook = Callable[[list[Room], Mapping[str, CacheEntry], Mapping[str, CacheEntry]], Awaitable[Any]]
AdviseHook = Callable[[str, str], None]
RenderHook = Callable[[int, int], None]


class RefreshOrchestrator:

    def __init__(
        self,
        roster: Sequence[Room],
        fetcher: RoomStatusFetcher,
        cache: CacheStore,
        settings: RefreshSettings | None = None,
        pool: ConcurrencyPool | None = None,
        stats: StatsTracker | None = None,
        timer: AutoRefreshTimer | None = None,
        on_cycle_complete: CycleHook | None = None,
        on_render: RenderHook | None = None,
        advise: AdviseHook | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._roster = roster
        self._fetcher = fetcher
        self._cache = cache
        self.settings = settings or RefreshSettings()
        self._pool = pool or ConcurrencyPool(self.settings.jitter_max_seconds)
        self.stats = stats or StatsTracker()
        self.timer = timer
        self._on_cycle_complete = on_cycle_complete
        self._on_render = on_render
        self._advise = advise
        self._clock = clock
        self._running = False
        self._last_started: float | None = None

    @property
    def running(self) -> bool:
        return self._running

    def cooldown_remaining(self, now: float | None = None) -> float:
        if self._last_started is None:
            return 0.0
        now = self._clock() if now is None else now
        return max(self.settings.cooldown_seconds - (now - self._last_started), 0.0)

    def _tell(self, message: str, level: str = "info") -> None:
        if self._advise is not None:
            self._advise(message, level)

    def order_rooms(self, rooms: Sequence[Room]) -> list[Room]:
        """Favourites first; sorted() is stable so roster order holds within each group."""
        return sorted(rooms, key=lambda room: not room.is_favorite)

    async def refresh_all(self, is_silent: bool = False, is_auto: bool = False) -> RefreshOutcome:
        manual = not is_silent and not is_auto
        now = self._clock()

        if self._running:
            if manual:
                self._tell(ALREADY_REFRESHING_MESSAGE)
            else:
                log.info("Skipping %s refresh, a cycle is still running", "auto" if is_auto else "silent")
            return RefreshOutcome(admitted=False, reason=RejectReason.ALREADY_RUNNING)

        if manual:
            remaining = self.cooldown_remaining(now)
            if remaining > 0:
                seconds = math.ceil(remaining)
                self._tell(COOLDOWN_MESSAGE.format(seconds=seconds))
                return RefreshOutcome(admitted=False, reason=RejectReason.COOLDOWN, retry_after=seconds)

        if not is_auto and self.timer is not None and self.timer.active:
            self.timer.reset()

        self._running = True
        self._last_started = now

        rooms = self.order_rooms(list(self._roster))
        concurrency = self.settings.concurrency_for(len(rooms))
        batch_size = self.settings.batch_size_for(len(rooms))
        outcome = RefreshOutcome(
            admitted=True,
            total=len(rooms),
            concurrency=concurrency,
            batch_size=batch_size,
        )

        try:
            before = self._cache.snapshot()
            self.stats.start(len(rooms))

            await self._pool.run(
                rooms,
                concurrency,
                self._fetcher.fetch_and_merge,
                batch_size,
                apply_jitter=is_silent,
                on_progress=self.stats.record,
                on_batch=self._on_render,
            )

            outcome.changed, outcome.unchanged = self._cache.count_changes(r.cache_key for r in rooms)
            log.info(
                "Refresh complete: %d room(s), %.1fs elapsed, concurrency %d, changed %d, unchanged %d",
                len(rooms), self.stats.elapsed_ms / 1000, concurrency,
                outcome.changed, outcome.unchanged,
            )

            if self._on_cycle_complete is not None:
                await self._on_cycle_complete(rooms, before, self._cache.snapshot())

        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.exception("Refresh cycle failed: %s", exc)
            self._tell(CYCLE_ERROR_MESSAGE, "error")
            outcome.error = exc

        finally:
            self._running = False
            outcome.elapsed_ms = self.stats.elapsed_ms
            self.stats.finish()

        return outcome
