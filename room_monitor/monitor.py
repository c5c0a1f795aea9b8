# RoomMonitor: the top-level wiring.

# Responsibilities:
#   - create one shared aiohttp session and connection pool for all adapters
#   - load the persisted cache and keep the file in step with every commit
#   - run the silent startup refresh, then the auto refresh timer
#   - stay up until stop(), with or without the timer
#   - accept manual refresh requests while running
#   - flush pending cache writes on the way out, however we leave
#
# Concurrency model:
#   Everything runs on one event loop. The refresh pool bounds how many room
#   fetches are in flight; the connector limit bounds sockets underneath it.

import asyncio
import logging
from typing import Sequence

import aiohttp

from room_monitor.adapters import build_adapters
from room_monitor.auto_refresh import AutoRefreshTimer
from room_monitor.cache import CacheStore
from room_monitor.config import (
    AUTO_REFRESH_ENABLED,
    AUTO_REFRESH_INTERVAL_SECONDS,
    CACHE_FILE,
    CONNECTION_POOL_LIMIT,
    USER_AGENT,
    RefreshSettings,
)
from room_monitor.fetcher import RoomStatusFetcher
from room_monitor.handlers import ConsoleEventHandler
from room_monitor.http_client import ConditionalHTTPClient
from room_monitor.models import RefreshOutcome, Room
from room_monitor.orchestrator import RefreshOrchestrator
from room_monitor.storage import CacheFileStorage

log = logging.getLogger(__name__)


class RoomMonitor:

    def __init__(
        self,
        rooms: Sequence[Room],
        cache_file: str = CACHE_FILE,
        settings: RefreshSettings | None = None,
        auto_refresh: bool = AUTO_REFRESH_ENABLED,
        auto_refresh_interval: float = AUTO_REFRESH_INTERVAL_SECONDS,
    ) -> None:
        self.rooms = list(rooms)
        self._settings = settings or RefreshSettings()
        self._auto_refresh = auto_refresh
        self._interval = auto_refresh_interval
        self.storage = CacheFileStorage(cache_file)
        self.orchestrator: RefreshOrchestrator | None = None
        self._tasks: list[asyncio.Task] = []
        self._stopping = False
        self._stopped = asyncio.Event()

    async def run(self) -> None:
        connector = aiohttp.TCPConnector(limit=CONNECTION_POOL_LIMIT)
        try:
            async with aiohttp.ClientSession(
                connector=connector,
                headers={"User-Agent": USER_AGENT},
            ) as session:
                handler = ConsoleEventHandler()
                cache = CacheStore(self.storage.load(), on_commit=self.storage.record)
                fetcher = RoomStatusFetcher(build_adapters(ConditionalHTTPClient(session)), cache)

                self.orchestrator = RefreshOrchestrator(
                    self.rooms,
                    fetcher,
                    cache,
                    settings=self._settings,
                    on_cycle_complete=handler.on_cycle_complete,
                    on_render=handler.render,
                    advise=handler.advise,
                )
                if self._auto_refresh:
                    self.orchestrator.timer = AutoRefreshTimer(
                        lambda: self.orchestrator.refresh_all(is_auto=True),
                        interval=self._interval,
                    )

                log.info("RoomMonitor running, watching %d room(s).", len(self.rooms))
                await self.orchestrator.refresh_all(is_silent=True)

                if not self._stopping:
                    if self.orchestrator.timer is not None:
                        self._tasks.append(asyncio.create_task(
                            self.orchestrator.timer.run_forever(),
                            name="auto-refresh",
                        ))
                    else:
                        log.info("Auto refresh disabled, waiting for manual refresh requests.")
                    await self._stopped.wait()
                    await asyncio.gather(*self._tasks, return_exceptions=True)

                await fetcher.drain()
                await self.storage.wait_written()
        finally:
            self.storage.flush()

    def manual_refresh(self) -> asyncio.Task[RefreshOutcome] | None:
        """Schedule a user-requested refresh; cooldown and overlap rules apply."""
        if self.orchestrator is None:
            log.info("Monitor not started yet, ignoring manual refresh")
            return None
        task = asyncio.create_task(self.orchestrator.refresh_all(), name="manual-refresh")
        self._tasks.append(task)
        task.add_done_callback(self._forget)
        return task

    def _forget(self, task: asyncio.Task) -> None:
        if task in self._tasks:
            self._tasks.remove(task)

    def stop(self) -> None:
        """Cancel the timer and any manual refresh; run() then flushes and returns."""
        self._stopping = True
        self._stopped.set()
        for task in self._tasks:
            task.cancel()
