# AutoRefreshTimer: fires a refresh every `interval` seconds.

# responsibilities:
#   - count down once per tick and await the trigger when it reaches zero
#   - restart the countdown after every trigger, successful or not
#   - let a manual refresh push the next automatic one a full interval away

import asyncio
import logging
from typing import Any, Awaitable, Callable

from room_monitor.config import AUTO_REFRESH_INTERVAL_SECONDS

log = logging.getLogger(__name__)


def format_countdown(seconds: float) -> str:
    """625 → '10:25'"""
    seconds = max(int(seconds), 0)
    return f"{seconds // 60}:{seconds % 60:02d}"


class AutoRefreshTimer:

    def __init__(
        self,
        trigger: Callable[[], Awaitable[Any]],
        interval: float = AUTO_REFRESH_INTERVAL_SECONDS,
        tick: float = 1.0,
    ) -> None:
        self._trigger = trigger
        self.interval = interval
        self._tick = tick
        self.countdown = interval
        self.active = False

    def reset(self) -> None:
        self.countdown = self.interval
        log.debug("Auto refresh countdown reset to %s", format_countdown(self.countdown))

    async def run_forever(self) -> None:
        self.active = True
        self.reset()
        log.info("Auto refresh every %s", format_countdown(self.interval))
        try:
            while True:
                await asyncio.sleep(self._tick)
                self.countdown -= self._tick
                if self.countdown > 0:
                    continue

                log.info("Auto refresh triggered")
                self.reset()
                try:
                    await self._trigger()
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    log.exception("Auto refresh failed: %s", exc)
        finally:
            self.active = False
