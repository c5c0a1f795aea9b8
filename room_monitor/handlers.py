# Console output for the refresh engine.

# The engine only says *that* something happened (a cycle finished, a batch of
# rooms is ready, a refresh was refused). What to show for it lives here, and
# the cache entries stay pure data with no display logic.
#
# To send alerts somewhere else, implement an object with
#     async def handle(self, change: StatusChange) -> None: ...
# and give it to RoomMonitor in place of ConsoleEventHandler.

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping, Sequence

from room_monitor.models import CacheEntry, Room, format_heat

log = logging.getLogger(__name__)

# ─── ANSI colours (safe to strip if plain output is needed) ───────────────────

_R = "\033[0m"

_KIND_COLOR: dict[str, str] = {
    "online":  "\033[32m",   # green
    "offline": "\033[90m",   # grey
}

_LEVEL_COLOR: dict[str, str] = {
    "info":  "\033[34m",
    "error": "\033[31m",
}


def _ts() -> str:
    return datetime.now(tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class StatusChange:
    kind: str        # online | offline
    name: str
    platform: str
    key: str


def detect_status_changes(
    rooms: Sequence[Room],
    before: Mapping[str, CacheEntry],
    after: Mapping[str, CacheEntry],
) -> list[StatusChange]:
    """
    Rooms whose liveness flipped during the cycle.

    Entries that are still loading or in error say nothing reliable about
    liveness and are skipped.
    """
    changes: list[StatusChange] = []
    for room in rooms:
        key = room.cache_key
        current = after.get(key)
        if current is None or current.loading or current.is_error:
            continue

        previous = before.get(key)
        was_live = previous is not None and previous.is_live
        if was_live == current.is_live:
            continue

        changes.append(StatusChange(
            kind="online" if current.is_live else "offline",
            name=current.owner or room.id,
            platform=room.platform.value,
            key=key,
        ))
    return changes


class ConsoleEventHandler:
    """
    One pipe-delimited line per live/offline transition:

        [2026-10-17T12:39:08Z] ONLINE | twitch | xqc | online 12.3K viewers | Title=Just chatting
    """

    _MAX_TITLE_LEN = 60

    async def handle(self, change: StatusChange, entry: CacheEntry | None = None) -> None:
        print(self._format(change, entry), flush=True)

    async def on_cycle_complete(
        self,
        rooms: Sequence[Room],
        before: Mapping[str, CacheEntry],
        after: Mapping[str, CacheEntry],
    ) -> None:
        changes = detect_status_changes(rooms, before, after)
        if changes:
            log.info("%d status change(s) this cycle", len(changes))
        for change in changes:
            await self.handle(change, after.get(change.key))

    def advise(self, message: str, level: str = "info") -> None:
        color = _LEVEL_COLOR.get(level, "")
        print(f"[{_ts()}] {color}{message}{_R}" if color else f"[{_ts()}] {message}", flush=True)

    def render(self, completed: int, total: int) -> None:
        log.info("Rooms refreshed: %d/%d", completed, total)

    def _format(self, change: StatusChange, entry: CacheEntry | None) -> str:
        color = _KIND_COLOR.get(change.kind, "")
        kind = f"{color}{change.kind.upper()}{_R}" if color else change.kind.upper()
        parts = [f"[{_ts()}] {kind}", change.platform, change.name]
        if entry is not None:
            parts.append(entry.viewers or format_heat(entry.heat_value))
            if entry.title:
                parts.append(f"Title={self._truncate(entry.title)}")
        return " | ".join(parts)

    def _truncate(self, text: str) -> str:
        text = " ".join(text.split())
        if len(text) <= self._MAX_TITLE_LEN:
            return text
        return text[: self._MAX_TITLE_LEN - 1].rstrip() + "…"
