# Durable copy of the room cache as a single JSON file.

# Every commit marks the file dirty; the actual write is debounced so a cycle
# over a large roster produces one write instead of one per room. The debounced
# write snapshots the entries on the loop and does the file IO in a worker
# thread, so it never stalls fetches in flight. flush() is synchronous so it
# can run during teardown after the event loop is gone.

import asyncio
import json
import logging
import os
import threading
from pathlib import Path

from room_monitor.config import CACHE_FILE, WRITE_DEBOUNCE_SECONDS
from room_monitor.models import CacheEntry

log = logging.getLogger(__name__)


class CacheFileStorage:

    def __init__(
        self,
        path: str | Path = CACHE_FILE,
        debounce_seconds: float = WRITE_DEBOUNCE_SECONDS,
    ) -> None:
        self.path = Path(path)
        self._debounce = debounce_seconds
        self._entries: dict[str, CacheEntry] = {}
        self._dirty = False
        self._handle: asyncio.TimerHandle | None = None
        self._writes: set[asyncio.Task] = set()
        self._lock = threading.Lock()
        self._generation = 0
        self._written_generation = 0

    @property
    def dirty(self) -> bool:
        return self._dirty

    def load(self) -> dict[str, CacheEntry]:
        """
        Read the cache file. A missing or unreadable file yields an empty
        cache; individual malformed entries are dropped.
        """
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            log.warning("Could not read cache file %s: %s", self.path, exc)
            return {}

        entries: dict[str, CacheEntry] = {}
        for key, data in raw.items() if isinstance(raw, dict) else ():
            if not isinstance(data, dict):
                log.warning("Dropping malformed cache entry %r", key)
                continue
            entries[key] = CacheEntry.from_dict(data)
        self._entries = dict(entries)
        log.info("Loaded %d cached room(s) from %s", len(entries), self.path)
        return entries

    def record(self, key: str, entry: CacheEntry) -> None:
        """Commit hook for CacheStore: buffer the entry and schedule a write."""
        self._entries[key] = entry
        self._dirty = True
        self._schedule()

    def _schedule(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.flush()
            return
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self._debounce, self._start_write)

    def _snapshot(self) -> tuple[int, dict[str, dict]]:
        self._dirty = False
        self._generation += 1
        return self._generation, {key: entry.to_dict() for key, entry in self._entries.items()}

    def _start_write(self) -> None:
        self._handle = None
        if not self._dirty:
            return
        task = asyncio.get_running_loop().create_task(
            self._write_in_thread(*self._snapshot()),
            name="cache-write",
        )
        self._writes.add(task)
        task.add_done_callback(self._writes.discard)

    async def _write_in_thread(self, generation: int, payload: dict[str, dict]) -> None:
        if not await asyncio.to_thread(self._write, generation, payload):
            self._dirty = True

    async def wait_written(self) -> None:
        """Wait for background writes already handed to a worker thread."""
        if self._writes:
            await asyncio.gather(*self._writes, return_exceptions=True)

    def flush(self) -> None:
        """Write pending changes now, on the calling thread. Used at teardown."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if not self._dirty:
            return
        if not self._write(*self._snapshot()):
            self._dirty = True

    def _write(self, generation: int, payload: dict[str, dict]) -> bool:
        tmp = self.path.with_name(self.path.name + ".tmp")
        with self._lock:
            # an older snapshot must not overwrite a newer one already on disk
            if generation < self._written_generation:
                return True
            try:
                tmp.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
                os.replace(tmp, self.path)
            except OSError:
                log.exception("Failed to write cache file %s", self.path)
                return False
            self._written_generation = generation
        log.debug("Wrote %d room(s) to %s", len(payload), self.path)
        return True
