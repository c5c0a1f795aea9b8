# CacheStore: the last known view of every room, keyed by "<platform>-<id>".

# Entries are replaced wholesale on every fetch outcome, so a snapshot taken
# before a cycle is never disturbed by the cycle itself. Writes come only from
# fetch-and-merge and the avatar fallback; both run on the event loop, so no
# locking is needed.

import dataclasses
import logging
from typing import Callable, Iterable, Mapping

from room_monitor.models import CacheEntry

log = logging.getLogger(__name__)

CommitHook = Callable[[str, CacheEntry], None]


class CacheStore:

    def __init__(
        self,
        entries: Mapping[str, CacheEntry] | None = None,
        on_commit: CommitHook | None = None,
    ) -> None:
        self._entries: dict[str, CacheEntry] = dict(entries or {})
        self._on_commit = on_commit

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def commit(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry
        if self._on_commit is not None:
            self._on_commit(key, entry)

    def update_avatar(self, key: str, avatar: str) -> bool:
        """
        Late avatar from a background fetch. Only the avatar field is written,
        on whatever entry is current by then; returns False when the key has
        no entry to attach it to.
        """
        current = self._entries.get(key)
        if current is None or not avatar:
            return False
        self.commit(key, dataclasses.replace(current, avatar=avatar))
        return True

    def snapshot(self) -> dict[str, CacheEntry]:
        return {
            key: dataclasses.replace(entry, changes=list(entry.changes))
            for key, entry in self._entries.items()
        }

    def count_changes(self, keys: Iterable[str]) -> tuple[int, int]:
        """(changed, unchanged) among the given keys' current entries."""
        changed = unchanged = 0
        for key in keys:
            entry = self._entries.get(key)
            if entry is None:
                continue
            if entry.has_changes:
                changed += 1
            else:
                unchanged += 1
        return changed, unchanged
