from unittest.mock import MagicMock

from room_monitor.cache import CacheStore
from room_monitor.models import CacheEntry


def test_commit_notifies_hook_and_stores_entry():
    hook = MagicMock()
    store = CacheStore(on_commit=hook)
    entry = CacheEntry(platform="kick", id="abc", title="Hi")

    store.commit("kick-abc", entry)

    assert store.get("kick-abc") is entry
    assert "kick-abc" in store
    hook.assert_called_once_with("kick-abc", entry)


def test_update_avatar_touches_only_avatar():
    store = CacheStore({"douyu-1": CacheEntry(platform="douyu", id="1", title="T", last_avatar_update=5.0)})

    assert store.update_avatar("douyu-1", "https://img/a.png") is True

    entry = store.get("douyu-1")
    assert entry.avatar == "https://img/a.png"
    assert entry.title == "T"
    assert entry.last_avatar_update == 5.0


def test_update_avatar_without_entry_is_ignored():
    hook = MagicMock()
    store = CacheStore(on_commit=hook)
    assert store.update_avatar("douyu-1", "https://img/a.png") is False
    hook.assert_not_called()


def test_snapshot_is_detached_from_later_commits():
    store = CacheStore({"a": CacheEntry(id="a", title="old", changes=["title"])})
    snap = store.snapshot()

    store.commit("a", CacheEntry(id="a", title="new"))
    snap["a"].changes.append("owner")

    assert snap["a"].title == "old"
    assert store.get("a").changes == []


def test_count_changes_only_counts_given_keys():
    store = CacheStore({
        "a": CacheEntry(has_changes=True),
        "b": CacheEntry(has_changes=False),
        "c": CacheEntry(has_changes=True),
    })
    assert store.count_changes(["a", "b", "missing"]) == (1, 1)
