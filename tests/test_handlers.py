import pytest

from room_monitor.handlers import ConsoleEventHandler, StatusChange, detect_status_changes
from room_monitor.models import CacheEntry, Platform, Room

ROOMS = [Room("1", Platform.DOUYU), Room("xqc", Platform.TWITCH), Room("k", Platform.KICK)]


def test_detects_online_and_offline_transitions():
    before = {
        "douyu-1": CacheEntry(is_live=False, owner="Host"),
        "twitch-xqc": CacheEntry(is_live=True, owner="xQc"),
    }
    after = {
        "douyu-1": CacheEntry(is_live=True, owner="Host"),
        "twitch-xqc": CacheEntry(is_live=False, owner="xQc"),
        "kick-k": CacheEntry(is_live=False),
    }

    changes = detect_status_changes(ROOMS, before, after)

    assert changes == [
        StatusChange(kind="online", name="Host", platform="douyu", key="douyu-1"),
        StatusChange(kind="offline", name="xQc", platform="twitch", key="twitch-xqc"),
    ]


def test_error_and_loading_entries_are_skipped():
    after = {
        "douyu-1": CacheEntry(is_live=True, is_error=True),
        "twitch-xqc": CacheEntry(is_live=True, loading=True),
    }
    assert detect_status_changes(ROOMS, {}, after) == []


def test_first_sighting_of_live_room_is_online():
    changes = detect_status_changes(ROOMS, {}, {"kick-k": CacheEntry(is_live=True)})
    assert [(c.kind, c.name) for c in changes] == [("online", "k")]


@pytest.mark.asyncio
async def test_console_handler_prints_one_line_per_change(capsys):
    handler = ConsoleEventHandler()
    after = {"douyu-1": CacheEntry(is_live=True, owner="Host", title="  Late   night ", viewers="online 1.2K")}

    await handler.on_cycle_complete(ROOMS, {}, after)

    out = capsys.readouterr().out.strip().splitlines()
    assert len(out) == 1
    assert "ONLINE" in out[0]
    assert "| douyu | Host | online 1.2K | Title=Late night" in out[0]


def test_advise_prints_message(capsys):
    ConsoleEventHandler().advise("Please retry in 3s")
    assert "Please retry in 3s" in capsys.readouterr().out
