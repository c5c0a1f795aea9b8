import pytest

from room_monitor.models import CacheEntry, Platform, Room, format_heat


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, "0"),
        (0, "0"),
        (-5, "0"),
        (950, "950"),
        (1200, "1.2K"),
        (3_400_000, "3.4M"),
    ],
)
def test_format_heat(value, expected):
    assert format_heat(value) == expected


def test_room_from_dict():
    room = Room.from_dict({"id": 6979222, "platform": "douyu", "is_favorite": 1})
    assert room == Room("6979222", Platform.DOUYU, is_favorite=True)
    assert room.cache_key == "douyu-6979222"


def test_room_from_dict_rejects_unknown_platform():
    with pytest.raises(ValueError):
        Room.from_dict({"id": "1", "platform": "youtube"})


def test_cache_entry_from_dict_ignores_unknown_fields():
    entry = CacheEntry.from_dict({"platform": "kick", "id": "x", "is_live": True, "legacy": "old"})
    assert entry.platform == "kick"
    assert entry.is_live is True
    assert not hasattr(entry, "legacy")
