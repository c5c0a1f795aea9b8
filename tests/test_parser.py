from room_monitor import parser
from room_monitor.models import CacheEntry

NOW = 1_700_000_000.0


def _prev():
    return CacheEntry(platform="douyu", id="1", title="Old title", owner="Old owner",
                      cover="https://img/old.jpg", avatar="https://img/old.png")


def test_douyu_ratestream_live():
    data = {"data": {"room_biz_all": {
        "show_status": 1, "videoLoop": 0, "room_name": "Night stream", "nickname": "Host",
        "online": "12345", "room_pic": "https://img/pic.jpg", "owner_avatar": "https://img/av.png",
        "show_time": 1699990000,
    }}}
    res = parser.parse_douyu_ratestream("1", data, None, NOW)

    assert res.is_live is True
    assert res.is_replay is False
    assert res.title == "Night stream"
    assert res.heat_value == 12345
    assert res.cover == "https://img/pic.jpg?t=1700000000000"
    assert res.start_time == 1699990000.0


def test_douyu_ratestream_loop_is_replay_not_live():
    data = {"data": {"roomInfo": {"show_status": 1, "videoLoop": 1, "room_pic": "https://img/pic.jpg"}}}
    res = parser.parse_douyu_ratestream("1", data, _prev(), NOW)
    assert res.is_replay is True
    assert res.is_live is False
    assert res.cover == "https://img/pic.jpg"
    assert res.title == "Old title"


def test_douyu_empty_payload_is_none():
    assert parser.parse_douyu_ratestream("1", {"data": None}, None, NOW) is None
    assert parser.parse_douyu_betard("1", {}, None, NOW) is None


def test_douyu_betard_offline_keeps_cached_metadata():
    res = parser.parse_douyu_betard("1", {"room": {"show_status": 2, "online": None}}, _prev(), NOW)
    assert res.is_live is False
    assert res.heat_value == 0
    assert res.owner == "Old owner"
    assert res.avatar == "https://img/old.png"


def test_douyu_avatar():
    assert parser.parse_douyu_avatar({"data": {"avatar": "https://img/a.png"}}) == "https://img/a.png"
    assert parser.parse_douyu_avatar({"data": {}}) is None


def test_bilibili_init_error_code_is_offline():
    res, uid = parser.parse_bilibili_init("545318", {"code": 60004, "message": "not found"}, _prev())
    assert res.is_live is False
    assert res.title == "Old title"
    assert uid is None


def test_bilibili_init_and_room_info():
    res, uid = parser.parse_bilibili_init("545318", {"code": 0, "data": {"live_status": 1, "uid": 42}}, None)
    assert res.is_live is True
    assert uid == 42

    parser.apply_bilibili_room_info(res, {"code": 0, "data": {
        "online": 880, "title": "Live!", "keyframe": "https://img/key.jpg", "live_time": "2023-11-14 20:00:00",
    }}, NOW)
    assert res.heat_value == 880
    assert res.title == "Live!"
    assert res.cover.startswith("https://img/key.jpg?t=")
    # 20:00 in UTC+8 is 12:00 UTC
    assert res.start_time == 1699963200.0


def test_bilibili_replay_status():
    res, _ = parser.parse_bilibili_init("545318", {"code": 0, "data": {"live_status": 2}}, None)
    assert res.is_replay is True
    assert res.is_live is False


def test_bilibili_master():
    data = {"code": 0, "data": {"info": {"uname": "Up", "face": "https://img/face.png"}}}
    assert parser.parse_bilibili_master(data) == ("Up", "https://img/face.png")
    assert parser.parse_bilibili_master({"code": -1}) == ("", "")


def test_twitch_helpers():
    assert parser.twitch_is_offline("xqc is offline")
    assert parser.twitch_is_offline("User not found")
    assert not parser.twitch_is_offline("2 hours, 3 minutes")
    assert parser.parse_uptime_seconds("2 hours, 30 minutes, 15 seconds") == 9015
    assert parser.parse_uptime_seconds("45 minutes") == 2700
    assert parser.parse_twitch_viewers("12,345") == 12345
    assert parser.parse_twitch_viewers("404 Page Not Found") == 0
    assert parser.parse_twitch_viewers("") == 0


def test_kick_live_channel():
    data = {
        "user": {"username": "trainwreck", "profile_pic": "https://img/p.png"},
        "livestream": {
            "is_live": True, "session_title": "Slots", "viewer_count": 20000,
            "created_at": "2023-11-14T12:00:00Z", "thumbnail": {"url": "https://img/thumb.jpg"},
        },
    }
    res = parser.parse_kick_channel("trainwreck", data, None, NOW)
    assert res.is_live is True
    assert res.title == "Slots"
    assert res.heat_value == 20000
    assert res.cover == "https://img/thumb.jpg?t=1700000000000"
    assert res.start_time == 1699963200.0


def test_kick_offline_channel_uses_profile_pic():
    data = {"user": {"username": "abc", "profile_pic": "https://img/p.png"}, "livestream": None}
    res = parser.parse_kick_channel("abc", data, _prev(), NOW)
    assert res.is_live is False
    assert res.cover == "https://img/p.png"
    assert res.title == "Old title"


def test_kick_without_user_is_none():
    assert parser.parse_kick_channel("abc", {"message": "Not found"}, None, NOW) is None
