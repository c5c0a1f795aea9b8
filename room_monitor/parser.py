# Turns raw platform payloads into RoomStatus objects.

# Design decisions:
#   - Every parser starts from the previous cache entry's metadata so a sparse
#     payload never blanks a room; the merge step applies the final sticky
#     rules on top.
#   - Live covers get a "?t=<now>" suffix so image caches refetch the frame;
#     offline covers are left alone so they can stay cached.
#   - Numeric fields go through _to_int: platforms send counts as int, str or
#     missing, and a bad value must read as 0, not crash the room.
#   - A payload without the fields that identify a room returns None, which
#     the caller treats exactly like a failed fetch.

import logging
import re
from datetime import datetime, timedelta, timezone

from room_monitor.models import CacheEntry, RoomStatus

log = logging.getLogger(__name__)

_UPTIME_UNITS = {"hour": 3600, "minute": 60, "second": 1}
_TWITCH_OFFLINE_MARKERS = ("offline", "not found", "error")
_BILIBILI_TZ = timezone(timedelta(hours=8))


def _to_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _bust(url: str, now: float) -> str:
    return f"{url}?t={int(now * 1000)}"


def base_status(room_id: str, prev: CacheEntry | None) -> RoomStatus:
    """Offline status pre-filled with whatever the cache already knows."""
    return RoomStatus(
        title=prev.title if prev else "",
        owner=(prev.owner if prev else "") or room_id,
        cover=prev.cover if prev else "",
        avatar=prev.avatar if prev else "",
    )


# ─── Douyu ────────────────────────────────────────────────────────────────────

def parse_douyu_ratestream(room_id: str, data: dict, prev: CacheEntry | None, now: float) -> RoomStatus | None:
    payload = (data or {}).get("data")
    if not payload:
        return None
    info = payload.get("roomInfo") or {}
    biz = payload.get("room_biz_all") or {}

    res = base_status(room_id, prev)
    res.is_replay = info.get("videoLoop") == 1 or biz.get("videoLoop") == 1
    res.is_live = not res.is_replay and (info.get("show_status") == 1 or biz.get("show_status") == 1)
    res.title = biz.get("room_name") or info.get("room_name") or res.title
    res.owner = biz.get("nickname") or info.get("nickname") or res.owner
    res.heat_value = _to_int(biz.get("online") or info.get("online"))
    res.avatar = biz.get("owner_avatar") or info.get("avatar") or res.avatar

    cover = biz.get("room_pic") or info.get("room_pic")
    if cover:
        res.cover = _bust(cover, now) if res.is_live else cover

    show_time = _to_int(biz.get("show_time") or info.get("show_time"))
    if res.is_live and show_time:
        res.start_time = float(show_time)
    return res


def parse_douyu_betard(room_id: str, data: dict, prev: CacheEntry | None, now: float) -> RoomStatus | None:
    room = (data or {}).get("room")
    if not room:
        return None

    res = base_status(room_id, prev)
    res.is_replay = room.get("videoLoop") == 1
    res.is_live = not res.is_replay and room.get("show_status") == 1
    res.title = room.get("room_name") or res.title
    res.owner = room.get("nickname") or res.owner
    res.heat_value = _to_int(room.get("online"))
    res.avatar = room.get("owner_avatar") or res.avatar
    if room.get("room_pic"):
        res.cover = _bust(room["room_pic"], now) if res.is_live else room["room_pic"]

    show_time = _to_int(room.get("show_time"))
    if res.is_live and show_time:
        res.start_time = float(show_time)
    return res


def parse_douyu_avatar(data: dict) -> str | None:
    return ((data or {}).get("data") or {}).get("avatar") or None


# ─── Bilibili ─────────────────────────────────────────────────────────────────

def parse_bilibili_init(room_id: str, data: dict, prev: CacheEntry | None) -> tuple[RoomStatus, int | None]:
    """
    Status from room_init plus the streamer uid for the profile lookup.

    A non-zero API code is a room-level problem (banned, hidden, bad id), not
    a network failure: the room is reported offline with its cached title.
    """
    res = base_status(room_id, prev)
    if data.get("code") != 0:
        log.warning(
            "Bilibili room_init code %s for room %s: %s",
            data.get("code"), room_id, data.get("message", "N/A"),
        )
        return res, None

    info = data.get("data") or {}
    status = info.get("live_status")
    res.is_live = status == 1
    res.is_replay = status == 2
    return res, info.get("uid") or None


def apply_bilibili_room_info(res: RoomStatus, data: dict, now: float) -> None:
    """Fill title, heat, cover and start time from get_info (live or replay only)."""
    if data.get("code") != 0:
        return
    info = data.get("data") or {}
    res.heat_value = _to_int(info.get("online"))
    res.title = info.get("title") or res.title

    if res.is_live:
        cover = info.get("keyframe") or info.get("user_cover")
        if cover:
            res.cover = _bust(cover, now)
        live_time = info.get("live_time")
        if live_time:
            try:
                started = datetime.strptime(live_time, "%Y-%m-%d %H:%M:%S")
                res.start_time = started.replace(tzinfo=_BILIBILI_TZ).timestamp()
            except ValueError:
                log.debug("Unparseable Bilibili live_time %r", live_time)
    elif res.is_replay:
        res.cover = info.get("user_cover") or info.get("keyframe") or res.cover


def parse_bilibili_master(data: dict) -> tuple[str, str]:
    """(owner, avatar) from live_user Master/info; empty strings when absent."""
    if data.get("code") != 0:
        return "", ""
    info = (data.get("data") or {}).get("info") or {}
    return info.get("uname") or "", info.get("face") or ""


# ─── Twitch (DecAPI plain-text endpoints) ─────────────────────────────────────

def twitch_is_offline(uptime: str) -> bool:
    text = uptime.lower()
    return any(marker in text for marker in _TWITCH_OFFLINE_MARKERS)


def parse_uptime_seconds(uptime: str) -> int:
    """'2 hours, 30 minutes, 15 seconds' → 9015."""
    total = 0
    for unit, seconds in _UPTIME_UNITS.items():
        match = re.search(rf"(\d+)\s*{unit}", uptime or "", re.IGNORECASE)
        if match:
            total += int(match.group(1)) * seconds
    return total


def parse_twitch_viewers(text: str) -> int:
    if re.search(r"error|not found|404", text or "", re.IGNORECASE):
        return 0
    return max(_to_int((text or "").replace(",", "").strip()), 0)


def twitch_cover(channel: str, now: float) -> str:
    return _bust(f"https://static-cdn.jtvnw.net/previews-ttv/live_user_{channel}-640x360.jpg", now)


# ─── Kick ─────────────────────────────────────────────────────────────────────

def parse_kick_channel(room_id: str, data: dict, prev: CacheEntry | None, now: float) -> RoomStatus | None:
    user = (data or {}).get("user")
    if not user:
        return None
    stream = data.get("livestream") or {}

    res = base_status(room_id, prev)
    res.is_live = stream.get("is_live") is True
    res.owner = user.get("username") or room_id
    res.avatar = user.get("profile_pic") or res.avatar

    if not res.is_live:
        res.cover = user.get("profile_pic") or res.cover
        return res

    res.title = stream.get("session_title") or ""
    res.heat_value = _to_int(stream.get("viewer_count"))
    created = stream.get("created_at")
    if created:
        try:
            res.start_time = datetime.fromisoformat(created.replace("Z", "+00:00")).timestamp()
        except ValueError:
            log.debug("Unparseable Kick created_at %r", created)

    thumb = stream.get("thumbnail")
    if isinstance(thumb, dict):
        thumb = thumb.get("url") or thumb.get("src")
    if isinstance(thumb, str) and thumb:
        res.cover = _bust(thumb, now)
    else:
        res.cover = user.get("profile_pic") or res.cover
    return res
