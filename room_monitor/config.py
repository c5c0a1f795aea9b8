from dataclasses import dataclass

REQUEST_TIMEOUT_SECONDS: int = 8
CONNECTION_POOL_LIMIT: int = 20
USER_AGENT: str = "RoomMonitor/1.0 (live-room-tracker)"

REFRESH_COOLDOWN_SECONDS: float = 5.0          # minimum gap between two manual refreshes
AUTO_REFRESH_ENABLED: bool = True
AUTO_REFRESH_INTERVAL_SECONDS: int = 600
JITTER_MAX_INITIAL_SECONDS: float = 3.0        # spread of the startup burst only

# concurrency steps up as the roster grows past each threshold
CONCURRENCY_DEFAULT: int = 4
CONCURRENCY_MEDIUM: int = 5
CONCURRENCY_HIGH: int = 6
CONCURRENCY_THRESHOLD_MEDIUM: int = 5
CONCURRENCY_THRESHOLD_HIGH: int = 15

# completions between two batch renders
BATCH_SIZE_SMALL: int = 2
BATCH_SIZE_LARGE: int = 4
BATCH_THRESHOLD: int = 10

AVATAR_UPDATE_INTERVAL_SECONDS: int = 14 * 24 * 60 * 60   # 14 days

COMPARE_FIELDS: tuple[str, ...] = (
    "is_live",
    "is_replay",
    "title",
    "owner",
    "cover",
    "avatar",
    "viewers",
    "heat_value",
    "start_time",
)
LOG_CHANGES: bool = True

CACHE_FILE: str = "room_cache.json"
WRITE_DEBOUNCE_SECONDS: float = 0.5

VIEWERS_OFFLINE_TEXT: str = "offline"
VIEWERS_ONLINE_TEXT: str = "online"
VIEWER_UNIT_SUFFIX: str = " viewers"   # platforms reporting raw viewer counts

# rooms to monitor
ROOMS: list[dict] = [
    {"id": "6979222", "platform": "douyu", "is_favorite": False},
    {"id": "545318", "platform": "bilibili", "is_favorite": False},
    {"id": "xqc", "platform": "twitch", "is_favorite": False},
]


@dataclass(frozen=True)
class RefreshSettings:
    """Refresh-engine tunables, defaulting to the module constants above."""

    cooldown_seconds: float = REFRESH_COOLDOWN_SECONDS
    jitter_max_seconds: float = JITTER_MAX_INITIAL_SECONDS
    concurrency_default: int = CONCURRENCY_DEFAULT
    concurrency_medium: int = CONCURRENCY_MEDIUM
    concurrency_high: int = CONCURRENCY_HIGH
    concurrency_threshold_medium: int = CONCURRENCY_THRESHOLD_MEDIUM
    concurrency_threshold_high: int = CONCURRENCY_THRESHOLD_HIGH
    batch_size_small: int = BATCH_SIZE_SMALL
    batch_size_large: int = BATCH_SIZE_LARGE
    batch_threshold: int = BATCH_THRESHOLD

    def concurrency_for(self, room_count: int) -> int:
        if room_count > self.concurrency_threshold_high:
            return self.concurrency_high
        if room_count > self.concurrency_threshold_medium:
            return self.concurrency_medium
        return self.concurrency_default

    def batch_size_for(self, room_count: int) -> int:
        if room_count > self.batch_threshold:
            return self.batch_size_large
        return self.batch_size_small
