import logging
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any

log = logging.getLogger(__name__)


class Platform(str, Enum):
    DOUYU = "douyu"
    BILIBILI = "bilibili"
    TWITCH = "twitch"
    KICK = "kick"

    def __str__(self) -> str:
        return self.value


def cache_key(platform: str, room_id: str) -> str:
    """Composite mapping key, e.g. 'douyu-6979222'."""
    return f"{platform}-{room_id}"


def format_heat(value: int | float | None) -> str:
    """Compact heat / viewer count for display: 950, 1.2K, 3.4M."""
    if not value or value < 0:
        return "0"
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1000:
        return f"{value / 1000:.1f}K"
    return str(int(value))


@dataclass(frozen=True)
class Room:
    """
    One monitored room on one platform.

    Read-only for the refresh engine: favourites are ordered first but the
    roster itself is edited elsewhere.
    """
    id: str
    platform: Platform
    is_favorite: bool = False

    @property
    def cache_key(self) -> str:
        return cache_key(self.platform.value, self.id)

    @classmethod
    def from_dict(cls, data: dict) -> "Room":
        return cls(
            id=str(data["id"]),
            platform=Platform(data["platform"]),
            is_favorite=bool(data.get("is_favorite", False)),
        )


@dataclass
class RoomStatus:
    """
    Normalised result of one platform fetch.

    Adapters fill what they can; empty strings mean "not supplied" and are
    resolved against the previous cache entry during the merge.
    """
    is_live: bool = False
    is_replay: bool = False
    title: str = ""
    owner: str = ""
    cover: str = ""
    avatar: str = ""
    heat_value: int = 0
    is_error: bool = False
    start_time: float | None = None   # epoch seconds


@dataclass
class CacheEntry:
    platform: str = ""
    id: str = ""
    title: str = ""
    owner: str = ""
    cover: str = ""
    avatar: str = ""
    is_live: bool = False
    is_replay: bool = False
    heat_value: int = 0
    viewers: str = ""
    start_time: float | None = None
    is_error: bool = False
    stale: bool = False                # last fetch failed, showing older data
    loading: bool = False
    last_avatar_update: float = 0.0    # epoch seconds of the last accepted avatar
    has_changes: bool = False
    changes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "CacheEntry":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            log.debug("Ignoring unknown cache fields: %s", sorted(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class DiffResult:
    changed: bool
    changes: tuple[str, ...] = ()


class RejectReason(str, Enum):
    ALREADY_RUNNING = "already_running"
    COOLDOWN = "cooldown"


@dataclass
class RefreshOutcome:
    """What one refresh_all() call did; rejected calls carry only a reason."""
    admitted: bool
    reason: RejectReason | None = None
    retry_after: int = 0               # seconds, cooldown rejections only
    total: int = 0
    concurrency: int = 0
    batch_size: int = 0
    changed: int = 0
    unchanged: int = 0
    elapsed_ms: float = 0.0
    error: Exception | None = None
