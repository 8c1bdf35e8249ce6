"""Domain entity for metered upstream calls — tracks quota consumption."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class EndpointCategory(str, Enum):
    """Metered YouTube Data API operations, keyed as the upstream bills them."""

    SEARCH_LIST = "search.list"
    VIDEOS_LIST = "videos.list"
    CHANNELS_LIST = "channels.list"
    LIVE_CHAT_MESSAGES_LIST = "liveChatMessages.list"
    PLAYLIST_ITEMS_LIST = "playlistItems.list"


# Quota units per call, per the YouTube Data API v3 cost table.
QUOTA_COSTS: dict[EndpointCategory, int] = {
    EndpointCategory.SEARCH_LIST: 100,
    EndpointCategory.VIDEOS_LIST: 1,
    EndpointCategory.CHANNELS_LIST: 1,
    EndpointCategory.LIVE_CHAT_MESSAGES_LIST: 5,
    EndpointCategory.PLAYLIST_ITEMS_LIST: 1,
}


def resolve_category(value: "EndpointCategory | str") -> EndpointCategory | None:
    """Map a raw category tag to the enum, or None when it is not in the cost table."""
    if isinstance(value, EndpointCategory):
        return value
    try:
        return EndpointCategory(value)
    except ValueError:
        return None


def quota_cost(value: "EndpointCategory | str") -> int:
    """Fixed cost for a category; unknown categories cost nothing."""
    category = resolve_category(value)
    if category is None:
        return 0
    return QUOTA_COSTS[category]


@dataclass(frozen=True)
class UsageLogEntry:
    """One metered call attempt as recorded in the usage ledger.

    Entries are immutable; the ledger's store assigns ``id`` on insert.
    """

    endpoint: str  # EndpointCategory value
    method_name: str
    status: str  # "success" | "error"
    quota_cost: int
    response_time_ms: int
    error_message: str | None = None
    request_params: dict[str, Any] | None = None
    id: int | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_error(self) -> bool:
        return self.status == "error"
