"""Domain read models for channel and video metadata."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ChannelStats:
    title: str
    description: str = ""
    subscriber_count: int = 0
    video_count: int = 0
    view_count: int = 0


@dataclass(frozen=True)
class VideoSummary:
    """A channel upload as seen by ``videos.list``.

    ``active_live_chat_id`` is only set while the video is broadcasting with chat.
    """

    video_id: str
    title: str
    published_at: datetime | None = None
    thumbnail_url: str | None = None
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    live_status: str = "none"  # "none" | "upcoming" | "live"
    active_live_chat_id: str | None = None
