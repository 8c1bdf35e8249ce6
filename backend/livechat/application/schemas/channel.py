"""Pydantic v2 schemas (DTOs) for channel statistics and uploads."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ChannelStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    title: str
    description: str
    subscriber_count: int
    video_count: int
    view_count: int


class VideoSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    video_id: str
    title: str
    published_at: datetime | None = None
    thumbnail_url: str | None = None
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    live_status: str = "none"  # "none" | "upcoming" | "live"
    active_live_chat_id: str | None = None
