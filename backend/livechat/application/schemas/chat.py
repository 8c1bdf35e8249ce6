"""Pydantic v2 schemas (DTOs) for live sessions, chat history and relays."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class LiveSessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    live_chat_id: str
    video_id: str
    title: str


class ChatMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    message_id: str
    author_name: str
    text: str
    published_at: datetime
    live_chat_id: str | None = None
    video_id: str | None = None


class ChatHistoryResponse(BaseModel):
    """Stored messages, newest first, plus the overall stored count."""

    messages: list[ChatMessageResponse]
    total: int
    limit: int
    offset: int


class ChatPageResponse(BaseModel):
    """One upstream page of chat, as fetched."""

    messages: list[ChatMessageResponse]
    next_page_token: str | None = None
    polling_interval_ms: int


class RelayStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    channel_id: str
    state: str
    live_chat_id: str | None = None
    video_id: str | None = None
    title: str | None = None
    next_delay_ms: int | None = None
    last_error: str | None = None
    subscribers: int = 0
