"""Domain entities for live chat — sessions, messages and fetched pages."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class ChatSession:
    """An active live-chat context discovered on the upstream.

    ``live_chat_id`` changes whenever the broadcast changes. ``cursor`` is the
    opaque page token handed back by the previous fetch (None on a fresh session).
    """

    live_chat_id: str
    video_id: str | None
    title: str = ""
    cursor: str | None = None


@dataclass(frozen=True)
class ChatMessage:
    """A single observed chat message. ``message_id`` is globally unique."""

    message_id: str
    author_name: str
    text: str
    published_at: datetime
    live_chat_id: str | None = None
    video_id: str | None = None


@dataclass
class ChatMessagePage:
    """One page returned by a live-chat fetch."""

    messages: list[ChatMessage] = field(default_factory=list)
    next_cursor: str | None = None
    suggested_delay_ms: int = 2000
