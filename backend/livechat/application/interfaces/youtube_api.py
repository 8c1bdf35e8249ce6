"""Abstract interface for the YouTube Data API operations the relay uses.

One method per upstream operation, so that each call maps to exactly one
billable endpoint category.
"""

from abc import ABC, abstractmethod

from livechat.domain.entities import ChannelStats, ChatMessagePage, VideoSummary


class YouTubeApi(ABC):
    """Port — raw, unmetered access to the upstream."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    @abstractmethod
    async def get_uploads_playlist_id(self, channel_id: str) -> str | None:
        """``channels.list`` — the channel's stable uploads playlist id."""
        ...

    @abstractmethod
    async def get_channel_stats(self, channel_id: str) -> ChannelStats | None:
        """``channels.list`` — snippet and statistics."""
        ...

    @abstractmethod
    async def list_playlist_video_ids(self, playlist_id: str, max_results: int = 5) -> list[str]:
        """``playlistItems.list`` — most recent video ids in the playlist."""
        ...

    @abstractmethod
    async def list_videos(self, video_ids: list[str]) -> list[VideoSummary]:
        """``videos.list`` — snippet, statistics and live streaming details."""
        ...

    @abstractmethod
    async def search_live_video_ids(self, channel_id: str) -> list[str]:
        """``search.list`` with ``eventType=live`` — expensive."""
        ...

    @abstractmethod
    async def list_chat_messages(
        self, live_chat_id: str, page_token: str | None = None
    ) -> ChatMessagePage:
        """``liveChatMessages.list`` — one page of chat."""
        ...
