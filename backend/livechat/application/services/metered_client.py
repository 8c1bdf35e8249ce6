"""Metered YouTube client — every upstream call is admitted, timed and logged.

Wraps the raw ``YouTubeApi`` port. Each public method maps to exactly one
billable endpoint category, except the session and video lookups which chain
several cheap calls, each of them metered on its own.
"""

import asyncio
import dataclasses
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from livechat.application.interfaces import YouTubeApi
from livechat.application.services.quota_governor import QuotaGovernor
from livechat.application.services.usage_ledger import UsageLedger
from livechat.domain.entities import (
    ChannelStats,
    ChatMessagePage,
    ChatSession,
    EndpointCategory,
    UsageLogEntry,
    VideoSummary,
)
from livechat.domain.exceptions import SessionNotFoundError, UpstreamError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Recent uploads probed for an active chat by the efficient lookup.
RECENT_VIDEO_PROBE = 5


class MeteredYouTubeClient:
    """Quota-governed facade over the YouTube Data API.

    Usage:
        client = MeteredYouTubeClient(api, governor, ledger)
        session = await client.find_active_session(channel_id)
        page = await client.fetch_messages(session)
    """

    def __init__(
        self,
        api: YouTubeApi,
        governor: QuotaGovernor,
        ledger: UsageLedger,
        *,
        recent_video_probe: int = RECENT_VIDEO_PROBE,
    ) -> None:
        self._api = api
        self._governor = governor
        self._ledger = ledger
        self._probe = recent_video_probe
        self._uploads_playlists: dict[str, str] = {}

    # ── Single metered operations ────────────────────────────────────

    async def get_uploads_playlist_id(self, channel_id: str) -> str | None:
        """Uploads playlist id; cached per channel since it never changes."""
        cached = self._uploads_playlists.get(channel_id)
        if cached:
            return cached
        playlist_id = await self._metered(
            EndpointCategory.CHANNELS_LIST,
            "getUploadsPlaylistId",
            {"channelId": channel_id},
            lambda: self._api.get_uploads_playlist_id(channel_id),
        )
        if playlist_id:
            self._uploads_playlists[channel_id] = playlist_id
        return playlist_id

    async def get_channel_stats(self, channel_id: str) -> ChannelStats | None:
        return await self._metered(
            EndpointCategory.CHANNELS_LIST,
            "getChannelStats",
            {"channelId": channel_id},
            lambda: self._api.get_channel_stats(channel_id),
        )

    async def list_playlist_video_ids(self, playlist_id: str, max_results: int = 5) -> list[str]:
        return await self._metered(
            EndpointCategory.PLAYLIST_ITEMS_LIST,
            "listPlaylistVideoIds",
            {"playlistId": playlist_id, "maxResults": max_results},
            lambda: self._api.list_playlist_video_ids(playlist_id, max_results),
        )

    async def list_videos(self, video_ids: list[str]) -> list[VideoSummary]:
        if not video_ids:
            return []
        return await self._metered(
            EndpointCategory.VIDEOS_LIST,
            "listVideos",
            {"ids": video_ids},
            lambda: self._api.list_videos(video_ids),
        )

    async def search_live_video_ids(self, channel_id: str) -> list[str]:
        return await self._metered(
            EndpointCategory.SEARCH_LIST,
            "searchLiveVideos",
            {"channelId": channel_id, "eventType": "live"},
            lambda: self._api.search_live_video_ids(channel_id),
        )

    async def fetch_messages(self, session: ChatSession) -> ChatMessagePage:
        """One page of chat for ``session`` starting at its cursor."""
        page = await self._metered(
            EndpointCategory.LIVE_CHAT_MESSAGES_LIST,
            "fetchMessages",
            {"liveChatId": session.live_chat_id, "pageToken": session.cursor},
            lambda: self._api.list_chat_messages(session.live_chat_id, session.cursor),
        )
        page.messages = [
            dataclasses.replace(m, live_chat_id=session.live_chat_id, video_id=session.video_id)
            for m in page.messages
        ]
        return page

    # ── Composite lookups ────────────────────────────────────────────

    async def find_active_session(self, channel_id: str) -> ChatSession:
        """Locate the channel's live chat via uploads playlist + video probe.

        Costs three units (two once the playlist id is cached) instead of the
        101 spent by the search-based lookup.

        Raises:
            SessionNotFoundError: no recent upload has an active live chat.
        """
        playlist_id = await self.get_uploads_playlist_id(channel_id)
        if not playlist_id:
            raise SessionNotFoundError(channel_id)

        video_ids = await self.list_playlist_video_ids(playlist_id, self._probe)
        videos = await self.list_videos(video_ids)
        return self._first_live_session(channel_id, videos)

    async def find_active_session_naive(self, channel_id: str) -> ChatSession:
        """Fallback lookup through ``search.list`` (100 units) + ``videos.list``."""
        video_ids = await self.search_live_video_ids(channel_id)
        videos = await self.list_videos(video_ids[:1])
        return self._first_live_session(channel_id, videos)

    async def list_channel_videos(self, channel_id: str, max_results: int = 50) -> list[VideoSummary]:
        """Most recent uploads with statistics, newest first."""
        max_results = max(1, min(max_results, 50))
        playlist_id = await self.get_uploads_playlist_id(channel_id)
        if not playlist_id:
            return []
        video_ids = await self.list_playlist_video_ids(playlist_id, max_results)
        return await self.list_videos(video_ids)

    @staticmethod
    def _first_live_session(channel_id: str, videos: list[VideoSummary]) -> ChatSession:
        for video in videos:
            if video.active_live_chat_id:
                return ChatSession(
                    live_chat_id=video.active_live_chat_id,
                    video_id=video.video_id,
                    title=video.title,
                )
        raise SessionNotFoundError(channel_id)

    # ── Metering ─────────────────────────────────────────────────────

    async def _metered(
        self,
        category: EndpointCategory,
        method_name: str,
        request_params: dict[str, Any],
        call: Callable[[], Awaitable[T]],
    ) -> T:
        check = await self._governor.admit(category)

        start = time.monotonic()
        try:
            result = await call()
        except asyncio.CancelledError:
            self._record(category, method_name, request_params, start, check.cost, error="cancelled")
            raise
        except Exception as exc:
            charged = check.cost
            if isinstance(exc, UpstreamError) and not exc.dispatched:
                charged = 0
            self._record(category, method_name, request_params, start, charged, error=str(exc))
            raise

        self._record(category, method_name, request_params, start, check.cost)
        return result

    def _record(
        self,
        category: EndpointCategory,
        method_name: str,
        request_params: dict[str, Any],
        start: float,
        cost: int,
        *,
        error: str | None = None,
    ) -> None:
        self._ledger.record(
            UsageLogEntry(
                endpoint=category.value,
                method_name=method_name,
                status="error" if error is not None else "success",
                quota_cost=cost,
                response_time_ms=int((time.monotonic() - start) * 1000),
                error_message=error,
                request_params=request_params,
            )
        )
