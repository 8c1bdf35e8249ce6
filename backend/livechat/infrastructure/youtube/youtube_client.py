"""YouTube Data API v3 client — implements the YouTubeApi interface.

Talks to https://www.googleapis.com/youtube/v3 with httpx using an API key.
Each method issues exactly one request, so the metered wrapper can charge
it against a single endpoint category.
"""

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from livechat.application.interfaces.youtube_api import YouTubeApi
from livechat.domain.entities import ChannelStats, ChatMessage, ChatMessagePage, VideoSummary
from livechat.domain.exceptions import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_POLLING_INTERVAL_MS = 2000
UNKNOWN_AUTHOR = "Unknown author"


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable upstream timestamp %r", value)
        return None


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class YouTubeDataClient(YouTubeApi):
    """Infrastructure adapter — connects to the YouTube Data API.

    Reuses one pooled httpx.AsyncClient for its lifetime unless one is
    injected (tests pass a client backed by httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://www.googleapis.com/youtube/v3",
        timeout: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    @property
    def provider_name(self) -> str:
        return "youtube"

    def _get_client(self) -> httpx.AsyncClient:
        """Return the injected client or lazily create a shared one."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def aclose(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def _get(self, resource: str, params: dict[str, Any]) -> dict[str, Any]:
        """GET ``resource`` with the API key; raise UpstreamError on failure."""
        query = {k: v for k, v in params.items() if v is not None}
        query["key"] = self._api_key
        url = f"{self._base_url}/{resource}"

        try:
            response = await self._get_client().get(url, params=query)
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            raise UpstreamError(
                provider=self.provider_name,
                status_code=0,
                message=f"Could not reach upstream: {exc}",
                dispatched=False,
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(
                provider=self.provider_name,
                status_code=0,
                message=f"{type(exc).__name__}: {exc}",
            ) from exc

        if response.status_code != 200:
            self._raise_upstream_error(response)

        return response.json()

    def _raise_upstream_error(self, response: httpx.Response) -> None:
        """Raise UpstreamError from a Google API error envelope."""
        reason = None
        try:
            error = response.json().get("error", {})
            message = error.get("message", response.text)
            details = error.get("errors") or []
            if details:
                reason = details[0].get("reason")
        except ValueError:
            message = response.text

        raise UpstreamError(
            provider=self.provider_name,
            status_code=response.status_code,
            message=message,
            reason=reason,
        )

    # ── Channels ─────────────────────────────────────────────────────

    async def get_uploads_playlist_id(self, channel_id: str) -> str | None:
        data = await self._get("channels", {"part": "contentDetails", "id": channel_id})
        items = data.get("items") or []
        if not items:
            return None
        playlists = items[0].get("contentDetails", {}).get("relatedPlaylists", {})
        return playlists.get("uploads") or None

    async def get_channel_stats(self, channel_id: str) -> ChannelStats | None:
        data = await self._get("channels", {"part": "snippet,statistics", "id": channel_id})
        items = data.get("items") or []
        if not items:
            return None
        snippet = items[0].get("snippet", {})
        statistics = items[0].get("statistics", {})
        return ChannelStats(
            title=snippet.get("title", ""),
            description=snippet.get("description", ""),
            subscriber_count=_to_int(statistics.get("subscriberCount")),
            video_count=_to_int(statistics.get("videoCount")),
            view_count=_to_int(statistics.get("viewCount")),
        )

    # ── Videos ───────────────────────────────────────────────────────

    async def list_playlist_video_ids(self, playlist_id: str, max_results: int = 5) -> list[str]:
        data = await self._get(
            "playlistItems",
            {"part": "contentDetails", "playlistId": playlist_id, "maxResults": max_results},
        )
        ids = []
        for item in data.get("items") or []:
            video_id = item.get("contentDetails", {}).get("videoId")
            if video_id:
                ids.append(video_id)
        return ids

    async def list_videos(self, video_ids: list[str]) -> list[VideoSummary]:
        data = await self._get(
            "videos",
            {"part": "snippet,statistics,liveStreamingDetails", "id": ",".join(video_ids)},
        )
        return [self._parse_video(item) for item in data.get("items") or []]

    @staticmethod
    def _parse_video(item: dict[str, Any]) -> VideoSummary:
        snippet = item.get("snippet", {})
        statistics = item.get("statistics", {})
        live = item.get("liveStreamingDetails", {})
        thumbnails = snippet.get("thumbnails", {})
        thumbnail = thumbnails.get("medium") or thumbnails.get("default") or {}
        return VideoSummary(
            video_id=item.get("id", ""),
            title=snippet.get("title", ""),
            published_at=_parse_datetime(snippet.get("publishedAt")),
            thumbnail_url=thumbnail.get("url"),
            view_count=_to_int(statistics.get("viewCount")),
            like_count=_to_int(statistics.get("likeCount")),
            comment_count=_to_int(statistics.get("commentCount")),
            live_status=snippet.get("liveBroadcastContent", "none"),
            active_live_chat_id=live.get("activeLiveChatId"),
        )

    async def search_live_video_ids(self, channel_id: str) -> list[str]:
        data = await self._get(
            "search",
            {
                "part": "id",
                "channelId": channel_id,
                "eventType": "live",
                "type": "video",
                "maxResults": 10,
            },
        )
        ids = []
        for item in data.get("items") or []:
            video_id = item.get("id", {}).get("videoId")
            if video_id:
                ids.append(video_id)
        return ids

    # ── Live chat ────────────────────────────────────────────────────

    async def list_chat_messages(
        self, live_chat_id: str, page_token: str | None = None
    ) -> ChatMessagePage:
        data = await self._get(
            "liveChat/messages",
            {
                "liveChatId": live_chat_id,
                "part": "id,snippet,authorDetails",
                "pageToken": page_token,
            },
        )
        messages = []
        for item in data.get("items") or []:
            snippet = item.get("snippet", {})
            author = item.get("authorDetails", {})
            message_id = item.get("id")
            if not message_id:
                continue
            messages.append(
                ChatMessage(
                    message_id=message_id,
                    author_name=author.get("displayName") or UNKNOWN_AUTHOR,
                    text=snippet.get("displayMessage") or "",
                    published_at=_parse_datetime(snippet.get("publishedAt"))
                    or datetime.now(timezone.utc),
                    live_chat_id=live_chat_id,
                )
            )

        return ChatMessagePage(
            messages=messages,
            next_cursor=data.get("nextPageToken"),
            suggested_delay_ms=_to_int(data.get("pollingIntervalMillis"))
            or DEFAULT_POLLING_INTERVAL_MS,
        )
