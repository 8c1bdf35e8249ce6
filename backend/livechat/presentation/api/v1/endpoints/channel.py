"""Channel endpoints — live session lookup, channel statistics and uploads."""

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status

from livechat.application.schemas import (
    ChannelStatsResponse,
    LiveSessionResponse,
    VideoSummaryResponse,
)
from livechat.application.services import MeteredYouTubeClient
from livechat.infrastructure.dependencies import get_channel_id, get_youtube_client
from livechat.presentation.api.v1.errors import DOMAIN_ERRORS, to_http_exception

router = APIRouter(tags=["Channel"])


@router.get("/live-session", response_model=LiveSessionResponse)
async def get_live_session(
    strategy: Literal["efficient", "naive"] = Query(default="efficient"),
    channel_id: str = Depends(get_channel_id),
    client: MeteredYouTubeClient = Depends(get_youtube_client),
) -> LiveSessionResponse:
    """Find the channel's active live chat.

    ``efficient`` probes recent uploads (about 3 units); ``naive`` goes
    through search and costs over a hundred.
    """
    try:
        if strategy == "naive":
            session = await client.find_active_session_naive(channel_id)
        else:
            session = await client.find_active_session(channel_id)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e)
    return LiveSessionResponse.model_validate(session)


@router.get("/channel-stats", response_model=ChannelStatsResponse)
async def get_channel_stats(
    channel_id: str = Depends(get_channel_id),
    client: MeteredYouTubeClient = Depends(get_youtube_client),
) -> ChannelStatsResponse:
    try:
        stats = await client.get_channel_stats(channel_id)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e)
    if stats is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Channel '{channel_id}' not found",
        )
    return ChannelStatsResponse.model_validate(stats)


@router.get("/videos", response_model=list[VideoSummaryResponse])
async def list_videos(
    max_results: int = Query(default=50, ge=1, le=50),
    channel_id: str = Depends(get_channel_id),
    client: MeteredYouTubeClient = Depends(get_youtube_client),
) -> list[VideoSummaryResponse]:
    """Most recent uploads with their statistics."""
    try:
        videos = await client.list_channel_videos(channel_id, max_results)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e)
    return [VideoSummaryResponse.model_validate(v) for v in videos]
