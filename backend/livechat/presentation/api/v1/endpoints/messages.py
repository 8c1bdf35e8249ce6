"""Chat endpoints — stored history, the live message stream and relay status."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from livechat.application.interfaces import ChatMessageRepositoryScope
from livechat.application.schemas import (
    ChatHistoryResponse,
    ChatMessageResponse,
    ChatPageResponse,
    RelayStatusResponse,
)
from livechat.application.services import ChatRelayManager, EventBus, MeteredYouTubeClient
from livechat.application.services.event_bus import chat_topic
from livechat.domain.entities import ChatSession
from livechat.domain.exceptions import StorageError
from livechat.infrastructure.dependencies import (
    get_channel_id,
    get_chat_message_scope,
    get_event_bus,
    get_relay_manager,
    get_youtube_client,
)
from livechat.presentation.api.v1.errors import DOMAIN_ERRORS, to_http_exception
from livechat.presentation.api.v1.sse import event_stream_response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Chat"])


@router.get("/messages", response_model=ChatHistoryResponse)
async def list_messages(
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    video_id: str | None = None,
    since: datetime | None = Query(
        default=None, description="Only messages published strictly after this instant"
    ),
    scope: ChatMessageRepositoryScope = Depends(get_chat_message_scope),
) -> ChatHistoryResponse:
    """Stored chat messages, newest first."""
    try:
        async with scope() as repository:
            messages = await repository.list_recent(
                limit=limit, offset=offset, video_id=video_id, since=since
            )
            total = await repository.count()
    except StorageError as e:
        raise to_http_exception(e)

    return ChatHistoryResponse(
        messages=[ChatMessageResponse.model_validate(m) for m in messages],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/messages/page", response_model=ChatPageResponse)
async def fetch_message_page(
    live_chat_id: str = Query(min_length=1),
    page_token: str | None = None,
    video_id: str | None = None,
    client: MeteredYouTubeClient = Depends(get_youtube_client),
    scope: ChatMessageRepositoryScope = Depends(get_chat_message_scope),
) -> ChatPageResponse:
    """Fetch a single page of a live chat on demand.

    Metered like every other upstream call. Fetched messages are stored; a
    storage outage is logged and the page is still returned.
    """
    session = ChatSession(live_chat_id=live_chat_id, video_id=video_id, cursor=page_token)
    try:
        page = await client.fetch_messages(session)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e)

    if page.messages:
        try:
            async with scope() as repository:
                await repository.save_many(page.messages)
        except StorageError as e:
            logger.error("Could not persist %d chat messages: %s", len(page.messages), e)

    return ChatPageResponse(
        messages=[ChatMessageResponse.model_validate(m) for m in page.messages],
        next_page_token=page.next_cursor,
        polling_interval_ms=page.suggested_delay_ms,
    )


@router.get("/messages/stream")
async def message_stream(
    channel_id: str | None = None,
    default_channel_id: str = Depends(get_channel_id),
    bus: EventBus = Depends(get_event_bus),
    relays: ChatRelayManager = Depends(get_relay_manager),
) -> StreamingResponse:
    """SSE feed of a channel's chat.

    The channel's relay runs while at least one client is connected and
    stops when the last one disconnects.
    """
    channel_id = channel_id or default_channel_id
    # Subscribe before the relay starts so its first events are not missed.
    subscription = bus.subscribe(chat_topic(channel_id))
    relays.acquire(channel_id)

    async def release() -> None:
        await relays.release(channel_id)

    return event_stream_response(subscription, on_close=release)


@router.get("/relays", response_model=list[RelayStatusResponse])
async def list_relays(
    relays: ChatRelayManager = Depends(get_relay_manager),
) -> list[RelayStatusResponse]:
    """State of every running chat relay."""
    return [
        RelayStatusResponse(
            channel_id=s.channel_id,
            state=s.state.value,
            live_chat_id=s.live_chat_id,
            video_id=s.video_id,
            title=s.title,
            next_delay_ms=s.next_delay_ms,
            last_error=s.last_error,
            subscribers=s.subscribers,
        )
        for s in relays.status()
    ]
