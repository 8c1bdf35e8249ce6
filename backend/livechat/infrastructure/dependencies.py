"""FastAPI dependency injection — wires infrastructure to application layer.

Long-lived services (ledger, governor, relays, event bus) are built once in
the application lifespan and stored on ``app.state``; these providers hand
them to the endpoints.
"""

from fastapi import Request

from livechat.application.interfaces import ChatMessageRepositoryScope
from livechat.application.services import (
    ChatRelayManager,
    EventBus,
    MeteredYouTubeClient,
    OverlaySlot,
    QuotaGovernor,
    UsageLedger,
)


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


def get_usage_ledger(request: Request) -> UsageLedger:
    return request.app.state.usage_ledger


def get_quota_governor(request: Request) -> QuotaGovernor:
    return request.app.state.quota_governor


def get_youtube_client(request: Request) -> MeteredYouTubeClient:
    return request.app.state.youtube_client


def get_relay_manager(request: Request) -> ChatRelayManager:
    return request.app.state.relay_manager


def get_overlay_slot(request: Request) -> OverlaySlot:
    return request.app.state.overlay_slot


def get_chat_message_scope(request: Request) -> ChatMessageRepositoryScope:
    """Unit-of-work factory for chat history reads."""
    return request.app.state.chat_message_scope


def get_channel_id(request: Request) -> str:
    """The channel this deployment relays by default."""
    return request.app.state.channel_id
