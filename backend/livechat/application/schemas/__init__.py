from .quota import (
    ActivityResponse,
    EndpointUsageResponse,
    GovernorStatusResponse,
    HourlyUsageResponse,
    QuotaSummaryResponse,
    QuotaUsageResponse,
    UsageLogEntryResponse,
)
from .chat import (
    ChatHistoryResponse,
    ChatMessageResponse,
    ChatPageResponse,
    LiveSessionResponse,
    RelayStatusResponse,
)
from .channel import ChannelStatsResponse, VideoSummaryResponse
from .overlay import OverlayMessageResponse, OverlayRequest, OverlayStateResponse

__all__ = [
    "ActivityResponse",
    "EndpointUsageResponse",
    "GovernorStatusResponse",
    "HourlyUsageResponse",
    "QuotaSummaryResponse",
    "QuotaUsageResponse",
    "UsageLogEntryResponse",
    "ChatHistoryResponse",
    "ChatMessageResponse",
    "ChatPageResponse",
    "LiveSessionResponse",
    "RelayStatusResponse",
    "ChannelStatsResponse",
    "VideoSummaryResponse",
    "OverlayMessageResponse",
    "OverlayRequest",
    "OverlayStateResponse",
]
