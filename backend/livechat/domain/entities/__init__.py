from .usage_log_entry import EndpointCategory, QUOTA_COSTS, UsageLogEntry, quota_cost, resolve_category
from .chat_message import ChatMessage, ChatMessagePage, ChatSession
from .channel import ChannelStats, VideoSummary
from .overlay import OverlayMessage
from .quota import (
    ActivityPage,
    EndpointUsage,
    HourlyUsage,
    QuotaCheck,
    QuotaSnapshot,
    QuotaZone,
    UsageTotals,
)

__all__ = [
    "EndpointCategory",
    "QUOTA_COSTS",
    "UsageLogEntry",
    "quota_cost",
    "resolve_category",
    "ChatMessage",
    "ChatMessagePage",
    "ChatSession",
    "ChannelStats",
    "VideoSummary",
    "OverlayMessage",
    "ActivityPage",
    "EndpointUsage",
    "HourlyUsage",
    "QuotaCheck",
    "QuotaSnapshot",
    "QuotaZone",
    "UsageTotals",
]
