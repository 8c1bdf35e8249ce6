from .event_bus import BusEvent, EventBus, Subscription
from .usage_ledger import UsageLedger
from .quota_governor import QuotaGovernor
from .metered_client import MeteredYouTubeClient
from .chat_relay import ChatRelay, ChatRelayManager, ExponentialBackoff, RelayState, RelayStatus
from .overlay_slot import OverlaySlot

__all__ = [
    "BusEvent",
    "EventBus",
    "Subscription",
    "UsageLedger",
    "QuotaGovernor",
    "MeteredYouTubeClient",
    "ChatRelay",
    "ChatRelayManager",
    "ExponentialBackoff",
    "RelayState",
    "RelayStatus",
    "OverlaySlot",
]
