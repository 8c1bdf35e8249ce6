from .usage_log_repository import UsageLogRepository, UsageLogRepositoryScope
from .chat_message_repository import ChatMessageRepository, ChatMessageRepositoryScope
from .youtube_api import YouTubeApi

__all__ = [
    "UsageLogRepository",
    "UsageLogRepositoryScope",
    "ChatMessageRepository",
    "ChatMessageRepositoryScope",
    "YouTubeApi",
]
