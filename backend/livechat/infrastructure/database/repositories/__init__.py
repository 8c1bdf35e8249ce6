from .usage_log_repository import SQLAlchemyUsageLogRepository
from .chat_message_repository import SQLAlchemyChatMessageRepository

__all__ = [
    "SQLAlchemyUsageLogRepository",
    "SQLAlchemyChatMessageRepository",
]
