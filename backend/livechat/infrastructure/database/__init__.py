from .base import Base
from .session import engine, async_session_factory
from .models import ApiRequestLogModel, ChatMessageModel
from .scopes import chat_message_repository_scope, usage_log_repository_scope

__all__ = [
    "Base",
    "engine",
    "async_session_factory",
    "ApiRequestLogModel",
    "ChatMessageModel",
    "chat_message_repository_scope",
    "usage_log_repository_scope",
]
