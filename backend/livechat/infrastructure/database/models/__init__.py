from .api_request_log import ApiRequestLogModel
from .chat_message import ChatMessageModel

__all__ = [
    "ApiRequestLogModel",
    "ChatMessageModel",
]
