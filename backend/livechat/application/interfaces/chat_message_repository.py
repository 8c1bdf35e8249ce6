"""Abstract repository interface for persisted chat messages."""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from collections.abc import Callable
from datetime import datetime

from livechat.domain.entities import ChatMessage


class ChatMessageRepository(ABC):
    """Port — idempotent storage of observed chat messages."""

    @abstractmethod
    async def save_many(self, messages: list[ChatMessage]) -> int:
        """Insert messages, skipping any ``message_id`` already stored.

        Returns:
            The number of rows actually inserted.
        """
        ...

    @abstractmethod
    async def list_recent(
        self,
        *,
        limit: int = 100,
        offset: int = 0,
        video_id: str | None = None,
        since: datetime | None = None,
    ) -> list[ChatMessage]:
        """Stored messages, newest first."""
        ...

    @abstractmethod
    async def count(self) -> int:
        ...


ChatMessageRepositoryScope = Callable[[], AbstractAsyncContextManager[ChatMessageRepository]]
