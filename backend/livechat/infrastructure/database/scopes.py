"""Unit-of-work scopes — one session per repository use, storage errors normalised.

Application services never see SQLAlchemy: they receive a zero-argument
callable that opens an ``async with`` block yielding a repository, commits on
success and raises ``StorageError`` when the database fails.
"""

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from livechat.domain.exceptions import StorageError
from livechat.infrastructure.database.repositories import (
    SQLAlchemyChatMessageRepository,
    SQLAlchemyUsageLogRepository,
)
from livechat.infrastructure.database.session import async_session_factory

R = TypeVar("R")


def make_repository_scope(
    session_factory: async_sessionmaker[AsyncSession],
    repository_cls: Callable[[AsyncSession], R],
    operation: str,
) -> Callable[[], AbstractAsyncContextManager[R]]:
    """Build a scope factory binding ``repository_cls`` to fresh sessions."""

    @asynccontextmanager
    async def scope() -> AsyncIterator[R]:
        try:
            async with session_factory() as session:
                try:
                    yield repository_cls(session)
                    await session.commit()
                except BaseException:
                    await session.rollback()
                    raise
        except (SQLAlchemyError, OSError) as exc:
            raise StorageError(operation, exc) from exc

    return scope


usage_log_repository_scope = make_repository_scope(
    async_session_factory, SQLAlchemyUsageLogRepository, "usage_log"
)

chat_message_repository_scope = make_repository_scope(
    async_session_factory, SQLAlchemyChatMessageRepository, "chat_messages"
)
