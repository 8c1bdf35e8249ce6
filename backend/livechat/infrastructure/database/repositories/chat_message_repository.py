"""Concrete repository for chat messages backed by SQLAlchemy."""

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from livechat.application.interfaces import ChatMessageRepository
from livechat.domain.entities import ChatMessage
from livechat.infrastructure.database.models.chat_message import ChatMessageModel

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SQLAlchemyChatMessageRepository(ChatMessageRepository):
    """Implements the ChatMessageRepository port using SQLAlchemy."""

    def __init__(self, session: AsyncSession):
        self._session = session

    def _to_entity(self, model: ChatMessageModel) -> ChatMessage:
        """Map ORM model → domain entity."""
        return ChatMessage(
            message_id=model.message_id,
            author_name=model.author_name,
            text=model.message_text,
            published_at=_as_utc(model.published_at),
            live_chat_id=model.live_chat_id,
            video_id=model.video_id,
        )

    @staticmethod
    def _to_row(entity: ChatMessage) -> dict:
        return {
            "message_id": entity.message_id,
            "video_id": entity.video_id,
            "live_chat_id": entity.live_chat_id,
            "author_name": entity.author_name,
            "message_text": entity.text,
            "published_at": _as_utc(entity.published_at),
            "created_at": datetime.now(timezone.utc),
        }

    async def save_many(self, messages: list[ChatMessage]) -> int:
        # Collapse duplicates inside the batch, keeping upstream order.
        rows = list({m.message_id: self._to_row(m) for m in messages}.values())
        if not rows:
            return 0

        dialect = self._session.get_bind().dialect.name
        insert_fn = _UPSERT_DIALECTS.get(dialect)
        if insert_fn is None:
            return await self._save_many_portable(rows)

        stmt = insert_fn(ChatMessageModel).values(rows).on_conflict_do_nothing(
            index_elements=["message_id"]
        )
        result = await self._session.execute(stmt)
        return max(result.rowcount or 0, 0)

    async def _save_many_portable(self, rows: list[dict]) -> int:
        ids = [row["message_id"] for row in rows]
        existing = await self._session.execute(
            select(ChatMessageModel.message_id).where(ChatMessageModel.message_id.in_(ids))
        )
        known = set(existing.scalars().all())
        fresh = [ChatMessageModel(**row) for row in rows if row["message_id"] not in known]
        self._session.add_all(fresh)
        await self._session.flush()
        return len(fresh)

    async def list_recent(
        self,
        *,
        limit: int = 100,
        offset: int = 0,
        video_id: str | None = None,
        since: datetime | None = None,
    ) -> list[ChatMessage]:
        stmt = select(ChatMessageModel)
        if video_id:
            stmt = stmt.where(ChatMessageModel.video_id == video_id)
        if since is not None:
            stmt = stmt.where(ChatMessageModel.published_at > _as_utc(since))
        stmt = (
            stmt.order_by(ChatMessageModel.published_at.desc(), ChatMessageModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(row) for row in result.scalars().all()]

    async def count(self) -> int:
        result = await self._session.execute(select(func.count(ChatMessageModel.id)))
        return int(result.scalar_one())
