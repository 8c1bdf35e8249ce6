"""SQLAlchemy database session and engine configuration."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from livechat.config import get_settings


def _get_async_url(url: str) -> str:
    """Convert a sync SQLAlchemy URL to an async one."""
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def build_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine; PostgreSQL gets a bounded connection pool."""
    async_url = _get_async_url(url)
    if async_url.startswith("postgresql"):
        return create_async_engine(
            async_url,
            echo=echo,
            pool_size=10,
            max_overflow=10,
            pool_pre_ping=True,
        )
    return create_async_engine(async_url, echo=echo)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


settings = get_settings()

engine = build_engine(
    settings.database_url,
    echo=(settings.log_level_sql.upper() == "DEBUG"),
)

async_session_factory = build_session_factory(engine)
