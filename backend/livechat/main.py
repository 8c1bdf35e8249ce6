"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from livechat.config import Settings, get_settings
from livechat.application.services import (
    ChatRelay,
    ChatRelayManager,
    EventBus,
    MeteredYouTubeClient,
    OverlaySlot,
    QuotaGovernor,
    UsageLedger,
)
from livechat.domain.exceptions import ConfigurationError
from livechat.infrastructure.database import (
    Base,
    chat_message_repository_scope,
    engine,
    usage_log_repository_scope,
)
from livechat.infrastructure.logging.log_config import setup_logging
from livechat.infrastructure.youtube import YouTubeDataClient
from livechat.presentation.api.router import router as api_router

logger = logging.getLogger(__name__)


def _validate_settings(settings: Settings) -> None:
    """Refuse to start without credentials and a channel to relay."""
    if not settings.youtube_api_key.strip():
        raise ConfigurationError("YOUTUBE_API_KEY")
    if not settings.youtube_channel_id.strip():
        raise ConfigurationError("YOUTUBE_CHANNEL_ID")


async def _ensure_database_exists(database_url: str) -> None:
    """Create the PostgreSQL database if it does not yet exist.

    Connects to the default ``postgres`` maintenance database, checks for the
    target database name, and issues ``CREATE DATABASE`` when missing.
    """
    if not database_url.startswith("postgresql://"):
        return

    from urllib.parse import urlparse

    import asyncpg

    db_name = urlparse(database_url).path.lstrip("/")
    if not db_name:
        return

    maintenance_url = database_url.rsplit("/", 1)[0] + "/postgres"

    try:
        conn = await asyncpg.connect(maintenance_url)
        try:
            exists = await conn.fetchval(
                "SELECT 1 FROM pg_database WHERE datname = $1", db_name
            )
            if not exists:
                # CREATE DATABASE cannot run inside a transaction block
                await conn.execute(f'CREATE DATABASE "{db_name}"')
                logger.info("Created database '%s'", db_name)
        finally:
            await conn.close()
    except (OSError, asyncpg.PostgresError) as exc:
        logger.warning("Could not auto-create database '%s': %s", db_name, exc)


def _build_relay_factory(
    settings: Settings,
    client: MeteredYouTubeClient,
    bus: EventBus,
):
    def build(channel_id: str) -> ChatRelay:
        return ChatRelay(
            channel_id,
            client,
            bus,
            chat_message_repository_scope,
            min_poll_interval_ms=settings.min_poll_interval_ms,
            backoff_initial_ms=settings.backoff_initial_ms,
            backoff_max_ms=settings.backoff_max_ms,
        )

    return build


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan — validate config, create tables, wire services."""
    settings = get_settings()
    setup_logging(settings)
    _validate_settings(settings)

    # 1. Database and tables
    await _ensure_database_exists(settings.database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # 2. Accounting: ledger → governor, both publishing on the bus
    bus = EventBus(heartbeat_interval=settings.sse_heartbeat_seconds)
    ledger = UsageLedger(
        usage_log_repository_scope,
        event_bus=bus,
        timezone_name=settings.quota_timezone,
        daily_limit=settings.daily_quota_limit,
        activity_max_rows=settings.activity_max_rows,
    )
    governor = QuotaGovernor(
        ledger,
        daily_limit=settings.daily_quota_limit,
        warning_threshold=settings.quota_warning_threshold,
        block_threshold=settings.quota_block_threshold,
        cache_ttl_seconds=settings.quota_cache_ttl_seconds,
        event_bus=bus,
    )

    # 3. Upstream client, metered
    youtube = YouTubeDataClient(
        api_key=settings.youtube_api_key,
        base_url=settings.youtube_base_url,
        timeout=settings.youtube_timeout_seconds,
    )
    client = MeteredYouTubeClient(youtube, governor, ledger)

    # 4. Relays start on demand when a chat stream client connects
    relay_manager = ChatRelayManager(_build_relay_factory(settings, client, bus))

    app.state.channel_id = settings.youtube_channel_id
    app.state.event_bus = bus
    app.state.usage_ledger = ledger
    app.state.quota_governor = governor
    app.state.youtube_client = client
    app.state.relay_manager = relay_manager
    app.state.overlay_slot = OverlaySlot()
    app.state.chat_message_scope = chat_message_repository_scope

    logger.info(
        "Live chat relay ready for channel %s (daily limit %d units)",
        settings.youtube_channel_id,
        settings.daily_quota_limit,
    )

    yield

    # Shutdown
    await relay_manager.shutdown()
    await ledger.drain()
    await bus.shutdown()
    await youtube.aclose()
    await engine.dispose()


def create_app() -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "livechat.main:app",
        host="0.0.0.0",
        port=8020,
        reload=True,
    )
