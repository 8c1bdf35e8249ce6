"""Logging setup for the relay service.

The polling loop and the metered client log on every iteration, so each
noisy area gets its own level in Settings (``LOG_LEVEL_RELAY``,
``LOG_LEVEL_YOUTUBE``, ...) and can be turned up or down on its own while
the rest of the service stays at ``LOG_LEVEL``.

Usage:
    from livechat.infrastructure.logging.log_config import setup_logging
    setup_logging(settings)   # once, from the FastAPI lifespan
"""

import logging
import sys

from livechat.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

# category → loggers it governs; the level comes from Settings.log_level_<category>
LOG_CATEGORIES: dict[str, tuple[str, ...]] = {
    "sql": ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite", "asyncpg"),
    "http": ("httpx", "httpcore"),
    "uvicorn": ("uvicorn", "uvicorn.access", "uvicorn.error"),
    "relay": (
        "livechat.application.services.chat_relay",
        "livechat.application.services.event_bus",
        "livechat.presentation.api.v1.sse",
    ),
    "youtube": (
        "livechat.infrastructure.youtube",
        "livechat.application.services.metered_client",
        "livechat.application.services.usage_ledger",
        "livechat.application.services.quota_governor",
    ),
}


def category_levels(settings: Settings) -> dict[str, int]:
    """Resolved numeric level per category."""
    return {
        category: _parse_level(getattr(settings, f"log_level_{category}", settings.log_level))
        for category in LOG_CATEGORIES
    }


def setup_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()

    root = logging.getLogger()
    root.setLevel(_parse_level(settings.log_level))
    # uvicorn brings its own handlers
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    levels = category_levels(settings)
    for category, logger_names in LOG_CATEGORIES.items():
        for name in logger_names:
            logging.getLogger(name).setLevel(levels[category])

    logging.getLogger(__name__).debug(
        "Log levels: root=%s %s",
        settings.log_level.upper(),
        " ".join(f"{c}={logging.getLevelName(lvl)}" for c, lvl in levels.items()),
    )


def _parse_level(raw: str) -> int:
    """Level name to logging constant; unknown names fall back to INFO."""
    numeric = logging.getLevelName(raw.strip().upper())
    return numeric if isinstance(numeric, int) else logging.INFO
