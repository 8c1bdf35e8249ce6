"""V1 API router — aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from livechat.presentation.api.v1.endpoints.health import router as health_router
from livechat.presentation.api.v1.endpoints.quota import router as quota_router
from livechat.presentation.api.v1.endpoints.channel import router as channel_router
from livechat.presentation.api.v1.endpoints.messages import router as messages_router
from livechat.presentation.api.v1.endpoints.overlay import router as overlay_router

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(quota_router)
router.include_router(channel_router)
router.include_router(messages_router)
router.include_router(overlay_router)
