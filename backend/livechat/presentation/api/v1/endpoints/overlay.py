"""Overlay endpoints — pin, read and clear the message shown on stream."""

from fastapi import APIRouter, Depends, status

from livechat.application.schemas import (
    OverlayMessageResponse,
    OverlayRequest,
    OverlayStateResponse,
)
from livechat.application.services import OverlaySlot
from livechat.infrastructure.dependencies import get_overlay_slot

router = APIRouter(prefix="/overlay", tags=["Overlay"])


@router.get("", response_model=OverlayStateResponse)
async def get_overlay(slot: OverlaySlot = Depends(get_overlay_slot)) -> OverlayStateResponse:
    current = slot.get()
    if current is None:
        return OverlayStateResponse(message=None)
    return OverlayStateResponse(message=OverlayMessageResponse.model_validate(current))


@router.post("", response_model=OverlayMessageResponse, status_code=status.HTTP_201_CREATED)
async def set_overlay(
    data: OverlayRequest,
    slot: OverlaySlot = Depends(get_overlay_slot),
) -> OverlayMessageResponse:
    """Replace the pinned message."""
    pinned = slot.set(
        author=data.author,
        message=data.message,
        id=data.id,
        author_photo=data.author_photo,
    )
    return OverlayMessageResponse.model_validate(pinned)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_overlay(slot: OverlaySlot = Depends(get_overlay_slot)) -> None:
    slot.clear()
