"""Pydantic v2 schemas (DTOs) for the stream overlay slot."""

from pydantic import BaseModel, ConfigDict, Field


class OverlayRequest(BaseModel):
    """Pin a chat message on the overlay; ``id`` defaults to the current epoch ms."""

    author: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    id: str | None = None
    author_photo: str | None = None


class OverlayMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    author: str
    message: str
    timestamp: int
    author_photo: str | None = None


class OverlayStateResponse(BaseModel):
    message: OverlayMessageResponse | None = None
