"""Domain entity for the on-stream overlay slot."""

from dataclasses import dataclass


@dataclass(frozen=True)
class OverlayMessage:
    id: str
    author: str
    message: str
    timestamp: int  # epoch milliseconds
    author_photo: str | None = None
