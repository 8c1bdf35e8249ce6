"""Overlay slot — the single chat message currently pinned on the stream overlay."""

import time

from livechat.domain.entities import OverlayMessage


class OverlaySlot:
    """Holds at most one OverlayMessage for the lifetime of the process."""

    def __init__(self) -> None:
        self._current: OverlayMessage | None = None

    def get(self) -> OverlayMessage | None:
        return self._current

    def set(
        self,
        *,
        author: str,
        message: str,
        id: str | None = None,
        author_photo: str | None = None,
    ) -> OverlayMessage:
        now_ms = int(time.time() * 1000)
        self._current = OverlayMessage(
            id=id or str(now_ms),
            author=author,
            message=message,
            author_photo=author_photo,
            timestamp=now_ms,
        )
        return self._current

    def clear(self) -> None:
        self._current = None
