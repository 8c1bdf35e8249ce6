"""Domain exception → HTTP error translation shared by the v1 endpoints."""

from fastapi import HTTPException, status

from livechat.domain.exceptions import (
    QuotaExceededError,
    SessionNotFoundError,
    StorageError,
    UpstreamError,
)


def to_http_exception(exc: Exception) -> HTTPException:
    """Map a domain error onto the status code clients act on."""
    if isinstance(exc, QuotaExceededError):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={"message": str(exc), "used": exc.used, "limit": exc.limit},
        )
    if isinstance(exc, SessionNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, UpstreamError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"[{exc.provider}] {exc.message}",
        )
    if isinstance(exc, StorageError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


DOMAIN_ERRORS = (QuotaExceededError, SessionNotFoundError, UpstreamError, StorageError)
