"""Domain-specific exceptions — framework-independent."""


class QuotaExceededError(Exception):
    """Raised when the quota governor denies a metered call before dispatch."""

    def __init__(self, used: int, limit: int):
        self.used = used
        self.limit = limit
        percent = round(used / limit * 100) if limit else 100
        super().__init__(f"API quota exceeded: {used}/{limit} units used ({percent}%)")


class UpstreamError(Exception):
    """Raised when the upstream API call itself fails.

    ``dispatched`` is False when the request never reached the upstream
    (connection could not be established), in which case no quota is charged.
    """

    def __init__(
        self,
        provider: str,
        status_code: int,
        message: str,
        *,
        reason: str | None = None,
        dispatched: bool = True,
    ):
        self.provider = provider
        self.status_code = status_code
        self.message = message
        self.reason = reason
        self.dispatched = dispatched
        super().__init__(f"[{provider}] {status_code}: {message}")


class SessionNotFoundError(Exception):
    """Raised when a channel has no active live chat."""

    def __init__(self, channel_id: str):
        self.channel_id = channel_id
        super().__init__(f"No active live chat for channel '{channel_id}'")


class StorageError(Exception):
    """Raised when the ledger or message store cannot be read or written."""

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Storage operation '{operation}' failed{detail}")


class ConfigurationError(Exception):
    """Raised at startup when a required setting is missing."""

    def __init__(self, setting: str):
        self.setting = setting
        super().__init__(f"Required setting '{setting}' is not configured")
