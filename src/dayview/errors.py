"""Error taxonomy shared by adapters, the sync cache and the coordinator."""


class DayviewError(Exception):
    """Base class for every error raised by dayview."""

    pass


class ConfigurationError(DayviewError):
    """Raised when required configuration is missing. Never retried."""

    pass


class TokenExchangeError(DayviewError):
    """Raised when an authorization code cannot be exchanged for tokens."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class TokenRefreshError(DayviewError):
    """Raised when a refresh token is rejected. Terminal for that token."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class NetworkError(DayviewError):
    """Raised when the transport fails before a response arrives."""

    pass


class RemoteAPIError(DayviewError):
    """Raised for a non-success response from the remote provider."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class AuthError(RemoteAPIError):
    """401/403 from the remote provider. Never retried by the cache."""

    pass


class ServerError(RemoteAPIError):
    """5xx or throttling from the remote provider. Retried with backoff."""

    pass


class TaskCompletionError(DayviewError):
    """Raised when a task could not be marked as completed."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


RETRYABLE_ERRORS = (NetworkError, ServerError)
