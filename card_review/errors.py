"""
Error taxonomy for card review.

Client errors carry the HTTP status (when there was a response) so callers can
tell an expired login from a vanished deck or an overloaded backend.
"""
from typing import Optional


class CardReviewError(Exception):
    """Base class for every error raised by card_review."""


class ClientError(CardReviewError):
    """A request made through RetryingClient failed."""

    kind = "http"
    retryable = False

    def __init__(self, message: str, *, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class AuthenticationError(ClientError):
    kind = "authentication"


class NotFoundError(ClientError):
    kind = "not_found"


class RateLimitError(ClientError):
    kind = "rate_limited"
    retryable = True


class ServerError(ClientError):
    kind = "server"
    retryable = True


class NetworkError(ClientError):
    """Transport failure before any response arrived (connect, read timeout, reset)."""

    kind = "network"
    retryable = True


class HttpError(ClientError):
    """Any other non-success status. Not retried."""

    kind = "http"


class CommitInProgressError(CardReviewError):
    """complete() was called while a previous commit is still running."""


class SessionClosedError(CardReviewError):
    """An operation was attempted on a session that has been closed."""


class InvalidTransition(CardReviewError, ValueError):
    """Requested transition is not allowed from the item's current state."""
