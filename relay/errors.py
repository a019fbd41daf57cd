"""Error taxonomy shared by the dispatch service, the OAuth proxy and the HTTP layer.

Every error carries the HTTP status it maps to and a message that is always
safe to show to callers. ``details`` holds raw library text; it is rendered
only outside production and only for classes that set ``expose_details``.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for errors that map onto the ``{success: false}`` envelope."""

    status_code: int = 500
    expose_details: bool = False

    def __init__(self, message: str, *, status_code: int | None = None, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code


class ValidationError(RelayError):
    """The caller sent an incomplete or malformed request."""

    status_code = 400


class AuthError(RelayError):
    """The mail provider rejected the server's credentials."""

    status_code = 401


class ConnectivityError(RelayError):
    """The mail provider could not be reached. Callers may retry later."""

    status_code = 503


class ExchangeError(RelayError):
    """An identity provider refused a token exchange.

    ``status_code`` is the provider's own 4xx or 5xx status; anything else
    the provider answers with becomes 502.
    """

    status_code = 502
    expose_details = True


class UnclassifiedError(RelayError):
    """A delivery failure that is neither an auth nor a connectivity problem."""

    status_code = 500
    expose_details = True


class FatalConfigError(RelayError):
    """Configuration the process cannot start with."""

    status_code = 500


class RateLimitError(RelayError):
    """A client exceeded its admission budget for the current window."""

    status_code = 429

    def __init__(self, message: str, *, retry_after: int, limit: int) -> None:
        super().__init__(message)
        self.retry_after = retry_after
        self.limit = limit
