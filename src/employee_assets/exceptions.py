"""Custom exceptions for the Employee Assets application."""

DEFAULT_SESSION_EXPIRED_MESSAGE = "Your session has expired. Please log in again."


class GraphClientError(Exception):
    """Base exception for Microsoft Graph client failures."""


class SessionExpiredError(GraphClientError):
    """Raised when the access token expired or was rejected.

    Callers should not surface this as a plain error message; the
    session-timeout callback owns the re-authentication prompt.
    """

    def __init__(self, message: str = DEFAULT_SESSION_EXPIRED_MESSAGE) -> None:
        super().__init__(message)


class NotAuthenticatedError(SessionExpiredError):
    """Raised locally when a request is attempted without an access token."""

    def __init__(self, message: str = "Not authenticated. Call authenticate() first.") -> None:
        super().__init__(message)


class GraphNotFoundError(GraphClientError):
    """Raised when a site, list, column or item could not be found."""


class GraphTransportError(GraphClientError):
    """Raised for any other non-successful Graph response or transport failure."""

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(GraphClientError):
    """Raised when the OAuth flow fails, is cancelled, or is misconfigured."""


class ConfigurationError(Exception):
    """Raised when required application settings are missing."""


class ResolutionError(Exception):
    """Raised when an identity or lookup reference could not be resolved."""
