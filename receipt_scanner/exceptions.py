"""
Receipt scanner exception hierarchy.

All exceptions inherit from ReceiptScannerError for easy catching.
"""

from typing import Any


class ReceiptScannerError(Exception):
    """Base exception for all receipt_scanner errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class ConfigurationError(ReceiptScannerError):
    """Static configuration is missing or invalid."""


class NetworkError(ReceiptScannerError):
    """Network-level error (connection failed, timeout)."""


class APIError(ReceiptScannerError):
    """A response was received with a non-success HTTP status."""

    def __init__(self, message: str, *, status_code: int, endpoint: str | None = None) -> None:
        super().__init__(message, status_code=status_code, endpoint=endpoint)
        self.status_code = status_code
        self.endpoint = endpoint


class StorageError(ReceiptScannerError):
    """Credential store could not be written."""


class AuthenticationError(ReceiptScannerError):
    """Sign-in failed or protected functionality was used without a session."""


class DiscoveryError(AuthenticationError):
    """Identity provider metadata is unusable."""


class StateMismatchError(AuthenticationError):
    """Redirect state does not match the pending authorization request."""

    def __init__(self, message: str = "Authorization state mismatch") -> None:
        super().__init__(message)


class AuthorizationCancelledError(AuthenticationError):
    """User dismissed the consent step."""

    def __init__(self, message: str = "Sign-in was cancelled") -> None:
        super().__init__(message)


class AuthorizationDeniedError(AuthenticationError):
    """Identity provider reported an error on redirect."""

    def __init__(self, message: str, *, error: str, description: str | None = None) -> None:
        super().__init__(message, error=error, description=description)
        self.error = error
        self.description = description


class AuthorizationSupersededError(AuthenticationError):
    """A newer authorization attempt replaced this one."""

    def __init__(self, message: str = "Authorization attempt was superseded") -> None:
        super().__init__(message)


class TokenExchangeError(AuthenticationError):
    """Token endpoint rejected the authorization code."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        provider_error_body: str | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.status_code = status_code
        self.provider_error_body = provider_error_body


class ProfileFetchError(ReceiptScannerError):
    """User profile could not be fetched."""


class UploadInProgressError(ReceiptScannerError):
    """A batch upload is already running."""

    def __init__(self, message: str = "An upload is already in progress") -> None:
        super().__init__(message)
