"""
Domain models for the receipt scanner.

These are immutable (frozen) dataclasses representing the core domain concepts.
"""

from receipt_scanner.models.auth import (
    Authenticated,
    AuthorizationCancelled,
    AuthorizationCode,
    AuthorizationFailed,
    AuthorizationInFlight,
    AuthorizationRequest,
    AuthorizationResult,
    DiscoveryDocument,
    Initializing,
    Session,
    SessionState,
    TokenResult,
    Unauthenticated,
    UserProfile,
)
from receipt_scanner.models.upload import (
    BatchResult,
    BatchStatus,
    FailureKind,
    FailureReason,
    UploadItem,
    UploadOutcome,
)

__all__ = [
    # Auth
    "DiscoveryDocument",
    "AuthorizationRequest",
    "AuthorizationResult",
    "AuthorizationCode",
    "AuthorizationCancelled",
    "AuthorizationFailed",
    "TokenResult",
    "UserProfile",
    "Session",
    # Session states
    "SessionState",
    "Initializing",
    "Unauthenticated",
    "AuthorizationInFlight",
    "Authenticated",
    # Upload
    "UploadItem",
    "FailureKind",
    "FailureReason",
    "UploadOutcome",
    "BatchStatus",
    "BatchResult",
]
