"""
Receipt Scanner Python Client.

Signs a user in against an enterprise identity provider (OAuth2
authorization code with PKCE) and uploads staged receipt photos to an
ingestion endpoint.

Example:
    ```python
    from receipt_scanner import ReceiptScannerClient, ReceiptScannerConfig

    config = ReceiptScannerConfig(
        tenant_id="contoso.onmicrosoft.com",
        client_id="00000000-0000-0000-0000-000000000000",
        upload_url="https://ingest.example.com/upload-receipt",
    )

    async with ReceiptScannerClient(config) as client:
        if not client.is_authenticated:
            await client.sign_in()

        client.stage_assets(["/photos/receipt.jpg"])
        result = await client.upload_staged()
        print(result.summary)
    ```
"""

from receipt_scanner.client import ReceiptScannerClient
from receipt_scanner.config import ReceiptScannerConfig
from receipt_scanner.exceptions import (
    APIError,
    AuthenticationError,
    AuthorizationCancelledError,
    AuthorizationDeniedError,
    AuthorizationSupersededError,
    ConfigurationError,
    DiscoveryError,
    NetworkError,
    ProfileFetchError,
    ReceiptScannerError,
    StateMismatchError,
    StorageError,
    TokenExchangeError,
    UploadInProgressError,
)
from receipt_scanner.models.auth import (
    Authenticated,
    AuthorizationInFlight,
    Initializing,
    Session,
    SessionState,
    Unauthenticated,
)
from receipt_scanner.models.upload import BatchResult, BatchStatus, FailureReason, UploadItem

__version__ = "0.1.0"

__all__ = [
    # Main client
    "ReceiptScannerClient",
    "ReceiptScannerConfig",
    # Models
    "Session",
    "SessionState",
    "Initializing",
    "Unauthenticated",
    "AuthorizationInFlight",
    "Authenticated",
    "UploadItem",
    "FailureReason",
    "BatchResult",
    "BatchStatus",
    # Exceptions
    "ReceiptScannerError",
    "ConfigurationError",
    "NetworkError",
    "APIError",
    "StorageError",
    "AuthenticationError",
    "DiscoveryError",
    "StateMismatchError",
    "AuthorizationCancelledError",
    "AuthorizationDeniedError",
    "AuthorizationSupersededError",
    "TokenExchangeError",
    "ProfileFetchError",
    "UploadInProgressError",
]
