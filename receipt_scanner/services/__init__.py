"""
Business logic services for the receipt scanner.
"""

from receipt_scanner.services.batch_uploader import BatchUploader
from receipt_scanner.services.credential_store import (
    CredentialStore,
    KeyringCredentialStore,
    MemoryCredentialStore,
)
from receipt_scanner.services.discovery import DiscoveryResolver
from receipt_scanner.services.pkce import PkceAuthorizer
from receipt_scanner.services.session_manager import SessionManager
from receipt_scanner.services.token_service import TokenExchanger
from receipt_scanner.services.upload_queue import UploadQueue

__all__ = [
    "BatchUploader",
    "CredentialStore",
    "DiscoveryResolver",
    "KeyringCredentialStore",
    "MemoryCredentialStore",
    "PkceAuthorizer",
    "SessionManager",
    "TokenExchanger",
    "UploadQueue",
]
