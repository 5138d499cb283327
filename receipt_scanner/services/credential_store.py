"""
Persistence of the access token.

Exactly one secret is stored, under a fixed key. Backends only implement
raw read/write/delete; the error policy lives in the base class.
"""

import asyncio
from abc import ABC, abstractmethod

import keyring
import structlog
from keyring.errors import PasswordDeleteError

from receipt_scanner.exceptions import StorageError

logger = structlog.get_logger(__name__)


class CredentialStore(ABC):
    """
    Durable storage for the access token.

    - ``load`` never raises; any read failure is logged and reads as absent.
    - ``save`` raises StorageError on write failure and is not retried.
    - ``clear`` is best-effort; failures are logged and swallowed.
    """

    async def load(self) -> str | None:
        """Return the stored token, or None if absent or unreadable."""
        try:
            token = await self._read()
        except Exception as e:
            logger.error("Failed to read stored credential", error_type=type(e).__name__)
            return None
        return token or None

    async def save(self, token: str) -> None:
        """
        Persist the token, replacing any previous one.

        Raises:
            StorageError: If the backend could not write.
        """
        try:
            await self._write(token)
        except Exception as e:
            msg = "Failed to store credential"
            raise StorageError(msg, error_type=type(e).__name__) from e

    async def clear(self) -> None:
        """Remove the stored token, ignoring backend failures."""
        try:
            await self._delete()
        except Exception as e:
            logger.warning("Failed to clear stored credential", error_type=type(e).__name__)

    @abstractmethod
    async def _read(self) -> str | None: ...

    @abstractmethod
    async def _write(self, token: str) -> None: ...

    @abstractmethod
    async def _delete(self) -> None: ...


class KeyringCredentialStore(CredentialStore):
    """
    Token store backed by the OS keyring (Keychain, Secret Service, Credential Locker).

    Args:
        service_name: Keyring service the token is scoped to.
        key: Fixed entry name within the service.
    """

    def __init__(self, service_name: str = "receipt-scanner", key: str = "accessToken") -> None:
        self._service_name = service_name
        self._key = key

    async def _read(self) -> str | None:
        return await asyncio.to_thread(keyring.get_password, self._service_name, self._key)

    async def _write(self, token: str) -> None:
        await asyncio.to_thread(keyring.set_password, self._service_name, self._key, token)

    async def _delete(self) -> None:
        try:
            await asyncio.to_thread(keyring.delete_password, self._service_name, self._key)
        except PasswordDeleteError:
            logger.debug("No stored credential to clear")


class MemoryCredentialStore(CredentialStore):
    """In-memory token store for tests and ephemeral sessions."""

    def __init__(self, token: str | None = None) -> None:
        self._token = token

    async def _read(self) -> str | None:
        return self._token

    async def _write(self, token: str) -> None:
        self._token = token

    async def _delete(self) -> None:
        self._token = None
