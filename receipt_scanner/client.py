"""
Receipt scanner client facade.

This is the main entry point for users of the library. It wires the
session lifecycle and the upload pipeline together by explicit injection
and gates uploads on an authenticated session.
"""

import asyncio
from collections.abc import Iterable
from typing import Self

import httpx
import structlog

from receipt_scanner.api.http_client import AsyncHttpClient
from receipt_scanner.config import ReceiptScannerConfig
from receipt_scanner.models.auth import Session, SessionState
from receipt_scanner.models.upload import BatchResult, UploadItem
from receipt_scanner.services.batch_uploader import AssetReader, BatchUploader
from receipt_scanner.services.credential_store import CredentialStore, KeyringCredentialStore
from receipt_scanner.services.discovery import DiscoveryResolver
from receipt_scanner.services.pkce import ConsentLauncher, PkceAuthorizer
from receipt_scanner.services.session_manager import SessionManager
from receipt_scanner.services.token_service import TokenExchanger
from receipt_scanner.services.upload_queue import UploadQueue

logger = structlog.get_logger(__name__)


class ReceiptScannerClient:
    """
    Async client for signing in and uploading receipt photos.

    Example:
        ```python
        config = ReceiptScannerConfig.from_env()

        async with ReceiptScannerClient(config) as client:
            # Restored from the keyring, or sign-in was started in the browser.
            # Deliver the redirect when the app receives it:
            client.handle_redirect(redirect_url)

            client.stage_assets(["/photos/receipt1.jpg", "/photos/receipt2.jpg"])
            result = await client.upload_staged()
            print(result.summary)
        ```

    Args:
        config: Client configuration.
        credential_store: Token persistence. Defaults to the OS keyring.
        launcher: Opens the consent page. Defaults to the system browser.
        reader: Reads staged assets. Defaults to the local filesystem.
        transport: Optional httpx transport for testing (mock transport).
    """

    def __init__(
        self,
        config: ReceiptScannerConfig,
        *,
        credential_store: CredentialStore | None = None,
        launcher: ConsentLauncher | None = None,
        reader: AssetReader | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._credential_store = credential_store or KeyringCredentialStore(
            service_name=config.credential_service, key=config.credential_key
        )
        self._launcher = launcher
        self._reader = reader
        self._transport = transport

        self._http: AsyncHttpClient | None = None
        self._session_manager: SessionManager | None = None
        self._authorizer: PkceAuthorizer | None = None
        self._uploader: BatchUploader | None = None
        self._queue = UploadQueue()

        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def __aenter__(self) -> Self:
        """Enter async context and restore the session."""
        await self._ensure_initialized()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        """Exit async context."""
        await self.close()

    async def _ensure_initialized(self) -> None:
        async with self._init_lock:
            if self._initialized:
                return

            self._http = AsyncHttpClient(self._config, transport=self._transport)
            await self._http.__aenter__()

            self._authorizer = PkceAuthorizer(self._launcher)
            self._session_manager = SessionManager(
                self._config,
                self._credential_store,
                DiscoveryResolver(self._http, self._config),
                self._authorizer,
                TokenExchanger(self._http, self._config.profile_url),
            )
            self._uploader = BatchUploader(
                self._http, reader=self._reader, timeout=self._config.upload_timeout
            )

            self._initialized = True
            logger.debug("Client initialized")

            await self._session_manager.start()

    async def close(self) -> None:
        """Close the client and release resources."""
        async with self._init_lock:
            if self._session_manager:
                await self._session_manager.close()
                self._session_manager = None

            if self._http:
                await self._http.__aexit__(None, None, None)
                self._http = None

            self._authorizer = None
            self._uploader = None
            self._initialized = False
            logger.debug("Client closed")

    @property
    def session_manager(self) -> SessionManager:
        """The session lifecycle, for observing state and subscribing to transitions."""
        if self._session_manager is None:
            raise RuntimeError("Client not initialized")
        return self._session_manager

    @property
    def state(self) -> SessionState:
        return self.session_manager.state

    @property
    def session(self) -> Session | None:
        return self.session_manager.session

    @property
    def is_authenticated(self) -> bool:
        return self._session_manager is not None and self._session_manager.is_authenticated

    @property
    def queue(self) -> UploadQueue:
        return self._queue

    @property
    def is_uploading(self) -> bool:
        return self._uploader is not None and self._uploader.is_uploading

    async def sign_in(self) -> SessionState:
        """
        Start an interactive sign-in and wait for it to finish.

        Returns:
            Authenticated on success, Unauthenticated with the error otherwise.
        """
        await self._ensure_initialized()
        return await self.session_manager.sign_in()

    async def sign_out(self) -> None:
        """Sign out and forget the stored credential."""
        if self._session_manager:
            await self._session_manager.sign_out()

    def handle_redirect(self, url: str) -> bool:
        """
        Deliver the identity provider's redirect to the pending sign-in.

        Returns:
            True if a pending sign-in received it.
        """
        if self._authorizer is None:
            raise RuntimeError("Client not initialized")
        return self._authorizer.handle_redirect(url)

    def cancel_sign_in(self) -> bool:
        """Report that the user closed the consent page."""
        if self._authorizer is None:
            raise RuntimeError("Client not initialized")
        return self._authorizer.cancel_authorization()

    def stage_assets(self, handles: Iterable[UploadItem | str]) -> list[UploadItem]:
        """Add captured or picked assets to the upload queue."""
        return self._queue.add(handles)

    def remove_staged(self, index: int) -> UploadItem | None:
        """Remove a staged asset by position; stale indexes are ignored."""
        return self._queue.remove_at(index)

    def clear_staged(self) -> None:
        """Remove every staged asset."""
        self._queue.clear()

    async def upload_staged(self) -> BatchResult:
        """
        Upload every staged asset to the configured endpoint.

        Returns:
            BatchResult; see ``BatchResult.summary`` for display.

        Raises:
            AuthenticationError: If not signed in.
            UploadInProgressError: If an upload is already running.
        """
        session = self.session_manager.require_session()
        if self._uploader is None:
            raise RuntimeError("Client not initialized")
        return await self._uploader.upload_queue(
            self._queue, self._config.upload_url, session.access_token
        )
