"""
Session lifecycle.

Orchestrates discovery, PKCE consent, code exchange and credential
persistence into one state machine:

    Initializing -> Unauthenticated | Authenticated
    Unauthenticated -> AuthorizationInFlight -> Authenticated | Unauthenticated
    Authenticated -> Unauthenticated (sign-out)
"""

import asyncio
from collections.abc import Callable

import structlog

from receipt_scanner.config import ReceiptScannerConfig
from receipt_scanner.exceptions import (
    AuthenticationError,
    AuthorizationCancelledError,
    AuthorizationDeniedError,
    AuthorizationSupersededError,
    ReceiptScannerError,
    StorageError,
)
from receipt_scanner.models.auth import (
    Authenticated,
    AuthorizationCancelled,
    AuthorizationFailed,
    AuthorizationInFlight,
    Initializing,
    Session,
    SessionState,
    Unauthenticated,
)
from receipt_scanner.services.credential_store import CredentialStore
from receipt_scanner.services.discovery import DiscoveryResolver
from receipt_scanner.services.pkce import PkceAuthorizer
from receipt_scanner.services.token_service import TokenExchanger

logger = structlog.get_logger(__name__)

StateListener = Callable[[SessionState], None]


class SessionManager:
    """
    Owns the authentication state of the application.

    Consumers observe ``state`` (or subscribe to transitions) and invoke
    ``sign_in``/``sign_out``; nothing else is exposed.

    Concurrency:
    - Each sign-in attempt gets an increasing attempt number and only the
      latest attempt may apply a transition. A superseded attempt ends
      silently without touching state.
    - The credential store is written only on entering Authenticated and
      cleared only on sign-out.
    """

    def __init__(
        self,
        config: ReceiptScannerConfig,
        credential_store: CredentialStore,
        resolver: DiscoveryResolver,
        authorizer: PkceAuthorizer,
        exchanger: TokenExchanger,
    ) -> None:
        """
        Args:
            config: Client configuration (tenant, client, scopes, redirect URI).
            credential_store: Persistence for the access token.
            resolver: Discovery document resolver.
            authorizer: PKCE consent driver.
            exchanger: Code exchanger and profile fetcher.
        """
        self._config = config
        self._store = credential_store
        self._resolver = resolver
        self._authorizer = authorizer
        self._exchanger = exchanger

        self._state: SessionState = Initializing()
        self._listeners: list[StateListener] = []
        self._attempt = 0
        self._auto_sign_in_started = False
        self._auto_sign_in_task: asyncio.Task[SessionState] | None = None

    @property
    def state(self) -> SessionState:
        """Current lifecycle state."""
        return self._state

    @property
    def session(self) -> Session | None:
        """Current session, if authenticated."""
        if isinstance(self._state, Authenticated):
            return self._state.session
        return None

    @property
    def is_authenticated(self) -> bool:
        return isinstance(self._state, Authenticated)

    @property
    def auto_sign_in_started(self) -> bool:
        """Whether the one-shot automatic sign-in has been triggered."""
        return self._auto_sign_in_started

    def require_session(self) -> Session:
        """
        Return the current session or fail.

        Raises:
            AuthenticationError: If not authenticated.
        """
        session = self.session
        if session is None:
            msg = "Not authenticated. Sign in first."
            raise AuthenticationError(msg)
        return session

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a callback invoked with the new state on every transition.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def start(self) -> SessionState:
        """
        Restore the persisted session and auto-start sign-in once if none.

        The automatic sign-in runs as a background task so the caller is
        not blocked on the consent step.
        """
        state = await self.restore()
        if (
            self._config.auto_sign_in
            and isinstance(state, Unauthenticated)
            and not self._auto_sign_in_started
        ):
            self._auto_sign_in_started = True
            logger.info("Starting automatic sign-in")
            self._auto_sign_in_task = asyncio.create_task(self.sign_in())
        return self._state

    async def restore(self) -> SessionState:
        """
        Classify the persisted credential as Authenticated or Unauthenticated.

        A present, non-empty token yields a token-only session. No network
        call is made. Ignored while a sign-in is in flight.
        """
        if isinstance(self._state, AuthorizationInFlight):
            logger.debug("Skipping restore, sign-in in progress")
            return self._state

        token = await self._store.load()
        if token:
            session = self.session
            if session is None or session.access_token != token:
                session = Session(access_token=token)
            self._transition(Authenticated(session=session))
            logger.info("Session restored")
        else:
            self._transition(Unauthenticated())
            logger.info("No stored session")
        return self._state

    async def sign_in(self) -> SessionState:
        """
        Run discovery, consent and code exchange.

        A failure at any stage returns to Unauthenticated with the error
        attached; nothing is retried. Starting while another attempt is in
        flight supersedes it.

        Returns:
            The state after the attempt.
        """
        if isinstance(self._state, Initializing):
            logger.warning("Sign-in requested before session restore completed")
            return self._state
        if isinstance(self._state, Authenticated):
            logger.debug("Sign-in requested while already authenticated")
            return self._state

        self._attempt += 1
        attempt = self._attempt
        self._transition(AuthorizationInFlight())

        try:
            session = await self._authorize(attempt)
        except AuthorizationSupersededError:
            logger.debug("Sign-in attempt superseded", attempt=attempt)
            return self._state
        except ReceiptScannerError as e:
            return self._fail(attempt, e)
        except Exception as e:
            error = AuthenticationError("Sign-in failed")
            error.__cause__ = e
            return self._fail(attempt, error)

        if attempt != self._attempt:
            logger.debug("Discarding result of a superseded sign-in", attempt=attempt)
            return self._state

        await self._persist(session)
        if attempt != self._attempt:
            logger.debug("Sign-in superseded while persisting", attempt=attempt)
            await self._discard_persisted(session)
            return self._state

        self._transition(Authenticated(session=session))
        return self._state

    async def sign_out(self) -> None:
        """
        Clear the stored credential and return to Unauthenticated.

        Always succeeds locally. Does not re-arm the automatic sign-in.
        """
        logger.info("Signing out")
        self._attempt += 1
        self._authorizer.abandon()
        await self._store.clear()
        self._transition(Unauthenticated())

    async def close(self) -> None:
        """Abandon any pending consent and cancel the background automatic sign-in."""
        self._attempt += 1
        self._authorizer.abandon()
        task = self._auto_sign_in_task
        self._auto_sign_in_task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _authorize(self, attempt: int) -> Session:
        discovery = await self._resolver.resolve(self._config.tenant_id)
        self._check_current(attempt)
        request = self._authorizer.begin_authorization(
            discovery,
            self._config.client_id,
            self._config.scopes,
            self._config.redirect_uri,
        )
        self._transition(AuthorizationInFlight(request=request))

        result = await self._authorizer.await_user_consent(request)
        if isinstance(result, AuthorizationCancelled):
            raise AuthorizationCancelledError()
        if isinstance(result, AuthorizationFailed):
            msg = result.description or f"Authorization failed: {result.error}"
            raise AuthorizationDeniedError(msg, error=result.error, description=result.description)

        token = await self._exchanger.exchange(
            discovery, self._config.client_id, result.code, request
        )
        self._check_current(attempt)
        return await self._exchanger.create_session(token)

    def _check_current(self, attempt: int) -> None:
        if attempt != self._attempt:
            raise AuthorizationSupersededError()

    def _fail(self, attempt: int, error: ReceiptScannerError) -> SessionState:
        if attempt == self._attempt:
            logger.error("Sign-in failed", error=str(error), error_type=type(error).__name__)
            self._transition(Unauthenticated(error=error))
        return self._state

    async def _persist(self, session: Session) -> None:
        try:
            await self._store.save(session.access_token)
        except StorageError as e:
            logger.warning("Session will not survive restart", error=str(e))

    async def _discard_persisted(self, session: Session) -> None:
        # Only wipe the late write; a newer sign-in may already own the entry.
        if await self._store.load() == session.access_token:
            await self._store.clear()

    def _transition(self, state: SessionState) -> None:
        if state == self._state:
            return
        previous = type(self._state).__name__
        self._state = state
        logger.debug("Session state changed", previous=previous, current=type(state).__name__)
        for listener in list(self._listeners):
            listener(state)
