"""
PKCE authorization step.

Builds the authorization request and waits for the identity provider to
redirect back with a code.
"""

import asyncio
import base64
import hashlib
import hmac
import inspect
import secrets
import webbrowser
from collections import deque
from collections.abc import Awaitable, Callable, Iterable
from urllib.parse import parse_qs, urlencode, urlparse

import structlog

from receipt_scanner.exceptions import AuthorizationSupersededError, StateMismatchError
from receipt_scanner.models.auth import (
    AuthorizationCancelled,
    AuthorizationCode,
    AuthorizationFailed,
    AuthorizationRequest,
    AuthorizationResult,
    DiscoveryDocument,
)

logger = structlog.get_logger(__name__)

ConsentLauncher = Callable[[str], Awaitable[None] | None]
PendingConsent = tuple[AuthorizationRequest, "asyncio.Future[AuthorizationResult]"]

# 64 random bytes encode to 86 URL-safe characters (RFC 7636 allows 43..128).
_VERIFIER_BYTES = 64
_STATE_BYTES = 32
# Error the provider returns when the user declines or closes the consent page.
_USER_CANCEL_ERROR = "access_denied"
# Superseded attempts whose late redirect is still recognised and ignored.
_SUPERSEDED_HISTORY = 16


def generate_code_verifier() -> str:
    """Generate a high-entropy PKCE code verifier."""
    return secrets.token_urlsafe(_VERIFIER_BYTES)


def derive_code_challenge(code_verifier: str) -> str:
    """Derive the S256 challenge: base64url(SHA-256(verifier)) without padding."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def parse_redirect(url: str) -> AuthorizationResult:
    """
    Parse the redirect URL the provider sent the user back to.

    Args:
        url: Full redirect URL including the query string.

    Returns:
        AuthorizationCode, AuthorizationCancelled or AuthorizationFailed.
    """
    query = parse_qs(urlparse(url).query)

    def param(name: str) -> str | None:
        values = query.get(name)
        return values[0] if values else None

    state = param("state") or ""
    error = param("error")
    if error == _USER_CANCEL_ERROR:
        return AuthorizationCancelled(state=state)
    if error:
        return AuthorizationFailed(state=state, error=error, description=param("error_description"))

    code = param("code")
    if not code:
        return AuthorizationFailed(
            state=state, error="invalid_response", description="Redirect carried no code"
        )
    return AuthorizationCode(state=state, code=code)


async def open_in_browser(url: str) -> None:
    """Open the consent page in the system browser."""
    await asyncio.to_thread(webbrowser.open, url)


class PkceAuthorizer:
    """
    Drives the user through the provider's consent step.

    Only one attempt awaits consent at a time. Starting another supersedes
    the pending one; a late redirect for a superseded attempt is ignored.
    """

    def __init__(self, launcher: ConsentLauncher | None = None) -> None:
        """
        Args:
            launcher: Opens the authorization URL. Defaults to the system browser.
        """
        self._launcher = launcher or open_in_browser
        self._pending: PendingConsent | None = None
        self._superseded_states: deque[str] = deque(maxlen=_SUPERSEDED_HISTORY)

    @property
    def pending_request(self) -> AuthorizationRequest | None:
        """The request currently awaiting consent, if any."""
        return self._pending[0] if self._pending is not None else None

    def begin_authorization(
        self,
        discovery: DiscoveryDocument,
        client_id: str,
        scopes: Iterable[str],
        redirect_uri: str,
    ) -> AuthorizationRequest:
        """
        Build a fresh authorization request.

        Args:
            discovery: Provider metadata.
            client_id: OAuth client identifier.
            scopes: Requested scopes.
            redirect_uri: Redirect URI registered for the client.

        Returns:
            AuthorizationRequest with new state and PKCE pair.
        """
        state = secrets.token_urlsafe(_STATE_BYTES)
        code_verifier = generate_code_verifier()
        code_challenge = derive_code_challenge(code_verifier)

        params = {
            "response_type": "code",
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "scope": " ".join(scopes),
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        separator = "&" if "?" in discovery.authorization_endpoint else "?"
        authorization_url = f"{discovery.authorization_endpoint}{separator}{urlencode(params)}"

        return AuthorizationRequest(
            state=state,
            code_verifier=code_verifier,
            code_challenge=code_challenge,
            redirect_uri=redirect_uri,
            authorization_url=authorization_url,
        )

    async def await_user_consent(self, request: AuthorizationRequest) -> AuthorizationResult:
        """
        Open the consent page and wait for the redirect.

        Waits indefinitely; the only way out besides a redirect is a newer
        attempt, ``cancel_authorization`` or task cancellation.

        Args:
            request: Request built by ``begin_authorization``.

        Returns:
            The redirect result, bound to ``request.state``.

        Raises:
            StateMismatchError: If the redirect carries a different state.
            AuthorizationSupersededError: If a newer attempt replaced this one.
        """
        self._supersede_pending()

        future: asyncio.Future[AuthorizationResult] = asyncio.get_running_loop().create_future()
        self._pending = (request, future)

        try:
            logger.info("Awaiting user consent")
            launched = self._launcher(request.authorization_url)
            if inspect.isawaitable(launched):
                await launched
            result = await future
        finally:
            if self._pending is not None and self._pending[1] is future:
                self._pending = None

        if not hmac.compare_digest(result.state.encode(), request.state.encode()):
            logger.warning("Redirect state does not match the pending request")
            raise StateMismatchError()
        return result

    def handle_redirect(self, url: str) -> bool:
        """
        Deliver the provider's redirect to the pending attempt.

        Args:
            url: Redirect URL received by the application.

        Returns:
            True if a pending attempt received it, False if it was ignored.
        """
        result = parse_redirect(url)
        if result.state and result.state in self._superseded_states:
            self._superseded_states.remove(result.state)
            logger.info("Ignoring redirect for a superseded attempt")
            return False
        return self._resolve(result)

    def cancel_authorization(self) -> bool:
        """
        Report that the user dismissed the consent page.

        Returns:
            True if a pending attempt was cancelled.
        """
        if self._pending is None:
            return False
        request, _ = self._pending
        return self._resolve(AuthorizationCancelled(state=request.state))

    def abandon(self) -> None:
        """Drop the pending attempt, if any, as if superseded."""
        self._supersede_pending()

    def _resolve(self, result: AuthorizationResult) -> bool:
        if self._pending is None:
            logger.warning("Ignoring redirect with no pending authorization")
            return False
        _, future = self._pending
        if future.done():
            return False
        future.set_result(result)
        return True

    def _supersede_pending(self) -> None:
        if self._pending is None:
            return
        request, future = self._pending
        self._pending = None
        self._superseded_states.append(request.state)
        if not future.done():
            future.set_exception(AuthorizationSupersededError())
        logger.info("Superseded pending authorization attempt")
