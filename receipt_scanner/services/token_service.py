"""
Authorization code exchange and profile enrichment.
"""

import structlog

from receipt_scanner.api.endpoints.identity import fetch_profile, request_token
from receipt_scanner.api.http_client import AsyncHttpClient
from receipt_scanner.exceptions import ProfileFetchError, ReceiptScannerError, TokenExchangeError
from receipt_scanner.models.auth import (
    AuthorizationRequest,
    DiscoveryDocument,
    Session,
    TokenResult,
    UserProfile,
)

logger = structlog.get_logger(__name__)

# Provider error bodies are kept for diagnostics, truncated.
_MAX_ERROR_BODY = 2048


class TokenExchanger:
    """
    Exchanges authorization codes for access tokens.

    Profile enrichment is best-effort: a failed profile fetch yields a
    token-only session.
    """

    def __init__(self, http: AsyncHttpClient, profile_url: str | None = None) -> None:
        """
        Args:
            http: HTTP client for API requests.
            profile_url: User profile endpoint. Enrichment is skipped if None.
        """
        self._http = http
        self._profile_url = profile_url

    async def exchange(
        self,
        discovery: DiscoveryDocument,
        client_id: str,
        code: str,
        request: AuthorizationRequest,
    ) -> TokenResult:
        """
        Exchange an authorization code for tokens.

        Args:
            discovery: Provider metadata (token endpoint).
            client_id: OAuth client identifier.
            code: Authorization code from the redirect.
            request: The request the code was issued for.

        Returns:
            TokenResult with the access token.

        Raises:
            TokenExchangeError: On a non-success status or a response without a token.
            NetworkError: If the token endpoint cannot be reached.
        """
        logger.info("Exchanging authorization code")
        response = await request_token(
            self._http,
            discovery.token_endpoint,
            client_id=client_id,
            code=code,
            redirect_uri=request.redirect_uri,
            code_verifier=request.code_verifier,
        )

        if not response.is_success:
            body = response.text[:_MAX_ERROR_BODY] or None
            logger.warning("Token exchange rejected", status_code=response.status_code)
            msg = f"Token exchange failed with status {response.status_code}"
            raise TokenExchangeError(
                msg, status_code=response.status_code, provider_error_body=body
            )

        try:
            payload = response.json()
        except ValueError as e:
            msg = "Token response is not valid JSON"
            raise TokenExchangeError(msg, status_code=response.status_code) from e

        if not isinstance(payload, dict) or not payload.get("access_token"):
            msg = "Token response carried no access token"
            raise TokenExchangeError(msg, status_code=response.status_code)

        logger.info("Authorization code exchanged")
        return TokenResult.from_response(payload)

    async def fetch_profile(self, access_token: str) -> UserProfile:
        """
        Fetch the user's profile summary.

        Raises:
            ProfileFetchError: If the profile cannot be fetched or parsed.
        """
        if self._profile_url is None:
            msg = "No profile endpoint configured"
            raise ProfileFetchError(msg)
        try:
            payload = await fetch_profile(self._http, self._profile_url, access_token)
        except ReceiptScannerError as e:
            msg = "Profile fetch failed"
            raise ProfileFetchError(msg, cause=type(e).__name__) from e
        return UserProfile.from_response(payload)

    async def create_session(self, token: TokenResult) -> Session:
        """
        Build a session from a token, enriched with the profile when available.

        Never fails because of the profile.
        """
        if self._profile_url is None:
            return Session.from_token(token.access_token)
        try:
            profile = await self.fetch_profile(token.access_token)
        except ProfileFetchError as e:
            logger.warning("Continuing without profile", error=str(e))
            return Session.from_token(token.access_token)

        session = Session.from_token(token.access_token, profile)
        logger.info("Signed in", user=session.display_label)
        return session
