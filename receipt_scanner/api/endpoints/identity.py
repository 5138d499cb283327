"""Identity provider endpoints: discovery, token exchange and profile."""

from typing import Any

import httpx

from receipt_scanner.api.http_client import AsyncHttpClient


async def fetch_discovery_document(http: AsyncHttpClient, discovery_url: str) -> dict[str, Any]:
    """
    Get OpenID provider metadata.

    Args:
        http: Configured async HTTP client.
        discovery_url: ``.well-known/openid-configuration`` URL.

    Returns:
        Metadata including authorization_endpoint and token_endpoint.
    """
    return await http.request_json("GET", discovery_url)


async def request_token(
    http: AsyncHttpClient,
    token_endpoint: str,
    *,
    client_id: str,
    code: str,
    redirect_uri: str,
    code_verifier: str,
) -> httpx.Response:
    """
    Exchange an authorization code at the token endpoint.

    The raw response is returned so the caller can report the provider's
    error body on failure.

    Args:
        http: Configured async HTTP client.
        token_endpoint: Token URL from the discovery document.
        client_id: OAuth client identifier.
        code: Authorization code from the redirect.
        redirect_uri: Redirect URI used in the authorization request.
        code_verifier: PKCE verifier of the same request.
    """
    return await http.request(
        "POST",
        token_endpoint,
        data={
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": client_id,
            "code_verifier": code_verifier,
        },
    )


async def fetch_profile(
    http: AsyncHttpClient, profile_url: str, access_token: str
) -> dict[str, Any]:
    """Get the signed-in user's profile (displayName, givenName, surname)."""
    return await http.request_json("GET", profile_url, bearer_token=access_token)
