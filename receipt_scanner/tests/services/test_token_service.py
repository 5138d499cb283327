from urllib.parse import parse_qs

import httpx
import pytest

from receipt_scanner.api.http_client import AsyncHttpClient
from receipt_scanner.exceptions import NetworkError, ProfileFetchError, TokenExchangeError
from receipt_scanner.models.auth import AuthorizationRequest, DiscoveryDocument, TokenResult
from receipt_scanner.services.token_service import TokenExchanger
from receipt_scanner.tests.utils.constants import (
    ACCESS_TOKEN,
    CLIENT_ID,
    PROFILE_PAYLOAD,
    PROFILE_URL,
    REDIRECT_URI,
    TOKEN_ENDPOINT,
    TOKEN_PAYLOAD,
)
from receipt_scanner.tests.utils.mock_transport import MockTransport


@pytest.fixture
def auth_request() -> AuthorizationRequest:
    return AuthorizationRequest(
        state="state-1",
        code_verifier="verifier-" + "v" * 40,
        code_challenge="challenge",
        redirect_uri=REDIRECT_URI,
        authorization_url="https://login.example.com/authorize",
    )


@pytest.fixture
def exchanger(http: AsyncHttpClient) -> TokenExchanger:
    return TokenExchanger(http, PROFILE_URL)


# Exchange tests


@pytest.mark.asyncio
async def test_exchange_posts_code_and_verifier(
    exchanger: TokenExchanger,
    mock_transport: MockTransport,
    discovery: DiscoveryDocument,
    auth_request: AuthorizationRequest,
) -> None:
    mock_transport.add_response("POST", TOKEN_ENDPOINT, json_data=TOKEN_PAYLOAD)

    token = await exchanger.exchange(discovery, CLIENT_ID, "auth-code", auth_request)

    assert token.access_token == ACCESS_TOKEN
    assert token.expires_in == 3599
    [sent] = mock_transport.requests_to(TOKEN_ENDPOINT)
    form = {k: v[0] for k, v in parse_qs(sent.content.decode()).items()}
    assert form == {
        "grant_type": "authorization_code",
        "code": "auth-code",
        "redirect_uri": REDIRECT_URI,
        "client_id": CLIENT_ID,
        "code_verifier": auth_request.code_verifier,
    }
    assert sent.headers["Content-Type"] == "application/x-www-form-urlencoded"


@pytest.mark.asyncio
async def test_exchange_rejection_carries_provider_body(
    exchanger: TokenExchanger,
    mock_transport: MockTransport,
    discovery: DiscoveryDocument,
    auth_request: AuthorizationRequest,
) -> None:
    mock_transport.add_response(
        "POST",
        TOKEN_ENDPOINT,
        status_code=400,
        json_data={"error": "invalid_grant", "error_description": "AADSTS70008: expired"},
    )

    with pytest.raises(TokenExchangeError) as exc_info:
        await exchanger.exchange(discovery, CLIENT_ID, "auth-code", auth_request)

    assert exc_info.value.status_code == 400
    assert "invalid_grant" in exc_info.value.provider_error_body


@pytest.mark.asyncio
async def test_exchange_truncates_long_error_body(
    exchanger: TokenExchanger,
    mock_transport: MockTransport,
    discovery: DiscoveryDocument,
    auth_request: AuthorizationRequest,
) -> None:
    mock_transport.add_response("POST", TOKEN_ENDPOINT, status_code=502, content=b"x" * 5000)

    with pytest.raises(TokenExchangeError) as exc_info:
        await exchanger.exchange(discovery, CLIENT_ID, "auth-code", auth_request)

    assert len(exc_info.value.provider_error_body) == 2048


@pytest.mark.asyncio
async def test_exchange_network_failure(
    exchanger: TokenExchanger,
    mock_transport: MockTransport,
    discovery: DiscoveryDocument,
    auth_request: AuthorizationRequest,
) -> None:
    mock_transport.add_error("POST", TOKEN_ENDPOINT, httpx.ConnectError)

    with pytest.raises(NetworkError):
        await exchanger.exchange(discovery, CLIENT_ID, "auth-code", auth_request)


@pytest.mark.parametrize(
    "content",
    [b"not json", b"[]", b'{"token_type": "Bearer"}', b'{"access_token": ""}'],
)
@pytest.mark.asyncio
async def test_exchange_without_access_token_fails(
    exchanger: TokenExchanger,
    mock_transport: MockTransport,
    discovery: DiscoveryDocument,
    auth_request: AuthorizationRequest,
    content: bytes,
) -> None:
    mock_transport.add_response("POST", TOKEN_ENDPOINT, content=content)

    with pytest.raises(TokenExchangeError):
        await exchanger.exchange(discovery, CLIENT_ID, "auth-code", auth_request)


# Session creation tests


@pytest.mark.asyncio
async def test_create_session_with_profile(
    exchanger: TokenExchanger, mock_transport: MockTransport
) -> None:
    mock_transport.add_response("GET", PROFILE_URL, json_data=PROFILE_PAYLOAD)

    session = await exchanger.create_session(TokenResult(access_token=ACCESS_TOKEN))

    assert session.access_token == ACCESS_TOKEN
    assert session.display_name == "Adele Vance"
    assert session.given_name == "Adele"
    assert session.surname == "Vance"
    [sent] = mock_transport.requests_to(PROFILE_URL)
    assert sent.headers["Authorization"] == f"Bearer {ACCESS_TOKEN}"


@pytest.mark.asyncio
async def test_create_session_survives_profile_error(
    exchanger: TokenExchanger, mock_transport: MockTransport
) -> None:
    mock_transport.add_response("GET", PROFILE_URL, status_code=500, json_data={"error": "x"})

    session = await exchanger.create_session(TokenResult(access_token=ACCESS_TOKEN))

    assert session.access_token == ACCESS_TOKEN
    assert not session.has_profile


@pytest.mark.asyncio
async def test_create_session_survives_profile_network_failure(
    exchanger: TokenExchanger, mock_transport: MockTransport
) -> None:
    mock_transport.add_error("GET", PROFILE_URL, httpx.ReadTimeout)

    session = await exchanger.create_session(TokenResult(access_token=ACCESS_TOKEN))

    assert session.access_token == ACCESS_TOKEN
    assert session.display_name is None


@pytest.mark.asyncio
async def test_create_session_without_profile_endpoint(
    http: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    exchanger = TokenExchanger(http)

    session = await exchanger.create_session(TokenResult(access_token=ACCESS_TOKEN))

    assert session.access_token == ACCESS_TOKEN
    assert mock_transport.requests == []


@pytest.mark.asyncio
async def test_fetch_profile_wraps_errors(
    exchanger: TokenExchanger, mock_transport: MockTransport
) -> None:
    mock_transport.add_response("GET", PROFILE_URL, status_code=401, json_data={})

    with pytest.raises(ProfileFetchError):
        await exchanger.fetch_profile(ACCESS_TOKEN)
