"""Tests for AsyncHttpClient."""

import httpx
import pytest

from receipt_scanner.api.http_client import AsyncHttpClient, sanitize_for_log
from receipt_scanner.config import ReceiptScannerConfig
from receipt_scanner.exceptions import APIError, NetworkError
from receipt_scanner.tests.utils.mock_transport import MockTransport

URL = "https://api.example.com/resource"


# Sanitizer tests


def test_sanitize_for_log_masks_secrets() -> None:
    data = {"grant_type": "authorization_code", "code": "abc", "code_verifier": "xyz"}

    assert sanitize_for_log(data) == {
        "grant_type": "authorization_code",
        "code": "***",
        "code_verifier": "***",
    }


def test_sanitize_for_log_recurses_into_nested_values() -> None:
    data = {"outer": {"access_token": "t"}, "items": [{"refresh_token": "r"}, "plain"]}

    assert sanitize_for_log(data) == {
        "outer": {"access_token": "***"},
        "items": [{"refresh_token": "***"}, "plain"],
    }


def test_sanitize_for_log_does_not_mutate_input() -> None:
    data = {"access_token": "t"}

    sanitize_for_log(data)

    assert data == {"access_token": "t"}


# Request tests


@pytest.mark.asyncio
async def test_request_requires_open_client(config: ReceiptScannerConfig) -> None:
    client = AsyncHttpClient(config)

    with pytest.raises(RuntimeError):
        await client.request("GET", URL)


@pytest.mark.asyncio
async def test_request_sends_bearer_token(
    http: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response("GET", URL, json_data={})

    await http.request("GET", URL, bearer_token="tok1")

    assert mock_transport.requests[0].headers["authorization"] == "Bearer tok1"


@pytest.mark.asyncio
async def test_request_omits_authorization_without_token(
    http: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response("GET", URL, json_data={})

    await http.request("GET", URL)

    request = mock_transport.requests[0]
    assert "authorization" not in request.headers
    assert request.headers["user-agent"].startswith("ReceiptScanner-Python")


@pytest.mark.asyncio
async def test_request_returns_non_success_response(
    http: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response("GET", URL, status_code=503)

    response = await http.request("GET", URL)

    assert response.status_code == 503


@pytest.mark.parametrize(
    "error", [httpx.ConnectError, httpx.ReadTimeout, httpx.TooManyRedirects, httpx.DecodingError]
)
@pytest.mark.asyncio
async def test_request_converts_request_errors(
    http: AsyncHttpClient,
    mock_transport: MockTransport,
    error: type[httpx.RequestError],
) -> None:
    mock_transport.add_error("GET", URL, error)

    with pytest.raises(NetworkError) as exc_info:
        await http.request("GET", URL)

    assert isinstance(exc_info.value.__cause__, error)


@pytest.mark.asyncio
async def test_request_converts_undecodable_body(
    http: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(
        "GET", URL, content=b"not gzip", headers={"Content-Encoding": "gzip"}
    )

    with pytest.raises(NetworkError) as exc_info:
        await http.request("GET", URL)

    assert isinstance(exc_info.value.__cause__, httpx.DecodingError)


@pytest.mark.asyncio
async def test_request_sends_form_data(
    http: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response("POST", URL, json_data={})

    await http.request("POST", URL, data={"grant_type": "authorization_code"})

    request = mock_transport.requests[0]
    assert request.headers["content-type"] == "application/x-www-form-urlencoded"
    assert request.content == b"grant_type=authorization_code"


# JSON request tests


@pytest.mark.asyncio
async def test_request_json_returns_object(
    http: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response("GET", URL, json_data={"key": "value"})

    assert await http.request_json("GET", URL) == {"key": "value"}


@pytest.mark.asyncio
async def test_request_json_raises_api_error_on_status(
    http: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response("GET", URL, status_code=404, json_data={"error": "nope"})

    with pytest.raises(APIError) as exc_info:
        await http.request_json("GET", URL)

    assert exc_info.value.status_code == 404
    assert exc_info.value.endpoint == URL


@pytest.mark.asyncio
async def test_request_json_raises_api_error_on_invalid_json(
    http: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response("GET", URL, content=b"<html>oops</html>")

    with pytest.raises(APIError):
        await http.request_json("GET", URL)


@pytest.mark.asyncio
async def test_request_json_rejects_non_object(
    http: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response("GET", URL, json_data=[1, 2, 3])

    with pytest.raises(APIError):
        await http.request_json("GET", URL)


@pytest.mark.asyncio
async def test_close_is_idempotent(config: ReceiptScannerConfig) -> None:
    client = AsyncHttpClient(config, transport=MockTransport())
    await client._ensure_client()

    await client._close()
    await client._close()

    assert client._client is None
