"""
Async HTTP client shared by the identity and upload endpoints.

Wraps httpx so that transport failures surface as NetworkError and
non-success responses as APIError, with secrets kept out of logs.
"""

import asyncio
from typing import Any

import httpx
import structlog

from receipt_scanner.config import ReceiptScannerConfig
from receipt_scanner.exceptions import APIError, NetworkError

logger = structlog.get_logger(__name__)

SENSITIVE_KEYS = frozenset(
    {
        "access_token",
        "refresh_token",
        "id_token",
        "code",
        "code_verifier",
        "client_secret",
        "Authorization",
        "authorization",
    }
)


def sanitize_for_log(data: dict[str, Any]) -> dict[str, Any]:
    """
    Remove sensitive fields from a dict before logging.

    Recursively sanitizes nested dictionaries and lists.

    Args:
        data: Dictionary that may contain sensitive values.

    Returns:
        Copy with sensitive values replaced by "***".
    """
    result = {}
    for key, value in data.items():
        if key in SENSITIVE_KEYS:
            result[key] = "***"
        elif isinstance(value, dict):
            result[key] = sanitize_for_log(value)
        elif isinstance(value, list):
            result[key] = [
                sanitize_for_log(item) if isinstance(item, dict) else item for item in value
            ]
        else:
            result[key] = value
    return result


class AsyncHttpClient:
    """Async HTTP client for identity provider and ingestion requests."""

    def __init__(
        self,
        config: ReceiptScannerConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            config: Client configuration.
            transport: Optional transport for testing (mock transport).
        """
        self._config = config
        self._transport = transport

        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def __aenter__(self) -> "AsyncHttpClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self._close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=self._config.timeout,
                    transport=self._transport,
                    headers={
                        "Accept": "application/json",
                        "User-Agent": self._config.user_agent,
                    },
                )
        return self._client

    async def _close(self) -> None:
        async with self._client_lock:
            if self._client is None:
                logger.debug("Client not open.")
                return
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        url: str,
        *,
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        bearer_token: str | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """
        Send a request and return the response whatever its status.

        Args:
            method: HTTP method (GET, POST, etc.).
            url: Absolute URL.
            data: Form fields (urlencoded, or multipart alongside ``files``).
            files: Multipart file fields.
            params: Query parameters.
            bearer_token: Access token sent as ``Authorization: Bearer``.
            timeout: Optional per-request timeout in seconds.

        Returns:
            The httpx response.

        Raises:
            NetworkError: If no usable response was received (transport failure,
                undecodable body, redirect loop).
        """
        if self._client is None:
            msg = "HTTP client not initialized. Use 'async with' first."
            raise RuntimeError(msg)

        headers = {}
        if bearer_token:
            headers["Authorization"] = f"Bearer {bearer_token}"

        logger.debug(
            "Sending request",
            method=method,
            url=url,
            data=sanitize_for_log(data) if data else None,
        )
        try:
            response = await self._client.request(
                method=method,
                url=url,
                data=data,
                files=files,
                params=params,
                headers=headers,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.RequestError as e:
            msg = f"Request failed: {type(e).__name__}"
            raise NetworkError(msg, url=url) from e

        logger.debug("Received response", url=url, status_code=response.status_code)
        return response

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        bearer_token: str | None = None,
    ) -> dict[str, Any]:
        """
        Send a request and decode a JSON object from a 2xx response.

        Returns:
            Response JSON object.

        Raises:
            NetworkError: If no response was received.
            APIError: If the status is not 2xx or the body is not a JSON object.
        """
        response = await self.request(
            method, url, data=data, params=params, bearer_token=bearer_token
        )
        if not response.is_success:
            msg = f"Request failed with status {response.status_code}"
            raise APIError(msg, status_code=response.status_code, endpoint=url)

        try:
            payload = response.json()
        except ValueError as e:
            raise APIError(
                "Invalid JSON response",
                status_code=response.status_code,
                endpoint=url,
            ) from e

        if not isinstance(payload, dict):
            raise APIError(
                "Expected a JSON object",
                status_code=response.status_code,
                endpoint=url,
            )
        return payload
