"""Ingestion endpoint: one file per request."""

import mimetypes

import httpx

from receipt_scanner.api.http_client import AsyncHttpClient

DEFAULT_CONTENT_TYPE = "image/jpeg"
UPLOAD_FIELD = "file"


def guess_content_type(filename: str) -> str:
    """Guess a MIME type from the filename, defaulting to JPEG."""
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or DEFAULT_CONTENT_TYPE


async def upload_file(
    http: AsyncHttpClient,
    upload_url: str,
    *,
    filename: str,
    content: bytes,
    access_token: str | None = None,
    timeout: float | None = None,
) -> httpx.Response:
    """
    Post a single file as ``multipart/form-data``.

    Args:
        http: Configured async HTTP client.
        upload_url: Ingestion endpoint.
        filename: Filename sent with the part.
        content: File bytes.
        access_token: Optional bearer token.
        timeout: Optional request timeout in seconds.

    Returns:
        The raw response; the caller classifies its status.
    """
    return await http.request(
        "POST",
        upload_url,
        files={UPLOAD_FIELD: (filename, content, guess_content_type(filename))},
        bearer_token=access_token,
        timeout=timeout,
    )
