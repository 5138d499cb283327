"""
Sequential batch upload to the ingestion endpoint.

Items are sent one at a time, in order: item i starts only after the
outcome of item i-1 is recorded. A failing item never stops the batch.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

import structlog

from receipt_scanner.api.endpoints.ingest import upload_file
from receipt_scanner.api.http_client import AsyncHttpClient
from receipt_scanner.exceptions import NetworkError, UploadInProgressError
from receipt_scanner.models.upload import (
    BatchResult,
    BatchStatus,
    FailureReason,
    UploadItem,
    UploadOutcome,
)
from receipt_scanner.services.upload_queue import UploadQueue

logger = structlog.get_logger(__name__)

AssetReader = Callable[[str], Awaitable[bytes]]


def handle_to_path(handle: str) -> Path:
    """
    Resolve a local handle (plain path or ``file://`` URI) to a path.

    Raises:
        ValueError: If the handle uses a non-local scheme.
    """
    parsed = urlparse(handle)
    if parsed.scheme == "file":
        return Path(url2pathname(unquote(parsed.path)))
    if parsed.scheme and len(parsed.scheme) > 1:
        msg = f"Unsupported asset scheme: {parsed.scheme}"
        raise ValueError(msg)
    return Path(handle)


async def read_local_asset(handle: str) -> bytes:
    """Read the bytes behind a local handle."""
    path = handle_to_path(handle)
    return await asyncio.to_thread(path.read_bytes)


class BatchUploader:
    """
    Uploads staged assets to the ingestion endpoint.

    Receives the access token per call; it has no dependency on the
    session lifecycle.
    """

    def __init__(
        self,
        http: AsyncHttpClient,
        *,
        reader: AssetReader | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Args:
            http: HTTP client for upload requests.
            reader: Reads the bytes of a handle. Defaults to the local filesystem.
            timeout: Per-upload timeout in seconds.
        """
        self._http = http
        self._reader = reader or read_local_asset
        self._timeout = timeout
        self._lock = asyncio.Lock()

    @property
    def is_uploading(self) -> bool:
        """Whether a queue upload is running."""
        return self._lock.locked()

    async def upload_all(
        self,
        items: Sequence[UploadItem],
        endpoint: str,
        token: str | None,
    ) -> BatchResult:
        """
        Upload items sequentially and aggregate the outcomes.

        Args:
            items: Items to upload, in order.
            endpoint: Ingestion endpoint URL.
            token: Bearer token, or None to send no Authorization header.

        Returns:
            BatchResult with one entry per failed item.
        """
        outcomes: list[UploadOutcome] = []
        for index, item in enumerate(items):
            outcome = await self._upload_one(item, endpoint, token)
            if outcome.reason is not None:
                logger.warning(
                    "Upload failed",
                    index=index,
                    filename=item.display_name,
                    reason=str(outcome.reason),
                )
            outcomes.append(outcome)

        result = BatchResult.from_outcomes(outcomes)
        logger.info(
            "Batch finished",
            total=result.total,
            succeeded=result.succeeded,
            status=result.status.value,
        )
        return result

    async def upload_queue(
        self, queue: UploadQueue, endpoint: str, token: str | None
    ) -> BatchResult:
        """
        Upload everything staged in the queue.

        On full success only the uploaded items are removed from the queue;
        on partial or total failure the queue is left unchanged.

        Raises:
            UploadInProgressError: If another queue upload is running.
        """
        if self._lock.locked():
            raise UploadInProgressError()

        async with self._lock:
            batch = queue.items
            if not batch:
                return BatchResult(total=0, succeeded=0)

            result = await self.upload_all(batch, endpoint, token)
            if result.status == BatchStatus.ALL_SUCCEEDED:
                queue.discard(batch)
            return result

    async def _upload_one(
        self, item: UploadItem, endpoint: str, token: str | None
    ) -> UploadOutcome:
        try:
            content = await self._reader(item.handle)
        except (OSError, ValueError) as e:
            logger.warning("Could not read asset", filename=item.display_name, error=str(e))
            return UploadOutcome(item=item, reason=FailureReason.unreadable())

        try:
            response = await upload_file(
                self._http,
                endpoint,
                filename=item.display_name,
                content=content,
                access_token=token,
                timeout=self._timeout,
            )
        except NetworkError:
            return UploadOutcome(item=item, reason=FailureReason.network_error())

        if not response.is_success:
            return UploadOutcome(item=item, reason=FailureReason.http_status(response.status_code))
        return UploadOutcome(item=item)
