"""
Upload-related domain models.
"""

import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Self
from urllib.parse import unquote, urlparse


class FailureKind(StrEnum):
    """Why a single upload failed."""

    HTTP_STATUS = "http_status"
    NETWORK_ERROR = "network_error"
    UNREADABLE = "unreadable"


class BatchStatus(StrEnum):
    """Aggregate outcome of a batch."""

    ALL_SUCCEEDED = "all_succeeded"
    ALL_FAILED = "all_failed"
    PARTIAL = "partial"


@dataclass(frozen=True, eq=False, kw_only=True)
class UploadItem:
    """
    A staged local asset.

    Items compare by identity: the same handle staged twice yields two
    independent items.

    Attributes:
        handle: Opaque local reference (path or file URI).
        display_name: Filename sent with the upload.
    """

    handle: str
    display_name: str

    @classmethod
    def from_handle(cls, handle: str) -> Self:
        """Create an item named after the last path segment of the handle."""
        name = unquote(urlparse(handle).path.rsplit("/", 1)[-1]) if handle else ""
        if not name:
            name = f"receipt_{int(time.time() * 1000)}.jpg"
        return cls(handle=handle, display_name=name)


@dataclass(frozen=True, kw_only=True)
class FailureReason:
    """Reason code for a failed upload."""

    kind: FailureKind
    status_code: int | None = None

    @classmethod
    def http_status(cls, status_code: int) -> Self:
        return cls(kind=FailureKind.HTTP_STATUS, status_code=status_code)

    @classmethod
    def network_error(cls) -> Self:
        return cls(kind=FailureKind.NETWORK_ERROR)

    @classmethod
    def unreadable(cls) -> Self:
        return cls(kind=FailureKind.UNREADABLE)

    def __str__(self) -> str:
        if self.kind == FailureKind.HTTP_STATUS:
            return f"HttpStatus({self.status_code})"
        if self.kind == FailureKind.NETWORK_ERROR:
            return "NetworkError"
        return "Unreadable"


@dataclass(frozen=True, kw_only=True)
class UploadOutcome:
    """Per-item result. ``reason`` is None on success."""

    item: UploadItem
    reason: FailureReason | None = None

    @property
    def succeeded(self) -> bool:
        return self.reason is None


@dataclass(frozen=True, kw_only=True)
class BatchResult:
    """
    Aggregate result of a batch upload.

    Invariant: ``succeeded + len(failed_items) == total``.
    """

    total: int
    succeeded: int
    failed_items: tuple[tuple[UploadItem, FailureReason], ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.succeeded + len(self.failed_items) != self.total:
            msg = "succeeded + failed must equal total"
            raise ValueError(msg)

    @classmethod
    def from_outcomes(cls, outcomes: list[UploadOutcome]) -> Self:
        failed = tuple((o.item, o.reason) for o in outcomes if o.reason is not None)
        return cls(total=len(outcomes), succeeded=len(outcomes) - len(failed), failed_items=failed)

    @property
    def status(self) -> BatchStatus:
        # An empty batch counts as fully successful.
        if self.succeeded == self.total:
            return BatchStatus.ALL_SUCCEEDED
        if self.succeeded == 0:
            return BatchStatus.ALL_FAILED
        return BatchStatus.PARTIAL

    @property
    def summary(self) -> str:
        """Human-readable outcome."""
        if self.status == BatchStatus.ALL_SUCCEEDED:
            return f"Uploaded {self.succeeded} image(s) successfully!"
        if self.status == BatchStatus.ALL_FAILED:
            return "All uploads failed. Check network/backend."
        return f"Uploaded {self.succeeded} of {self.total} image(s). Some failed."
