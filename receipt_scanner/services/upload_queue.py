"""
In-memory staging of assets awaiting upload.
"""

from collections.abc import Iterable, Iterator, Sequence

import structlog

from receipt_scanner.models.upload import UploadItem

logger = structlog.get_logger(__name__)


class UploadQueue:
    """
    Ordered collection of staged assets.

    Duplicates are allowed; each staged handle becomes its own item.
    No network or persistence involvement.
    """

    def __init__(self) -> None:
        self._items: list[UploadItem] = []

    @property
    def items(self) -> tuple[UploadItem, ...]:
        """Snapshot of the queue in order."""
        return tuple(self._items)

    def add(self, items: Iterable[UploadItem | str]) -> list[UploadItem]:
        """
        Append items, preserving order.

        Args:
            items: UploadItems or raw local handles.

        Returns:
            The items that were appended.
        """
        added = [
            item if isinstance(item, UploadItem) else UploadItem.from_handle(item) for item in items
        ]
        self._items.extend(added)
        if added:
            logger.debug("Staged assets", count=len(added), queued=len(self._items))
        return added

    def remove_at(self, index: int) -> UploadItem | None:
        """
        Remove the item at index.

        Out-of-range indexes (including negative ones) are ignored, since
        they usually come from a stale snapshot.

        Returns:
            The removed item, or None.
        """
        if not 0 <= index < len(self._items):
            logger.debug("Ignoring removal of missing index", index=index, queued=len(self._items))
            return None
        return self._items.pop(index)

    def clear(self) -> None:
        """Remove every item."""
        self._items.clear()

    def discard(self, items: Sequence[UploadItem]) -> int:
        """
        Remove exactly the given item objects, leaving anything else staged.

        Items staged after a batch started, or staged twice, are kept.

        Returns:
            Number of items removed.
        """
        targets = {id(item) for item in items}
        kept = [item for item in self._items if id(item) not in targets]
        removed = len(self._items) - len(kept)
        self._items = kept
        return removed

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[UploadItem]:
        return iter(self.items)

    def __bool__(self) -> bool:
        return bool(self._items)
