"""Recursive directory deletion."""

import logging
import posixpath
from collections.abc import Awaitable, Callable, Sequence

from netstorage.errors import NetStorageError, NotFoundError
from netstorage.metadata import FileType, MetadataRecord

logger = logging.getLogger(__name__)


def depth_first_order(records: Sequence[MetadataRecord]) -> list[MetadataRecord]:
    """Order a flat listing deepest first.

    Server order says nothing about depth, so entries are sorted by the
    number of path segments. Entries at equal depth keep their listing order.
    """
    return sorted(records, key=lambda record: record.depth, reverse=True)


def post_order(records: Sequence[MetadataRecord]) -> list[MetadataRecord]:
    """Order a tree listing so every directory follows its children.

    ``records`` is a flat listing whose directories carry ``children``.
    Only entries that are nobody's child are used as starting points.
    """
    nested = {
        id(child) for record in records for child in (record.children or [])
    }
    roots = [record for record in records if id(record) not in nested]

    ordered: list[MetadataRecord] = []
    stack: list[tuple[MetadataRecord, bool]] = [(record, False) for record in reversed(roots)]
    while stack:
        record, expanded = stack.pop()
        if expanded or not record.children:
            ordered.append(record)
            continue
        stack.append((record, True))
        stack.extend((child, False) for child in reversed(record.children))
    return ordered


class RecursiveDeleter:
    """Deletes a directory and everything below it.

    Attributes:
        exists: Coroutine returning whether a relative path exists.
        list_tree: Coroutine returning the full recursive listing of a path.
        delete_entry: Coroutine deleting one file or empty directory.
        order: Orders the listing so children precede their parents.
    """

    def __init__(
        self,
        exists: Callable[[str], Awaitable[bool]],
        list_tree: Callable[[str], Awaitable[list[MetadataRecord]]],
        delete_entry: Callable[[MetadataRecord], Awaitable[None]],
        order: Callable[[Sequence[MetadataRecord]], list[MetadataRecord]] = depth_first_order,
    ) -> None:
        self.exists = exists
        self.list_tree = list_tree
        self.delete_entry = delete_entry
        self.order = order

    async def _delete(self, record: MetadataRecord) -> bool:
        try:
            await self.delete_entry(record)
        except NotFoundError:
            logger.debug("%s already gone", record.path)
        except NetStorageError as exc:
            logger.warning("Failed to delete %s: %s", record.path, exc.message)
            return False
        return True

    async def delete_tree(self, path: str) -> bool:
        """Delete ``path`` recursively.

        Args:
            path: Relative directory path.

        Returns:
            True when everything was deleted or the path did not exist,
            False as soon as one deletion fails. Remaining entries are left
            in place after a failure.
        """
        if not await self.exists(path):
            return True

        records = await self.list_tree(path)
        for record in self.order(records):
            if not await self._delete(record):
                return False

        relative = path.strip("/")
        directory = MetadataRecord(
            type=FileType.DIR,
            path="/" + relative,
            name=posixpath.basename(relative),
        )
        return await self._delete(directory)
