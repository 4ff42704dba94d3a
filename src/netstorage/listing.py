"""Directory listing for both pagination models.

The object store answers the ``list`` action one page at a time; a page that
is not the last carries ``<resume start="..."/>`` and the next page is fetched
by sending that cursor back as ``start``. The file store answers ``dir`` with
the immediate children only, so a recursive listing issues one ``dir`` per
subdirectory.

Both walkers are iterative, so cancelling the surrounding task stops the walk
before the next request is issued.
"""

import logging
from collections.abc import AsyncIterator

from netstorage.actions import Action
from netstorage.connection import ACSConnection
from netstorage.errors import NotADirectoryError, UpstreamError
from netstorage.metadata import ListingPage, MetadataNormalizer, MetadataRecord
from netstorage.xml_utils import (
    directory_of,
    file_elements,
    is_deleted_sentinel,
    parse_xml,
    resume_cursor,
)

logger = logging.getLogger(__name__)


class ListingPaginator:
    """Drives the ``list`` resume-cursor protocol.

    Attributes:
        connection: The signed connection.
        normalizer: Converts ``<file>`` elements into records.
    """

    def __init__(self, connection: ACSConnection, normalizer: MetadataNormalizer) -> None:
        self.connection = connection
        self.normalizer = normalizer

    async def fetch_page(self, remote_dir: str, cursor: str | None = None) -> ListingPage:
        """Fetch a single ``list`` page.

        Args:
            remote_dir: Remote directory path.
            cursor: Resume cursor from the previous page, if any.

        Raises:
            NotADirectoryError: The path is not a directory (412) or the
                directory was removed while being listed.
        """
        params = {"encoding": "utf-8"}
        if cursor is not None:
            params["start"] = cursor

        response = await self.connection.request("GET", remote_dir, Action.LIST, params)
        if is_deleted_sentinel(response.content):
            raise NotADirectoryError(remote_dir)

        root = parse_xml(response.content, path=remote_dir)
        directory = directory_of(root)
        return ListingPage(
            directory_path=directory,
            entries=[self.normalizer.normalize(directory, el) for el in file_elements(root)],
            resume_cursor=resume_cursor(root),
        )

    async def pages(self, remote_dir: str) -> AsyncIterator[ListingPage]:
        """Yield every page of a listing in server order."""
        cursor: str | None = None
        while True:
            page = await self.fetch_page(remote_dir, cursor)
            yield page
            if page.resume_cursor is None:
                return
            if page.resume_cursor == cursor:
                raise UpstreamError(
                    f"Listing cursor did not advance: {cursor}", path=remote_dir
                )
            logger.debug("Listing %s resumes at %s", remote_dir, page.resume_cursor)
            cursor = page.resume_cursor

    async def list(self, remote_dir: str) -> list[MetadataRecord]:
        """Fetch all pages and concatenate their entries."""
        entries: list[MetadataRecord] = []
        async for page in self.pages(remote_dir):
            entries.extend(page.entries)
        return entries


class TreeLister:
    """Lists directories with the single-page ``dir`` action.

    Attributes:
        connection: The signed connection.
        normalizer: Converts ``<file>`` elements into records.
    """

    def __init__(self, connection: ACSConnection, normalizer: MetadataNormalizer) -> None:
        self.connection = connection
        self.normalizer = normalizer

    async def fetch(self, remote_dir: str) -> list[MetadataRecord]:
        """List the immediate children of one directory."""
        response = await self.connection.request("GET", remote_dir, Action.DIR)
        if is_deleted_sentinel(response.content):
            raise NotADirectoryError(remote_dir)

        root = parse_xml(response.content, path=remote_dir)
        directory = directory_of(root) or remote_dir
        return [self.normalizer.normalize(directory, el) for el in file_elements(root)]

    async def list(self, remote_dir: str, recursive: bool = False) -> list[MetadataRecord]:
        """List a directory, optionally descending into every subdirectory.

        Directories get their entries attached as ``children``. Non-recursive
        listings leave ``children`` empty for directories.

        Returns:
            All entries, parents before their children.
        """
        entries = await self.fetch(remote_dir)
        if not recursive:
            for record in entries:
                if record.is_dir:
                    record.children = []
            return entries

        result: list[MetadataRecord] = []
        stack = list(reversed(entries))
        while stack:
            record = stack.pop()
            result.append(record)
            if record.is_dir:
                record.children = await self.fetch(self.normalizer.mapper.apply(record.path))
                stack.extend(reversed(record.children))
        return result
