"""Storage variant protocol for netstorage."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from netstorage.actions import Action
from netstorage.connection import ACSConnection
from netstorage.errors import NotFoundError
from netstorage.metadata import MetadataNormalizer, MetadataRecord, MkdirResult
from netstorage.xml_utils import directory_of, file_elements, parse_xml


class StorageVariant(Protocol):
    """Protocol for the behaviour that differs between ACS backends.

    The file store and the object store share the wire protocol but differ in
    how they stat, create directories and list. A StorageClient delegates
    exactly these concerns to its variant.
    """

    name: str

    def stat_params(self) -> dict[str, str] | None:
        """Return the parameters sent with every ``stat`` action."""
        ...

    async def stat(self, remote: str) -> MetadataRecord:
        """Fetch metadata for a remote path.

        Args:
            remote: The remote path.

        Returns:
            The normalised record.

        Raises:
            NotFoundError: If the path does not exist.
        """
        ...

    async def exists(self, remote: str) -> bool:
        """Check whether a remote path exists."""
        ...

    async def make_directory(self, remote: str) -> MkdirResult:
        """Create one directory.

        Args:
            remote: The remote directory path. Its parent must exist.

        Returns:
            CREATED, ALREADY_EXISTED, or FAILED carrying the error.
        """
        ...

    async def list(self, remote: str, recursive: bool = False) -> list[MetadataRecord]:
        """List a remote directory.

        Args:
            remote: The remote directory path.
            recursive: Include every descendant, not just immediate children.

        Returns:
            Records with caller-relative paths.

        Raises:
            NotADirectoryError: If the path is not a directory.
        """
        ...

    def deletion_order(self, records: Sequence[MetadataRecord]) -> list[MetadataRecord]:
        """Order a recursive listing so children precede their parents."""
        ...


async def fetch_stat(
    connection: ACSConnection,
    normalizer: MetadataNormalizer,
    remote: str,
    params: dict[str, str] | None = None,
) -> MetadataRecord:
    """Issue a ``stat`` action and normalise the response.

    A response without a ``<file>`` element describes its ``directory``
    attribute itself.
    """
    response = await connection.request("GET", remote, Action.STAT, params)
    root = parse_xml(response.content, path=remote)
    elements = file_elements(root)
    return normalizer.normalize(directory_of(root), elements[0] if elements else None)


async def stat_exists(
    connection: ACSConnection,
    normalizer: MetadataNormalizer,
    remote: str,
    params: dict[str, str] | None = None,
) -> bool:
    """Return False on 404, True on any successful ``stat``."""
    try:
        await fetch_stat(connection, normalizer, remote, params)
    except NotFoundError:
        return False
    return True
