"""File-store ACS variant.

Directories are real entries. ``stat`` takes no parameters, ``dir`` lists one
level, and ``mkdir`` on an existing directory fails with 409.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from netstorage.actions import Action
from netstorage.connection import ACSConnection
from netstorage.deleter import post_order
from netstorage.errors import AlreadyExistsError, NetStorageError
from netstorage.listing import TreeLister
from netstorage.metadata import MetadataNormalizer, MetadataRecord, MkdirResult, MkdirStatus
from netstorage.storage.backend import fetch_stat, stat_exists

logger = logging.getLogger(__name__)


class FileStoreVariant:
    """StorageVariant for hierarchical file-store accounts.

    Attributes:
        connection: The signed connection.
        normalizer: Record normaliser bound to the client's path mapper.
        lister: Single-page ``dir`` walker.
    """

    name = "file-store"

    def __init__(self, connection: ACSConnection, normalizer: MetadataNormalizer) -> None:
        self.connection = connection
        self.normalizer = normalizer
        self.lister = TreeLister(connection, normalizer)

    def stat_params(self) -> dict[str, str] | None:
        return None

    async def stat(self, remote: str) -> MetadataRecord:
        return await fetch_stat(self.connection, self.normalizer, remote)

    async def exists(self, remote: str) -> bool:
        return await stat_exists(self.connection, self.normalizer, remote)

    async def make_directory(self, remote: str) -> MkdirResult:
        path = self.normalizer.mapper.strip(remote)
        try:
            await self.connection.request("PUT", remote, Action.MKDIR)
        except AlreadyExistsError:
            return MkdirResult(status=MkdirStatus.ALREADY_EXISTED, path=path)
        except NetStorageError as exc:
            return MkdirResult(status=MkdirStatus.FAILED, path=path, error=exc)
        logger.debug("Created directory %s", remote)
        return MkdirResult(status=MkdirStatus.CREATED, path=path)

    async def list(self, remote: str, recursive: bool = False) -> list[MetadataRecord]:
        return await self.lister.list(remote, recursive)

    def deletion_order(self, records: Sequence[MetadataRecord]) -> list[MetadataRecord]:
        return post_order(records)
