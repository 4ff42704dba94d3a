"""Object-store ACS variant.

Directories may be implicit: a file at ``a/b/c.txt`` implies ``a`` and
``a/b`` without either having been created. ``stat`` is asked to report
implicit directories, ``list`` returns the whole subtree page by page, and
``mkdir`` on an existing directory answers 200, so existence is checked first.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Sequence

from netstorage.actions import Action
from netstorage.connection import ACSConnection
from netstorage.deleter import depth_first_order
from netstorage.errors import AlreadyExistsError, NetStorageError
from netstorage.listing import ListingPaginator
from netstorage.metadata import (
    FileType,
    MetadataNormalizer,
    MetadataRecord,
    MkdirResult,
    MkdirStatus,
)
from netstorage.storage.backend import fetch_stat, stat_exists

logger = logging.getLogger(__name__)

STAT_PARAMS = {"implicit": "yes", "encoding": "utf-8"}


def _implicit_directory(path: str) -> MetadataRecord:
    return MetadataRecord(
        type=FileType.DIR,
        path=path,
        name=posixpath.basename(path),
        extra={"implicit": "true"},
    )


def _ancestors_below(base: str, path: str) -> list[str]:
    """Directories strictly between ``base`` and ``path``, outermost first."""
    ancestors: list[str] = []
    current = posixpath.dirname(path)
    while current != base and current not in ("", "/"):
        ancestors.append(current)
        current = posixpath.dirname(current)
    ancestors.reverse()
    return ancestors


class ObjectStoreVariant:
    """StorageVariant for flat-namespace object-store accounts.

    Attributes:
        connection: The signed connection.
        normalizer: Record normaliser bound to the client's path mapper.
        paginator: ``list`` resume-cursor walker.
    """

    name = "object-store"

    def __init__(self, connection: ACSConnection, normalizer: MetadataNormalizer) -> None:
        self.connection = connection
        self.normalizer = normalizer
        self.paginator = ListingPaginator(connection, normalizer)

    def stat_params(self) -> dict[str, str] | None:
        return dict(STAT_PARAMS)

    async def stat(self, remote: str) -> MetadataRecord:
        return await fetch_stat(self.connection, self.normalizer, remote, self.stat_params())

    async def exists(self, remote: str) -> bool:
        return await stat_exists(self.connection, self.normalizer, remote, self.stat_params())

    async def make_directory(self, remote: str) -> MkdirResult:
        path = self.normalizer.mapper.strip(remote)
        try:
            if await self.exists(remote):
                return MkdirResult(status=MkdirStatus.ALREADY_EXISTED, path=path)
            await self.connection.request("PUT", remote, Action.MKDIR)
        except AlreadyExistsError:
            return MkdirResult(status=MkdirStatus.ALREADY_EXISTED, path=path)
        except NetStorageError as exc:
            return MkdirResult(status=MkdirStatus.FAILED, path=path, error=exc)
        logger.debug("Created directory %s", remote)
        return MkdirResult(status=MkdirStatus.CREATED, path=path)

    async def list(self, remote: str, recursive: bool = False) -> list[MetadataRecord]:
        """List a directory through the paginated ``list`` action.

        The server always returns the full subtree. Intermediate directories
        that exist only implicitly get a synthesised record placed before
        their first descendant. A non-recursive listing keeps the immediate
        children only.
        """
        base = self.normalizer.mapper.strip(remote).rstrip("/") or "/"
        base_depth = len([seg for seg in base.split("/") if seg])
        below = "/" if base == "/" else base + "/"

        records = [
            record
            for record in await self.paginator.list(remote)
            if record.path.startswith(below) and record.path.rstrip("/") != base
        ]
        explicit = {record.path for record in records}

        synthesized: set[str] = set()
        result: list[MetadataRecord] = []
        for record in records:
            for ancestor in _ancestors_below(base, record.path):
                if ancestor in explicit or ancestor in synthesized:
                    continue
                synthesized.add(ancestor)
                result.append(_implicit_directory(ancestor))
            result.append(record)

        if recursive:
            return result
        return [record for record in result if record.depth == base_depth + 1]

    def deletion_order(self, records: Sequence[MetadataRecord]) -> list[MetadataRecord]:
        return depth_first_order(records)
