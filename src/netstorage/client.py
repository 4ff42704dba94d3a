"""High-level filesystem operations over the ACS protocol.

StorageClient is what applications use. Paths are relative to the configured
prefix, with or without a leading slash. Every call goes to the network;
nothing is cached.

Example::

    async with StorageClient.from_config(load_config(path)) as client:
        await client.write("reports/2024.csv", data)
        for record in await client.list("reports"):
            print(record.path, record.size)
"""

import hashlib
import logging
import os
from collections.abc import AsyncIterator, Iterator
from contextlib import contextmanager
from typing import BinaryIO

import httpx

from netstorage.actions import Action
from netstorage.auth import Credentials, Signer
from netstorage.config import NetStorageConfig
from netstorage.connection import ACSConnection
from netstorage.deleter import RecursiveDeleter
from netstorage.errors import (
    AlreadyExistsError,
    ConfigurationError,
    NetStorageError,
    NotFoundError,
    RootViolationError,
)
from netstorage.metadata import (
    DiskUsage,
    MetadataNormalizer,
    MetadataRecord,
    MkdirResult,
    MkdirStatus,
)
from netstorage.paths import PathMapper, PathResolver
from netstorage.storage import VARIANTS, create_variant
from netstorage.xml_utils import parse_disk_usage

logger = logging.getLogger(__name__)

# Upload streaming chunk size: 64 KB
_CHUNK_SIZE = 64 * 1024


@contextmanager
def _reported_as(path: str) -> Iterator[None]:
    """Re-raise NotFoundError with the caller's path instead of the remote one."""
    try:
        yield
    except NotFoundError as exc:
        raise NotFoundError(path) from exc


async def _iter_file(fh: BinaryIO, chunk_size: int = _CHUNK_SIZE) -> AsyncIterator[bytes]:
    while True:
        chunk = fh.read(chunk_size)
        if not chunk:
            return
        yield chunk


def _remaining_size(fh: BinaryIO) -> int:
    """Bytes between the current position and the end of a seekable file."""
    position = fh.tell()
    end = fh.seek(0, os.SEEK_END)
    fh.seek(position)
    return end - position


class StorageClient:
    """Filesystem-style client for one ACS storage account.

    Attributes:
        connection: The signed connection.
        mapper: Caller-path to remote-path mapping.
        normalizer: Builds records with caller-relative paths.
        variant: File-store or object-store behaviour.
        resolver: Creates missing parent directories before writes.
        deleter: Recursive directory deletion.
        create_prefix: Whether :meth:`init` creates the prefix directory.
    """

    def __init__(
        self,
        connection: ACSConnection,
        mapper: PathMapper,
        variant: str = "object-store",
        create_prefix: bool = True,
    ) -> None:
        self.connection = connection
        self.mapper = mapper
        self.normalizer = MetadataNormalizer(mapper)
        self.variant = create_variant(variant, connection, self.normalizer)
        self.create_prefix = create_prefix
        self.resolver = PathResolver(self._exists, self._make_directory)
        self.deleter = RecursiveDeleter(
            exists=self.has,
            list_tree=self._list_tree,
            delete_entry=self._delete_entry,
            order=self.variant.deletion_order,
        )

    @classmethod
    def from_config(
        cls,
        config: NetStorageConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "StorageClient":
        """Build a client from a loaded configuration.

        Args:
            config: The configuration.
            transport: Optional httpx transport, used by tests.

        Raises:
            ConfigurationError: If the host or cp-code is missing, or the
                variant is unknown.
        """
        if not config.connection.host:
            raise ConfigurationError("connection.host is required")
        if not config.storage.cp_code:
            raise ConfigurationError("storage.cp_code is required")
        if config.storage.variant not in VARIANTS:
            raise ConfigurationError(f"Unknown storage variant: {config.storage.variant!r}")

        signer = Signer(Credentials(key=config.auth.key, key_name=config.auth.key_name))
        connection = ACSConnection(
            host=config.connection.host,
            signer=signer,
            scheme=config.connection.scheme,
            timeout=config.connection.timeout,
            transport=transport,
            metrics_enabled=config.metrics.enabled,
        )
        return cls(
            connection,
            PathMapper(config.storage.cp_code, config.storage.path_prefix),
            variant=config.storage.variant,
            create_prefix=config.storage.create_prefix,
        )

    async def __aenter__(self) -> "StorageClient":
        try:
            await self.init()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def init(self) -> None:
        """Create the prefix directory if configured to.

        The prefix is resolved against the bare cp-code root. A prefix that
        already exists is fine.
        """
        if not (self.create_prefix and self.mapper.prefix):
            return

        root = self.mapper.without_prefix()
        root_variant = create_variant(self.variant.name, self.connection, MetadataNormalizer(root))

        async def exists(path: str) -> bool:
            return await root_variant.exists(root.apply(path))

        async def make_directory(path: str) -> MkdirResult:
            return await root_variant.make_directory(root.apply(path))

        await PathResolver(exists, make_directory).ensure(self.mapper.prefix)
        result = await make_directory(self.mapper.prefix)
        if result.status is MkdirStatus.FAILED and result.error is not None:
            raise result.error
        logger.info("Prefix %s ready (%s)", self.mapper.root, result.status.value)

    async def close(self) -> None:
        """Close the connection."""
        await self.connection.close()

    # -- collaborators --------------------------------------------------------

    async def _exists(self, path: str) -> bool:
        return await self.variant.exists(self.mapper.apply(path))

    async def _make_directory(self, path: str) -> MkdirResult:
        return await self.variant.make_directory(self.mapper.apply(path))

    async def _list_tree(self, path: str) -> list[MetadataRecord]:
        return await self.variant.list(self.mapper.apply(path), recursive=True)

    async def _delete_entry(self, record: MetadataRecord) -> None:
        action = Action.RMDIR if record.is_dir else Action.DELETE
        await self.connection.request("POST", self.mapper.apply(record.path), action)

    # -- metadata -------------------------------------------------------------

    async def stat(self, path: str) -> MetadataRecord:
        """Fetch metadata for a file or directory.

        Raises:
            NotFoundError: If nothing exists at ``path``.
        """
        relative = self.mapper.normalize(path)
        with _reported_as(relative):
            return await self.variant.stat(self.mapper.apply(relative))

    async def has(self, path: str) -> bool:
        """Check whether a file or directory exists."""
        try:
            await self.stat(path)
        except NotFoundError:
            return False
        return True

    async def get_size(self, path: str) -> int | None:
        """Size in bytes, or None if the server reports none (directories)."""
        record = await self.stat(path)
        return int(record.size) if record.size is not None else None

    async def get_timestamp(self, path: str) -> int | None:
        """Modification time as epoch seconds, or None if not reported."""
        record = await self.stat(path)
        return int(record.timestamp) if record.timestamp else None

    async def get_mimetype(self, path: str) -> str | None:
        """Content type as served for a download of ``path``."""
        relative = self.mapper.normalize(path)
        with _reported_as(relative):
            response = await self.connection.request(
                "HEAD", self.mapper.apply(relative), Action.DOWNLOAD
            )
        return response.headers.get("content-type")

    async def disk_usage(self, path: str = "") -> DiskUsage:
        """File count and total bytes below ``path``."""
        relative = self.mapper.normalize(path)
        with _reported_as(relative):
            root = await self.connection.fetch_xml(self.mapper.apply(relative), Action.DU)
        files, size = parse_disk_usage(root)
        return DiskUsage(files=files, bytes=size)

    async def list(self, path: str = "", recursive: bool = False) -> list[MetadataRecord]:
        """List a directory.

        Raises:
            NotADirectoryError: If ``path`` is not a directory.
        """
        relative = self.mapper.normalize(path)
        with _reported_as(relative):
            return await self.variant.list(self.mapper.apply(relative), recursive=recursive)

    # -- reading --------------------------------------------------------------

    async def read(self, path: str) -> bytes:
        """Download a whole file."""
        relative = self.mapper.normalize(path)
        with _reported_as(relative):
            response = await self.connection.request(
                "GET", self.mapper.apply(relative), Action.DOWNLOAD
            )
        return response.content

    async def read_stream(self, path: str) -> AsyncIterator[bytes]:
        """Download a file as a stream of chunks."""
        relative = self.mapper.normalize(path)
        with _reported_as(relative):
            async for chunk in self.connection.stream(
                "GET", self.mapper.apply(relative), Action.DOWNLOAD
            ):
                yield chunk

    # -- writing --------------------------------------------------------------

    async def _prepare_write(self, relative: str) -> None:
        if await self.has(relative):
            raise AlreadyExistsError(relative)
        await self.resolver.ensure(relative)

    async def write(self, path: str, data: bytes | str) -> MetadataRecord:
        """Upload a new file, creating missing parent directories.

        The upload carries the SHA-1 of the content for server-side
        verification.

        Raises:
            AlreadyExistsError: If something already exists at ``path``.
            UpstreamError: If a parent directory could not be created.
        """
        relative = self.mapper.normalize(path)
        content = data.encode("utf-8") if isinstance(data, str) else data
        await self._prepare_write(relative)

        await self.connection.request(
            "PUT",
            self.mapper.apply(relative),
            Action.UPLOAD,
            {"sha1": hashlib.sha1(content).hexdigest()},
            content=content,
            headers={"Content-Length": str(len(content))},
        )
        logger.info("Uploaded %s (%d bytes)", relative, len(content))
        return await self.stat(relative)

    async def write_stream(self, path: str, fh: BinaryIO) -> MetadataRecord:
        """Upload a new file from a seekable binary file object.

        The body is streamed from the current position to the end of the file.
        """
        relative = self.mapper.normalize(path)
        await self._prepare_write(relative)

        size = _remaining_size(fh)
        await self.connection.request(
            "PUT",
            self.mapper.apply(relative),
            Action.UPLOAD,
            content=_iter_file(fh),
            headers={"Content-Length": str(size)},
        )
        logger.info("Uploaded %s (%d bytes, streamed)", relative, size)
        return await self.stat(relative)

    async def _replace(self, relative: str) -> None:
        if not await self.has(relative):
            raise NotFoundError(relative)
        with _reported_as(relative):
            await self.connection.request("POST", self.mapper.apply(relative), Action.DELETE)

    async def update(self, path: str, data: bytes | str) -> MetadataRecord:
        """Replace the content of an existing file.

        Raises:
            NotFoundError: If the file does not exist.
        """
        relative = self.mapper.normalize(path)
        await self._replace(relative)
        return await self.write(relative, data)

    async def update_stream(self, path: str, fh: BinaryIO) -> MetadataRecord:
        """Replace the content of an existing file from a file object."""
        relative = self.mapper.normalize(path)
        await self._replace(relative)
        return await self.write_stream(relative, fh)

    async def copy(self, path: str, new_path: str) -> MetadataRecord:
        """Copy a file by downloading and re-uploading it."""
        return await self.write(new_path, await self.read(path))

    async def rename(self, path: str, new_path: str) -> bool:
        """Move a file to a new path.

        Returns:
            True on success, False if the server rejected the rename.

        Raises:
            NotFoundError: If the source does not exist.
            AlreadyExistsError: If the destination already exists.
        """
        source = self.mapper.normalize(path)
        target = self.mapper.normalize(new_path)
        if not await self.has(source):
            raise NotFoundError(source)
        if await self.has(target):
            raise AlreadyExistsError(target)
        await self.resolver.ensure(target)

        try:
            await self.connection.request(
                "POST",
                self.mapper.apply(source),
                Action.RENAME,
                {"destination": self.mapper.apply(target)},
            )
        except AlreadyExistsError as exc:
            raise AlreadyExistsError(target) from exc
        except NetStorageError as exc:
            logger.warning("Rename %s -> %s failed: %s", source, target, exc.message)
            return False
        return True

    # -- deleting -------------------------------------------------------------

    async def delete(self, path: str) -> bool:
        """Delete a file or an empty directory.

        Returns:
            True on success, False if the server rejected the deletion.

        Raises:
            NotFoundError: If nothing exists at ``path``.
            RootViolationError: If ``path`` is the storage root.
        """
        relative = self.mapper.normalize(path)
        if not relative:
            raise RootViolationError("delete")
        record = await self.stat(relative)
        try:
            await self._delete_entry(record)
        except NotFoundError as exc:
            raise NotFoundError(relative) from exc
        except NetStorageError as exc:
            logger.warning("Delete %s failed: %s", record.path, exc.message)
            return False
        return True

    async def mkdir(self, path: str) -> MetadataRecord:
        """Create a directory and any missing parents.

        Raises:
            AlreadyExistsError: For the root, or if the directory exists.
            UpstreamError: If creation failed.
        """
        relative = self.mapper.normalize(path)
        if not relative:
            raise AlreadyExistsError("/", http_status=400)

        await self.resolver.ensure(relative)
        result = await self._make_directory(relative)
        if result.status is MkdirStatus.ALREADY_EXISTED:
            raise AlreadyExistsError(relative)
        if result.status is MkdirStatus.FAILED and result.error is not None:
            raise result.error
        return await self.stat(relative)

    async def rmdir(self, path: str) -> bool:
        """Delete a directory and everything in it.

        Returns:
            True if the directory is gone (or never existed), False if a
            deletion failed part way through.

        Raises:
            RootViolationError: If ``path`` is the storage root.
        """
        relative = self.mapper.normalize(path)
        if not relative:
            raise RootViolationError("rmdir")
        return await self.deleter.delete_tree(relative)
