"""Path mapping and parent-directory resolution for netstorage.

Callers address files relative to a virtual root. Upstream, every path starts
with the cp-code segment, optionally followed by a configured prefix::

    relative:  a/b/file.txt
    remote:    /123456/prefix/a/b/file.txt

Records handed back to callers always have the root stripped again.
"""

import logging
import posixpath
from collections.abc import Awaitable, Callable

from netstorage.errors import NetStorageError, UpstreamError
from netstorage.metadata.models import MkdirResult, MkdirStatus

logger = logging.getLogger(__name__)


class PathMapper:
    """Translates between caller paths and remote paths.

    Attributes:
        cp_code: Account identifier, the first remote path segment.
        prefix: Optional virtual root below the cp-code.
    """

    def __init__(self, cp_code: str, prefix: str = "") -> None:
        self.cp_code = cp_code.strip("/\\")
        self.prefix = prefix.strip("/\\")

    @property
    def root(self) -> str:
        """The remote root, always with leading and trailing slashes."""
        root = f"/{self.cp_code}/"
        if self.prefix:
            root += f"{self.prefix}/"
        return root

    @staticmethod
    def normalize(path: str) -> str:
        """Normalise a caller path to its slash-free relative form."""
        return path.strip("/\\")

    def apply(self, path: str) -> str:
        """Map a caller path to its remote path.

        The root itself maps to the root without a trailing slash.
        """
        relative = self.normalize(path)
        if not relative:
            return self.root.rstrip("/")
        return self.root + relative

    def strip(self, remote: str) -> str:
        """Map a remote path back to a caller path.

        Paths outside the root are returned unchanged, so stripping twice is
        the same as stripping once.
        """
        root = self.root
        if remote.startswith(root):
            return "/" + remote[len(root):]
        if remote == root.rstrip("/"):
            return "/"
        return remote

    def without_prefix(self) -> "PathMapper":
        """A mapper rooted at the bare cp-code."""
        return PathMapper(self.cp_code)


def parent_of(path: str) -> str:
    """Return the relative parent of a relative path ("" for the root)."""
    return posixpath.dirname(PathMapper.normalize(path))


class PathResolver:
    """Creates the missing ancestors of a path before it is written.

    Attributes:
        exists: Coroutine returning whether a relative path exists.
        make_directory: Coroutine creating one relative directory.
    """

    def __init__(
        self,
        exists: Callable[[str], Awaitable[bool]],
        make_directory: Callable[[str], Awaitable[MkdirResult]],
    ) -> None:
        self.exists = exists
        self.make_directory = make_directory

    async def missing_ancestors(self, path: str) -> list[str]:
        """Walk upward from ``path`` and collect ancestors that do not exist.

        Stops at the storage root or at the first ancestor that exists.

        Returns:
            Missing ancestors, nearest first.
        """
        missing: list[str] = []
        current = parent_of(path)
        while current:
            if await self.exists(current):
                break
            missing.append(current)
            current = parent_of(current)
        return missing

    async def ensure(self, path: str) -> list[MkdirResult]:
        """Make sure every ancestor directory of ``path`` exists.

        Ancestors are created root-to-leaf. A directory that turns out to exist
        already (a concurrent creator won) counts as ensured.

        Args:
            path: Relative path of the file or directory about to be created.

        Returns:
            One result per directory that was missing, in creation order.

        Raises:
            UpstreamError: On any failure other than "already exists".
        """
        try:
            missing = await self.missing_ancestors(path)
        except UpstreamError:
            raise
        except NetStorageError as exc:
            raise _as_upstream(exc) from exc

        results: list[MkdirResult] = []
        for segment in reversed(missing):
            result = await self.make_directory(segment)
            if result.status is MkdirStatus.FAILED:
                error = result.error or UpstreamError("mkdir failed", path=segment)
                if isinstance(error, UpstreamError):
                    raise error
                raise _as_upstream(error) from error
            if result.status is MkdirStatus.ALREADY_EXISTED:
                logger.debug("Directory %s appeared concurrently, continuing", segment)
            results.append(result)
        return results


def _as_upstream(exc: NetStorageError) -> UpstreamError:
    return UpstreamError(exc.message, http_status=exc.http_status, path=exc.path)
