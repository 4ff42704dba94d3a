"""Data model types for netstorage metadata.

These dataclasses represent the canonical file/directory records built from
ACS XML responses, and the small result containers returned by listing,
disk-usage and directory-creation calls.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from netstorage.errors import NetStorageError


class FileType(str, Enum):
    """Kinds of entries reported by the protocol."""

    FILE = "file"
    DIR = "dir"
    SYMLINK = "symlink"


@dataclass
class MetadataRecord:
    """Canonical metadata for one file, directory or symlink.

    Attributes:
        type: Entry type.
        path: Path relative to the configured prefix, with a leading slash.
        name: Final path segment.
        timestamp: Modification time as epoch seconds (string, as sent).
        size: Size in bytes, if reported.
        checksum: MD5 hex digest, if reported.
        mimetype: Reported or extension-inferred MIME type (never for dirs).
        visibility: Always "public"; the protocol has no visibility control.
        extra: Any other attributes the server sent.
        children: Entries of a directory, populated by tree listings only.
    """

    type: FileType
    path: str
    name: str
    timestamp: str = ""
    size: str | None = None
    checksum: str | None = None
    mimetype: str | None = None
    visibility: str = "public"
    extra: dict[str, str] = field(default_factory=dict)
    children: list[MetadataRecord] | None = None

    @property
    def is_dir(self) -> bool:
        return self.type is FileType.DIR

    @property
    def depth(self) -> int:
        return len([seg for seg in self.path.split("/") if seg])

    def to_dict(self) -> dict[str, Any]:
        """Flatten the record into a plain dict (extras merged at top level)."""
        result: dict[str, Any] = dict(self.extra)
        result.update(
            {
                "type": self.type.value,
                "path": self.path,
                "name": self.name,
                "timestamp": self.timestamp,
                "visibility": self.visibility,
            }
        )
        if self.size is not None:
            result["size"] = self.size
        if self.checksum is not None:
            result["md5"] = self.checksum
        if self.mimetype is not None:
            result["mimetype"] = self.mimetype
        if self.children is not None:
            result["children"] = [child.to_dict() for child in self.children]
        return result


@dataclass
class ListingPage:
    """One page of a cursor-paginated ``list`` response.

    Attributes:
        directory_path: The ``directory`` attribute of the response.
        entries: Normalised records on this page, in server order.
        resume_cursor: Cursor for the next page, or None on the last page.
    """

    directory_path: str
    entries: list[MetadataRecord] = field(default_factory=list)
    resume_cursor: str | None = None


@dataclass
class DiskUsage:
    """Result of a ``du`` action."""

    files: int = 0
    bytes: int = 0


class MkdirStatus(str, Enum):
    """Outcome of a single directory creation request."""

    CREATED = "created"
    ALREADY_EXISTED = "already_existed"
    FAILED = "failed"


@dataclass
class MkdirResult:
    """Outcome of creating one directory.

    Attributes:
        status: What happened.
        path: The relative path that was created.
        error: The error when status is FAILED.
    """

    status: MkdirStatus
    path: str
    error: NetStorageError | None = None

    @property
    def ok(self) -> bool:
        return self.status is not MkdirStatus.FAILED
