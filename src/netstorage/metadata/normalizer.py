"""Normalisation of ACS ``<file>`` elements into MetadataRecord instances."""

import mimetypes
import posixpath
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING

from netstorage.metadata.models import FileType, MetadataRecord

if TYPE_CHECKING:
    from netstorage.paths import PathMapper

# Attributes that map onto MetadataRecord fields and never land in ``extra``
RESERVED_ATTRIBUTES = frozenset(
    {"type", "name", "path", "mtime", "timestamp", "size", "md5", "mimetype", "visibility"}
)

DEFAULT_MIMETYPE = "text/plain"


def guess_mimetype(name: str) -> str:
    """Infer a MIME type from a file name's extension."""
    mime_type, _ = mimetypes.guess_type(name, strict=False)
    return mime_type or DEFAULT_MIMETYPE


def _file_type(value: str | None) -> FileType:
    try:
        return FileType(value or FileType.FILE.value)
    except ValueError:
        return FileType.FILE


class MetadataNormalizer:
    """Builds canonical records from protocol XML.

    Attributes:
        mapper: Path mapper whose root is stripped from every record path.
    """

    def __init__(self, mapper: "PathMapper") -> None:
        self.mapper = mapper

    def join(self, directory: str, name: str) -> str:
        """Join a response ``directory`` attribute and a file ``name``."""
        path = f"{directory.rstrip('/')}/{name}" if directory else name
        if not path.startswith("/"):
            path = "/" + path
        return path

    def normalize(self, directory: str, element: ET.Element | None = None) -> MetadataRecord:
        """Convert one ``<file>`` element into a MetadataRecord.

        Args:
            directory: The ``directory`` attribute of the enclosing response.
            element: The ``<file>`` element, or None to describe ``directory``
                itself.

        Returns:
            The normalised record, with the remote root stripped from its path.
        """
        if element is None:
            remote = directory if directory.startswith("/") else "/" + directory
            path = self.mapper.strip(remote.rstrip("/") or "/")
            return MetadataRecord(
                type=FileType.DIR,
                path=path,
                name=posixpath.basename(path.rstrip("/")),
            )

        attributes = dict(element.attrib)
        raw_name = attributes.get("name", "")
        path = self.mapper.strip(self.join(directory, raw_name))
        record = MetadataRecord(
            type=_file_type(attributes.get("type")),
            path=path,
            name=posixpath.basename(raw_name.rstrip("/")),
            timestamp=attributes.get("mtime", ""),
            size=attributes.get("size"),
            checksum=attributes.get("md5"),
            mimetype=attributes.get("mimetype"),
        )
        record.extra = {
            key: value for key, value in attributes.items() if key not in RESERVED_ATTRIBUTES
        }

        if record.mimetype is None and not record.is_dir:
            record.mimetype = guess_mimetype(record.name)

        return record
