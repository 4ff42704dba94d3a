"""ACS XML response parsing helpers for netstorage.

``stat``, ``dir``, ``list`` and ``du`` answer with small XML documents::

    <stat directory="/123456/dir">
      <file type="file" name="a.txt" mtime="1557051806" size="5" md5="..."/>
    </stat>

    <list directory="/123456/dir">
      <file type="file" name="sub/b.txt" mtime="..." size="..."/>
      <resume start="123456/dir/sub/c.txt"/>
    </list>

    <du directory="/123456/dir">
      <du-info files="12" bytes="4096"/>
    </du>
"""

import xml.etree.ElementTree as ET

from netstorage.errors import UpstreamError

# A listing body with exactly this content means the directory was removed
DELETED_SENTINEL = "deleted"


def parse_xml(body: bytes | str, path: str = "") -> ET.Element:
    """Parse an XML response body.

    Args:
        body: The raw response body.
        path: The request path, used in the error message.

    Returns:
        The document root element.

    Raises:
        UpstreamError: If the body is not well-formed XML.
    """
    try:
        return ET.fromstring(body)
    except ET.ParseError as exc:
        raise UpstreamError(f"Malformed XML response: {exc}", path=path) from exc


def directory_of(root: ET.Element) -> str:
    """Return the ``directory`` attribute of a response root (may be empty)."""
    return root.get("directory", "")


def file_elements(root: ET.Element) -> list[ET.Element]:
    """Return the ``<file>`` children of a response root, in document order."""
    return root.findall("file")


def resume_cursor(root: ET.Element) -> str | None:
    """Return the next-page cursor of a ``list`` response, if there is one."""
    resume = root.find("resume")
    if resume is None:
        return None
    return resume.get("start") or None


def parse_disk_usage(root: ET.Element) -> tuple[int, int]:
    """Extract ``(files, bytes)`` from a ``du`` response.

    Raises:
        UpstreamError: If the ``du-info`` element is missing or not numeric.
    """
    info = root.find("du-info")
    if info is None:
        raise UpstreamError("du response has no du-info element")
    try:
        return int(info.get("files", "0")), int(info.get("bytes", "0"))
    except ValueError as exc:
        raise UpstreamError(f"Malformed du-info element: {exc}") from exc


def is_deleted_sentinel(body: bytes) -> bool:
    """True when a listing body is the literal ``deleted`` marker."""
    return body.strip() == DELETED_SENTINEL.encode("ascii")
