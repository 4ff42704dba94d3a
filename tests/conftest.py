"""Shared pytest fixtures for netstorage tests.

FakeNetStorage is an in-memory ACS server plugged into httpx through
``httpx.MockTransport``. It checks every request signature, records every
request, and implements the file-store and object-store flavours of the
actions the client uses.
"""

import hashlib
import mimetypes
import posixpath
import urllib.parse
import xml.etree.ElementTree as ET

import httpx
import pytest

from netstorage.actions import ACTION_HEADER
from netstorage.auth import (
    AUTH_DATA_HEADER,
    AUTH_SIGN_HEADER,
    Credentials,
    Signer,
    build_string_to_sign,
    compute_signature,
)
from netstorage.client import StorageClient
from netstorage.connection import ACSConnection
from netstorage.paths import PathMapper

KEY = "netstorage-key"
KEY_NAME = "key-name"
HOST = "testing.akamaihd.net.example.org"
CP_CODE = "123456"
MTIME = "1557051806"


class FakeNetStorage:
    """In-memory ACS server.

    Paths are stored as remote paths (``/123456/a/b.txt``). The object-store
    flavour treats any prefix of a stored path as an implicit directory.

    Attributes:
        variant: "file-store" or "object-store".
        page_size: Entries per ``list`` page; 0 means a single page.
        files: Remote path to content.
        dirs: Explicitly created directories.
        requests: Every request received, in order.
        failures: (action, remote path) to a forced status code.
        deleted_listings: Remote paths whose listing answers ``deleted``.
    """

    def __init__(self, variant: str = "object-store", page_size: int = 0) -> None:
        self.variant = variant
        self.page_size = page_size
        self.files: dict[str, bytes] = {}
        self.dirs: set[str] = {f"/{CP_CODE}"}
        self.requests: list[httpx.Request] = []
        self.failures: dict[tuple[str, str], int] = {}
        self.deleted_listings: set[str] = set()

    # -- seeding and inspection -------------------------------------------------

    def add_file(self, remote: str, content: bytes = b"") -> None:
        self.files[remote] = content
        if self.variant == "file-store":
            parent = posixpath.dirname(remote)
            while parent not in ("", "/") and parent not in self.dirs:
                self.dirs.add(parent)
                parent = posixpath.dirname(parent)

    def add_dir(self, remote: str) -> None:
        while remote not in ("", "/"):
            self.dirs.add(remote)
            remote = posixpath.dirname(remote)

    def calls(self) -> list[tuple[str, str, str]]:
        """(method, action, remote path) for every request received."""
        result = []
        for request in self.requests:
            params = dict(urllib.parse.parse_qsl(request.headers[ACTION_HEADER]))
            result.append((request.method, params["action"], _remote_path(request)))
        return result

    def actions(self) -> list[str]:
        return [action for _, action, _ in self.calls()]

    # -- state helpers ----------------------------------------------------------

    def is_dir(self, remote: str) -> bool:
        if remote in self.dirs:
            return True
        if self.variant != "object-store":
            return False
        below = remote + "/"
        return any(path.startswith(below) for path in [*self.files, *self.dirs])

    def exists(self, remote: str) -> bool:
        return remote in self.files or self.is_dir(remote)

    def _entries_below(self, remote: str) -> list[str]:
        below = remote + "/"
        return sorted(
            path for path in [*self.files, *self.dirs] if path.startswith(below)
        )

    def _file_element(self, parent: ET.Element, remote: str, name: str) -> None:
        if remote in self.files:
            content = self.files[remote]
            ET.SubElement(
                parent,
                "file",
                type="file",
                name=name,
                mtime=MTIME,
                size=str(len(content)),
                md5=hashlib.md5(content).hexdigest(),
            )
        elif remote in self.dirs:
            ET.SubElement(parent, "file", type="dir", name=name, mtime=MTIME)
        else:
            ET.SubElement(parent, "file", type="dir", name=name, mtime=MTIME, implicit="true")

    @staticmethod
    def _xml(root: ET.Element) -> httpx.Response:
        return httpx.Response(200, content=ET.tostring(root), headers={"Content-Type": "text/xml"})

    # -- transport entry point --------------------------------------------------

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        action_header = request.headers.get(ACTION_HEADER)
        if action_header is None:
            return httpx.Response(400, content=b"missing action header")
        if not self._signature_valid(request, action_header):
            return httpx.Response(403, content=b"bad signature")

        params = dict(urllib.parse.parse_qsl(action_header))
        action = params["action"]
        remote = _remote_path(request)

        forced = self.failures.get((action, remote))
        if forced is not None:
            return httpx.Response(forced)

        handler = getattr(self, f"_handle_{action}", None)
        if handler is None:
            return httpx.Response(400, content=b"unknown action")
        return handler(request, remote, params)

    def _signature_valid(self, request: httpx.Request, action_header: str) -> bool:
        auth_data = request.headers.get(AUTH_DATA_HEADER, "")
        fields = auth_data.split(", ")
        if len(fields) != 6 or fields[0] != "5" or fields[5] != KEY_NAME:
            return False
        path = request.url.raw_path.split(b"?", 1)[0].decode("ascii")
        expected = compute_signature(
            KEY.encode(), build_string_to_sign(auth_data, path, action_header)
        )
        return request.headers.get(AUTH_SIGN_HEADER) == expected

    # -- actions ----------------------------------------------------------------

    def _handle_stat(self, request, remote, params):
        implicit_ok = self.variant == "object-store" and params.get("implicit") == "yes"
        if remote not in self.files and remote not in self.dirs:
            if not (implicit_ok and self.is_dir(remote)):
                return httpx.Response(404)
        root = ET.Element("stat", directory=posixpath.dirname(remote))
        self._file_element(root, remote, posixpath.basename(remote))
        return self._xml(root)

    def _handle_dir(self, request, remote, params):
        if remote in self.files:
            return httpx.Response(412)
        if not self.is_dir(remote):
            return httpx.Response(404)
        if remote in self.deleted_listings:
            return httpx.Response(200, content=b"deleted")
        root = ET.Element("stat", directory=remote)
        for path in self._entries_below(remote):
            if posixpath.dirname(path) == remote:
                self._file_element(root, path, posixpath.basename(path))
        return self._xml(root)

    def _handle_list(self, request, remote, params):
        if remote in self.files:
            return httpx.Response(412)
        if not self.is_dir(remote):
            return httpx.Response(404)
        if remote in self.deleted_listings:
            return httpx.Response(200, content=b"deleted")

        names = [path.lstrip("/") for path in self._entries_below(remote)]
        start = params.get("start")
        if start is not None:
            names = [name for name in names if name > start]

        root = ET.Element("list")
        page = names[: self.page_size] if self.page_size else names
        for name in page:
            self._file_element(root, "/" + name, name)
        if self.page_size and len(names) > self.page_size:
            ET.SubElement(root, "resume", start=page[-1])
        return self._xml(root)

    def _handle_du(self, request, remote, params):
        if not self.is_dir(remote):
            return httpx.Response(404)
        below = remote + "/"
        sizes = [len(content) for path, content in self.files.items() if path.startswith(below)]
        root = ET.Element("du", directory=remote)
        ET.SubElement(root, "du-info", files=str(len(sizes)), bytes=str(sum(sizes)))
        return self._xml(root)

    def _handle_download(self, request, remote, params):
        if remote not in self.files:
            return httpx.Response(404)
        content_type = mimetypes.guess_type(remote)[0] or "application/octet-stream"
        body = b"" if request.method == "HEAD" else self.files[remote]
        return httpx.Response(
            200,
            content=body,
            headers={"Content-Type": content_type, "Content-Length": str(len(self.files[remote]))},
        )

    def _handle_upload(self, request, remote, params):
        if self.variant == "file-store" and posixpath.dirname(remote) not in self.dirs:
            return httpx.Response(412)
        content = request.content
        if "sha1" in params and params["sha1"] != hashlib.sha1(content).hexdigest():
            return httpx.Response(400, content=b"sha1 mismatch")
        self.files[remote] = content
        return httpx.Response(200)

    def _handle_mkdir(self, request, remote, params):
        if self.exists(remote):
            if self.variant == "file-store":
                return httpx.Response(409)
            return httpx.Response(200)
        if self.variant == "file-store" and posixpath.dirname(remote) not in self.dirs:
            return httpx.Response(412)
        self.dirs.add(remote)
        return httpx.Response(200)

    def _handle_delete(self, request, remote, params):
        if remote not in self.files:
            return httpx.Response(404)
        del self.files[remote]
        return httpx.Response(200)

    def _handle_rmdir(self, request, remote, params):
        if remote not in self.dirs:
            return httpx.Response(404)
        if self._entries_below(remote):
            return httpx.Response(409, content=b"directory not empty")
        self.dirs.discard(remote)
        return httpx.Response(200)

    def _handle_rename(self, request, remote, params):
        if remote not in self.files:
            return httpx.Response(404)
        destination = params.get("destination", "")
        if self.exists(destination):
            return httpx.Response(409)
        self.files[destination] = self.files.pop(remote)
        return httpx.Response(200)


def _remote_path(request: httpx.Request) -> str:
    raw = request.url.raw_path.split(b"?", 1)[0].decode("ascii")
    path = urllib.parse.unquote(raw)
    return path.rstrip("/") or "/"


def make_signer(clock_value: float = 1_500_000_000, nonce: str = "nonce") -> Signer:
    """A signer with a pinned clock and nonce."""
    return Signer(
        Credentials(key=KEY, key_name=KEY_NAME),
        clock=lambda: clock_value,
        nonce_factory=lambda: nonce,
    )


def make_connection(server: FakeNetStorage) -> ACSConnection:
    return ACSConnection(
        host=HOST,
        signer=Signer(Credentials(key=KEY, key_name=KEY_NAME)),
        transport=httpx.MockTransport(server),
    )


def make_client(
    server: FakeNetStorage, prefix: str = "test", create_prefix: bool = False
) -> StorageClient:
    return StorageClient(
        make_connection(server),
        PathMapper(CP_CODE, prefix),
        variant=server.variant,
        create_prefix=create_prefix,
    )


@pytest.fixture
def object_server() -> FakeNetStorage:
    """Object-store fake with the /test prefix directory already present."""
    server = FakeNetStorage(variant="object-store")
    server.add_dir(f"/{CP_CODE}/test")
    return server


@pytest.fixture
def file_server() -> FakeNetStorage:
    """File-store fake with the /test prefix directory already present."""
    server = FakeNetStorage(variant="file-store")
    server.add_dir(f"/{CP_CODE}/test")
    return server


@pytest.fixture
async def object_client(object_server):
    client = make_client(object_server)
    yield client
    await client.close()


@pytest.fixture
async def file_client(file_server):
    client = make_client(file_server)
    yield client
    await client.close()
