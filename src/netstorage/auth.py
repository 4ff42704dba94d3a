"""ACS request signing for netstorage.

Implements the NetStorage HMAC-SHA256 scheme. Each request carries two
headers computed from the shared key:

    X-Akamai-ACS-Auth-Data: 5, 0.0.0.0, 0.0.0.0, <epoch>, <nonce>, <key name>
    X-Akamai-ACS-Auth-Sign: base64(hmac_sha256(key, <signable string>))

The signable string is the auth data followed by the request path, a newline,
``x-akamai-acs-action:<action>`` and a final newline. The action header is
signed exactly as transmitted.
"""

import base64
import hashlib
import hmac
import logging
import secrets
import time
from collections.abc import Callable, Generator
from dataclasses import dataclass, field

import httpx

from netstorage.actions import ACTION_HEADER
from netstorage.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Constants
AUTH_DATA_HEADER = "X-Akamai-ACS-Auth-Data"
AUTH_SIGN_HEADER = "X-Akamai-ACS-Auth-Sign"
AUTH_VERSION = 5
RESERVED_FIELD = "0.0.0.0"
SIGNED_ACTION_PREFIX = "x-akamai-acs-action:"


@dataclass(frozen=True)
class Credentials:
    """Shared signing secret and the name it is registered under.

    Attributes:
        key: The shared secret.
        key_name: The upload account key name.
    """

    key: str | bytes = field(repr=False)
    key_name: str

    def key_bytes(self) -> bytes:
        return self.key.encode("utf-8") if isinstance(self.key, str) else bytes(self.key)


@dataclass(frozen=True)
class SignatureContext:
    """Per-request inputs to the signature.

    Attributes:
        timestamp: Unix epoch seconds.
        nonce: Unique token for this request.
        request_path: URL path component, query stripped.
        action: The rendered action header value.
    """

    timestamp: int
    nonce: str
    request_path: str
    action: str


@dataclass(frozen=True)
class AuthHeaders:
    """The two headers produced by :meth:`Signer.sign`."""

    auth_data: str
    auth_sign: str

    def as_dict(self) -> dict[str, str]:
        return {AUTH_DATA_HEADER: self.auth_data, AUTH_SIGN_HEADER: self.auth_sign}


def make_nonce() -> str:
    """Return a fresh random nonce."""
    return secrets.token_hex(16)


class Signer:
    """Computes ACS auth headers from immutable credentials.

    The clock and nonce source are injectable so tests can pin them.

    Attributes:
        credentials: The credentials used for every signature.
    """

    def __init__(
        self,
        credentials: Credentials | None,
        clock: Callable[[], float] = time.time,
        nonce_factory: Callable[[], str] = make_nonce,
    ) -> None:
        self.credentials = credentials
        self._clock = clock
        self._nonce_factory = nonce_factory

    def context_for(self, request_path: str, action: str) -> SignatureContext:
        """Build a fresh signature context for one request.

        Args:
            request_path: The request URL path (a query string is dropped).
            action: The action header value.

        Returns:
            A context with the current time and a new nonce.
        """
        return SignatureContext(
            timestamp=int(self._clock()),
            nonce=self._nonce_factory(),
            request_path=request_path.split("?", 1)[0],
            action=action,
        )

    def sign(self, ctx: SignatureContext) -> AuthHeaders:
        """Sign a request.

        Args:
            ctx: The signature context.

        Returns:
            The auth data and signature header values.

        Raises:
            ConfigurationError: If the key or key name is not set.
        """
        creds = self.credentials
        if creds is None or not creds.key or not creds.key_name:
            raise ConfigurationError("A key and key name are required to sign requests")

        auth_data = build_auth_data(ctx.timestamp, ctx.nonce, creds.key_name)
        string_to_sign = build_string_to_sign(auth_data, ctx.request_path, ctx.action)
        return AuthHeaders(
            auth_data=auth_data,
            auth_sign=compute_signature(creds.key_bytes(), string_to_sign),
        )


def build_auth_data(timestamp: int, nonce: str, key_name: str) -> str:
    """Build the ``X-Akamai-ACS-Auth-Data`` header value."""
    return ", ".join(
        [str(AUTH_VERSION), RESERVED_FIELD, RESERVED_FIELD, str(timestamp), nonce, key_name]
    )


def build_string_to_sign(auth_data: str, request_path: str, action: str) -> str:
    """Build the canonical string covered by the signature."""
    return f"{auth_data}{request_path}\n{SIGNED_ACTION_PREFIX}{action.strip()}\n"


def compute_signature(key: bytes, string_to_sign: str) -> str:
    """Compute the Base64-encoded HMAC-SHA256 signature."""
    digest = hmac.new(key, string_to_sign.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def _request_path(request: httpx.Request) -> str:
    """Return the path exactly as it goes on the wire, without the query."""
    return request.url.raw_path.split(b"?", 1)[0].decode("ascii")


class ACSAuth(httpx.Auth):
    """httpx auth hook that signs requests carrying an ACS action header.

    httpx runs :meth:`auth_flow` immediately before a request is sent, after
    the caller has set every header, so the signature always covers the final
    action string. Requests without an action header pass through unsigned.
    """

    def __init__(self, signer: Signer) -> None:
        self.signer = signer

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        action = request.headers.get(ACTION_HEADER)
        if action is None:
            yield request
            return

        ctx = self.signer.context_for(_request_path(request), action)
        for name, value in self.signer.sign(ctx).as_dict().items():
            request.headers[name] = value
        logger.debug("Signed %s %s", request.method, ctx.request_path)
        yield request
