"""HTTP connection to an ACS host.

Wraps a single ``httpx.AsyncClient`` configured with the ACS signing hook.
Every call renders the action header, sends one request, and turns non-2xx
statuses and transport failures into :mod:`netstorage.errors` exceptions.
Nothing is retried.
"""

import logging
import time
import urllib.parse
import xml.etree.ElementTree as ET
from collections.abc import AsyncIterator
from typing import Any

import httpx

from netstorage import metrics
from netstorage.actions import ACTION_HEADER, Action, action_name, encode_action
from netstorage.auth import ACSAuth, Signer
from netstorage.errors import UpstreamError, error_for_status
from netstorage.xml_utils import parse_xml

logger = logging.getLogger(__name__)

# Streaming chunk size: 64 KB
_CHUNK_SIZE = 64 * 1024

_STARTED = "netstorage.started"


async def _log_request(request: httpx.Request) -> None:
    request.extensions[_STARTED] = time.perf_counter()
    logger.debug(
        "ACS request %s %s",
        request.method,
        request.url.path,
        extra={
            "method": request.method,
            "path": request.url.path,
            "action": action_name(request.headers.get(ACTION_HEADER, "")),
        },
    )


class ACSConnection:
    """Signed HTTP access to one ACS host.

    Attributes:
        base_url: Scheme and host every request is sent to.
        signer: The signer used by the auth hook.
        metrics_enabled: Whether request counters are updated.
    """

    def __init__(
        self,
        host: str,
        signer: Signer,
        scheme: str = "https",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        metrics_enabled: bool = False,
    ) -> None:
        """Initialize the connection.

        Args:
            host: The ACS hostname.
            signer: Signer holding the account credentials.
            scheme: URL scheme, "https" unless testing.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests inject a MockTransport).
            metrics_enabled: Record Prometheus counters for every response.
        """
        self.base_url = f"{scheme}://{host}"
        self.signer = signer
        self.metrics_enabled = metrics_enabled
        if metrics_enabled:
            metrics.init_metrics()

        client_kwargs: dict[str, Any] = {
            "base_url": self.base_url,
            "auth": ACSAuth(signer),
            "timeout": httpx.Timeout(timeout),
            "follow_redirects": False,
            "event_hooks": {"request": [_log_request], "response": [self._on_response]},
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**client_kwargs)

    async def _on_response(self, response: httpx.Response) -> None:
        request = response.request
        action = action_name(request.headers.get(ACTION_HEADER, ""))
        started = request.extensions.get(_STARTED)
        duration_ms = None
        if started is not None:
            # Time to response headers; the body may still be unread.
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.debug(
            "ACS response %s %s -> %d",
            request.method,
            request.url.path,
            response.status_code,
            extra={
                "method": request.method,
                "path": request.url.path,
                "action": action,
                "status": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        if self.metrics_enabled:
            metrics.record_request(
                action,
                response.status_code,
                sent=int(request.headers.get("content-length", 0) or 0),
                received=int(response.headers.get("content-length", 0) or 0),
            )

    async def close(self) -> None:
        """Close the underlying HTTP client and its connection pool."""
        await self._client.aclose()

    @staticmethod
    def _url(remote_path: str) -> str:
        return urllib.parse.quote(remote_path, safe="/")

    @staticmethod
    def _headers(
        action: str | Action, params: dict[str, str] | None, extra: dict[str, str] | None
    ) -> dict[str, str]:
        headers = {ACTION_HEADER: encode_action(action, params)}
        if extra:
            headers.update(extra)
        return headers

    async def request(
        self,
        method: str,
        remote_path: str,
        action: str | Action,
        params: dict[str, str] | None = None,
        content: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send one ACS request and return the successful response.

        Args:
            method: HTTP method.
            remote_path: Remote path including the cp-code segment.
            action: The ACS action name.
            params: Ordered action parameters.
            content: Request body (bytes or an async byte iterator).
            headers: Additional request headers.

        Returns:
            The response, body already read.

        Raises:
            NetStorageError: Mapped from the response status, or
                UpstreamError when the request itself fails (connection,
                timeout, undecodable body).
        """
        try:
            response = await self._client.request(
                method,
                self._url(remote_path),
                headers=self._headers(action, params, headers),
                content=content,
            )
        except httpx.RequestError as exc:
            raise UpstreamError(
                f"{method} {remote_path} failed: {exc}", path=remote_path
            ) from exc

        if response.is_error:
            raise error_for_status(response.status_code, remote_path)
        return response

    async def stream(
        self,
        method: str,
        remote_path: str,
        action: str | Action,
        params: dict[str, str] | None = None,
        chunk_size: int = _CHUNK_SIZE,
    ) -> AsyncIterator[bytes]:
        """Send one ACS request and yield the response body in chunks.

        Raises:
            NetStorageError: As for :meth:`request`, raised on first iteration.
        """
        try:
            async with self._client.stream(
                method,
                self._url(remote_path),
                headers=self._headers(action, params, None),
            ) as response:
                if response.is_error:
                    raise error_for_status(response.status_code, remote_path)
                async for chunk in response.aiter_bytes(chunk_size):
                    yield chunk
        except httpx.RequestError as exc:
            raise UpstreamError(
                f"{method} {remote_path} failed: {exc}", path=remote_path
            ) from exc

    async def fetch_xml(
        self,
        remote_path: str,
        action: str | Action,
        params: dict[str, str] | None = None,
    ) -> ET.Element:
        """GET an XML-bearing action and parse the response body."""
        response = await self.request("GET", remote_path, action, params)
        return parse_xml(response.content, path=remote_path)
