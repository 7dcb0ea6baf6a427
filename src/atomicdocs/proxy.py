"""
Reverse proxy for the docs endpoints.

Only the docs page and docs JSON paths are forwarded; every other request is
left to the host app. Upstream status, content type and body are relayed as
they are. When the docs service cannot be reached, or its answer cannot be read,
the caller gets a plain 503 instead of an exception.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from atomicdocs.config import AtomicDocsSettings

logger = logging.getLogger(__name__)

UNAVAILABLE_STATUS = 503
UNAVAILABLE_BODY = b"AtomicDocs unavailable"
TOO_LARGE_STATUS = 502
TOO_LARGE_BODY = b"AtomicDocs response too large"
DEFAULT_CONTENT_TYPE = "text/html"


@dataclass(frozen=True)
class ProxyResponse:
    status_code: int
    content_type: str
    body: bytes

    @classmethod
    def unavailable(cls) -> "ProxyResponse":
        return cls(UNAVAILABLE_STATUS, "text/plain; charset=utf-8", UNAVAILABLE_BODY)

    @classmethod
    def too_large(cls) -> "ProxyResponse":
        return cls(TOO_LARGE_STATUS, "text/plain; charset=utf-8", TOO_LARGE_BODY)


class _BodyTooLarge(Exception):
    pass


class DocsProxy:
    def __init__(
        self,
        settings: Optional[AtomicDocsSettings] = None,
        transport: Optional[httpx.BaseTransport] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or AtomicDocsSettings()
        self._transport = transport
        self._async_transport = async_transport

    def matches(self, path: str) -> bool:
        return path in (self.settings.docs_path, self.settings.docs_json_path)

    def _timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.settings.read_timeout, connect=self.settings.connect_timeout)

    def _headers(self, app_port: Optional[int]) -> dict[str, str]:
        if app_port is None:
            return {}
        return {self.settings.app_port_header: str(app_port)}

    def fetch(self, path: str, app_port: Optional[int]) -> ProxyResponse:
        url = self.settings.url_for(path)
        try:
            with httpx.Client(transport=self._transport, timeout=self._timeout()) as client:
                with client.stream("GET", url, headers=self._headers(app_port)) as resp:
                    body = bytearray()
                    for chunk in resp.iter_bytes():
                        body += chunk
                        self._check_size(len(body))
                    return self._relay(resp, bytes(body))
        except httpx.HTTPError as e:
            logger.warning("AtomicDocs: docs request for %s failed: %s", path, e)
            return ProxyResponse.unavailable()
        except _BodyTooLarge:
            logger.warning("AtomicDocs: docs response for %s exceeded %s bytes", path, self.settings.max_body_bytes)
            return ProxyResponse.too_large()

    async def afetch(self, path: str, app_port: Optional[int]) -> ProxyResponse:
        url = self.settings.url_for(path)
        try:
            async with httpx.AsyncClient(transport=self._async_transport, timeout=self._timeout()) as client:
                async with client.stream("GET", url, headers=self._headers(app_port)) as resp:
                    body = bytearray()
                    async for chunk in resp.aiter_bytes():
                        body += chunk
                        self._check_size(len(body))
                    return self._relay(resp, bytes(body))
        except httpx.HTTPError as e:
            logger.warning("AtomicDocs: docs request for %s failed: %s", path, e)
            return ProxyResponse.unavailable()
        except _BodyTooLarge:
            logger.warning("AtomicDocs: docs response for %s exceeded %s bytes", path, self.settings.max_body_bytes)
            return ProxyResponse.too_large()

    def _check_size(self, size: int) -> None:
        if size > self.settings.max_body_bytes:
            raise _BodyTooLarge()

    @staticmethod
    def _relay(resp: httpx.Response, body: bytes) -> ProxyResponse:
        # upstream omits the type for the HTML docs page
        content_type = resp.headers.get("content-type") or DEFAULT_CONTENT_TYPE
        return ProxyResponse(status_code=resp.status_code, content_type=content_type, body=body)
