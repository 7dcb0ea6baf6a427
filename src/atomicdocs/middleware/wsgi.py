"""
Docs proxy middleware for WSGI apps (Flask and friends).

Usage:
    app.wsgi_app = WSGIDocsMiddleware(app.wsgi_app, proxy=DocsProxy(settings), app_port=5000)
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Callable, Iterable, Optional

from atomicdocs.proxy import DocsProxy


def _status_line(code: int) -> str:
    try:
        return f"{code} {HTTPStatus(code).phrase}"
    except ValueError:
        return f"{code} Unknown"


class WSGIDocsMiddleware:
    def __init__(self, app: Callable[..., Iterable[bytes]], proxy: Optional[DocsProxy] = None, app_port: Optional[int] = None):
        self.app = app
        self.proxy = proxy or DocsProxy()
        self.app_port = app_port

    def __call__(self, environ: dict[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        path = environ.get("PATH_INFO") or "/"
        if not self.proxy.matches(path):
            return self.app(environ, start_response)

        result = self.proxy.fetch(path, self._port_for(environ))
        start_response(
            _status_line(result.status_code),
            [
                ("Content-Type", result.content_type),
                ("Content-Length", str(len(result.body))),
            ],
        )
        return [result.body]

    def _port_for(self, environ: dict[str, Any]) -> Optional[int]:
        if self.app_port is not None:
            return self.app_port
        port = environ.get("SERVER_PORT")
        try:
            return int(port) if port else None
        except ValueError:
            return None
