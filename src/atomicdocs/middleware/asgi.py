"""
Docs proxy middleware for Starlette / FastAPI.

Usage:
    app.add_middleware(ASGIDocsMiddleware, proxy=DocsProxy(settings), app_port=8000)
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from atomicdocs.proxy import DocsProxy


class ASGIDocsMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, proxy: Optional[DocsProxy] = None, app_port: Optional[int] = None):
        super().__init__(app)
        self.proxy = proxy or DocsProxy()
        self.app_port = app_port

    async def dispatch(self, request: Request, call_next):
        if not self.proxy.matches(request.url.path):
            return await call_next(request)

        result = await self.proxy.afetch(request.url.path, self._port_for(request))
        return Response(
            content=result.body,
            status_code=result.status_code,
            headers={"content-type": result.content_type},
        )

    def _port_for(self, request: Request) -> Optional[int]:
        if self.app_port is not None:
            return self.app_port
        server = request.scope.get("server")
        if server and len(server) > 1 and server[1] is not None:
            return int(server[1])
        return None
