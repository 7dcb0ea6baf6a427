"""
One-call wiring of atomicdocs into a host app.

FastAPI / Starlette:
    app = FastAPI(docs_url=None)
    atomic_docs(app, port=8000)

Flask:
    app = Flask(__name__)
    atomic_docs(app, port=5000)

`atomic_docs` installs the docs proxy, starts the docs service and schedules
a registration that collects routes once the service answers, so routes
declared after the call are still picked up. `register` collects right away,
for hosts that want to register explicitly after all routes exist.
"""

from __future__ import annotations

import atexit
import logging
import threading
from typing import Any, Optional

import httpx

from atomicdocs.client import RegistrationClient, RegistrationHandle
from atomicdocs.config import AtomicDocsSettings, get_settings
from atomicdocs.domain.models import RouteBatch, RouteDescriptor
from atomicdocs.extractors.detect import detect_framework, detect_route_source
from atomicdocs.middleware.asgi import ASGIDocsMiddleware
from atomicdocs.middleware.wsgi import WSGIDocsMiddleware
from atomicdocs.proxy import DocsProxy
from atomicdocs.service.process import DocsService

logger = logging.getLogger(__name__)


class AtomicDocs:
    def __init__(
        self,
        settings: Optional[AtomicDocsSettings] = None,
        service: Optional[DocsService] = None,
        client: Optional[RegistrationClient] = None,
        proxy: Optional[DocsProxy] = None,
        transport: Optional[httpx.BaseTransport] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.service = service or DocsService(self.settings, transport=transport)
        self.client = client or RegistrationClient(self.settings, service=self.service, transport=transport)
        self.proxy = proxy or DocsProxy(self.settings, transport=transport, async_transport=async_transport)

    def collect(self, app: Any) -> list[RouteDescriptor]:
        return detect_route_source(app, self.settings).list_routes()

    def batch_for(self, app: Any, port: int) -> RouteBatch:
        return RouteBatch(routes=self.collect(app), port=port)

    def install_proxy(self, app: Any, port: Optional[int] = None) -> bool:
        framework = detect_framework(app)
        if framework == "starlette":
            app.add_middleware(ASGIDocsMiddleware, proxy=self.proxy, app_port=port)
            return True
        if framework == "flask":
            app.wsgi_app = WSGIDocsMiddleware(app.wsgi_app, proxy=self.proxy, app_port=port)
            return True
        logger.warning("AtomicDocs: unsupported app type %s, docs proxy not installed", type(app).__name__)
        return False

    def init_app(self, app: Any, port: Optional[int] = None) -> Optional[RegistrationHandle]:
        if not self.install_proxy(app, port):
            return None
        self.service.start()
        if port is None:
            logger.info("AtomicDocs: no app port given, call register(app, port) once it is known")
            return None
        return self.client.submit(lambda: self.batch_for(app, port))

    def register(self, app: Any, port: int) -> RegistrationHandle:
        self.service.start()
        return self.client.submit(self.batch_for(app, port))

    def shutdown(self) -> None:
        self.client.close()
        self.service.shutdown()


_default: Optional[AtomicDocs] = None
_default_lock = threading.Lock()


def get_default() -> AtomicDocs:
    """Process-wide instance behind the module-level helpers, built on first use."""
    global _default
    with _default_lock:
        if _default is None:
            _default = AtomicDocs()
            atexit.register(_default.shutdown)
        return _default


def atomic_docs(app: Any, port: Optional[int] = None) -> Optional[RegistrationHandle]:
    return get_default().init_app(app, port)


def register(app: Any, port: int) -> RegistrationHandle:
    return get_default().register(app, port)


def shutdown() -> None:
    global _default
    with _default_lock:
        inst, _default = _default, None
    if inst is not None:
        atexit.unregister(inst.shutdown)
        inst.shutdown()
