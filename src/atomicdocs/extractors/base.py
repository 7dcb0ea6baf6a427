from __future__ import annotations

import logging
from typing import Any, Iterable, Protocol, runtime_checkable

from atomicdocs.domain.models import RouteDescriptor
from atomicdocs.extractors.walker import RawRoute
from atomicdocs.normalize import normalize_routes

logger = logging.getLogger(__name__)


@runtime_checkable
class RouteSource(Protocol):
    def list_routes(self) -> list[RouteDescriptor]: ...


class StaticRouteSource:
    """Hand-declared route table for hosts no adapter understands."""

    def __init__(
        self,
        routes: Iterable[tuple[str, str] | tuple[str, str, Any]],
        docs_prefix: str = "/docs",
        max_handler_chars: int = 8000,
    ):
        self._routes = list(routes)
        self.docs_prefix = docs_prefix
        self.max_handler_chars = max_handler_chars

    def list_routes(self) -> list[RouteDescriptor]:
        raw = []
        for entry in self._routes:
            method, path, *rest = entry
            raw.append(RawRoute(method=method, path=path, handler=rest[0] if rest else None))
        return normalize_routes(raw, docs_prefix=self.docs_prefix, max_handler_chars=self.max_handler_chars)


class EmptyRouteSource:
    """Stands in for a host whose routing internals were not recognized."""

    def __init__(self, reason: str = ""):
        self.reason = reason

    def list_routes(self) -> list[RouteDescriptor]:
        logger.warning("AtomicDocs: no routes discovered (%s)", self.reason or "unrecognized host app")
        return []
