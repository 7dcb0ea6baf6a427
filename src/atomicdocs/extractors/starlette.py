from __future__ import annotations

import inspect
import logging
from functools import partial
from typing import Any, Iterable

from starlette.routing import Host, Mount, Route, WebSocketRoute

from atomicdocs.domain.models import RouteDescriptor
from atomicdocs.errors import DiscoveryError
from atomicdocs.extractors.walker import Layer, MountLayer, RouteLayer, walk_layers
from atomicdocs.normalize import normalize_routes

logger = logging.getLogger(__name__)

_ENDPOINT_METHODS = ("get", "post", "put", "patch", "delete", "options", "head")


def starlette_routes_of(app: Any) -> list[Any]:
    """Top-level route list of a Starlette/FastAPI app or a bare Router."""
    routes = getattr(app, "routes", None)
    if routes is None:
        router = getattr(app, "router", None)
        routes = getattr(router, "routes", None)
    if not isinstance(routes, list):
        raise DiscoveryError(f"{type(app).__name__} exposes no Starlette route list")
    return routes


class StarletteRouteSource:
    """
    RouteSource over Starlette / FastAPI routing.

    `Route` / `APIRoute` become terminal layers; `Mount` (sub-routers and
    sub-apps) and `Host` become mount layers walked depth-first.
    """

    def __init__(
        self,
        app: Any,
        docs_prefix: str = "/docs",
        include_hidden: bool = False,
        max_handler_chars: int = 8000,
    ):
        starlette_routes_of(app)  # fail fast on hosts this adapter cannot read
        self.app = app
        self.docs_prefix = docs_prefix
        self.include_hidden = include_hidden
        self.max_handler_chars = max_handler_chars

    def list_routes(self) -> list[RouteDescriptor]:
        try:
            raw = walk_layers(self._to_layers(starlette_routes_of(self.app)))
        except (AttributeError, TypeError, DiscoveryError) as e:
            logger.warning("AtomicDocs: could not walk Starlette routes: %s", e)
            return []
        return normalize_routes(raw, docs_prefix=self.docs_prefix, max_handler_chars=self.max_handler_chars)

    def _to_layers(self, routes: Iterable[Any]) -> list[Layer]:
        layers: list[Layer] = []
        for route in routes:
            if isinstance(route, WebSocketRoute):
                continue
            if isinstance(route, Route):
                if not self.include_hidden and not getattr(route, "include_in_schema", True):
                    continue
                methods = _route_methods(route)
                if methods:
                    layers.append(RouteLayer(path=route.path, methods=methods, handler=route.endpoint))
            elif isinstance(route, Mount):
                regex = getattr(route, "path_regex", None)
                layers.append(
                    MountLayer(
                        children=partial(self._mount_children, route),
                        path=route.path,
                        path_regex=regex.pattern if regex is not None else None,
                    )
                )
            elif isinstance(route, Host):
                layers.append(MountLayer(children=partial(self._mount_children, route), path=""))
            else:
                logger.debug("Skipping unsupported Starlette route %r", route)
        return layers

    def _mount_children(self, mount: Any) -> list[Layer]:
        return self._to_layers(getattr(mount, "routes", None) or [])


def _route_methods(route: Route) -> tuple[str, ...]:
    methods = route.methods
    if methods is None:
        # class-based endpoint: whatever verbs the class implements
        endpoint = route.endpoint
        if inspect.isclass(endpoint):
            return tuple(m.upper() for m in _ENDPOINT_METHODS if hasattr(endpoint, m))
        return ()
    methods = {m.upper() for m in methods}
    # Starlette adds HEAD to every GET route
    if "GET" in methods:
        methods.discard("HEAD")
    return tuple(methods)
