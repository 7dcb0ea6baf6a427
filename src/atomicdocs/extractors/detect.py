from __future__ import annotations

from typing import Any, Literal, Optional

from atomicdocs.config import AtomicDocsSettings
from atomicdocs.errors import DiscoveryError
from atomicdocs.extractors.base import EmptyRouteSource, RouteSource

Framework = Literal["starlette", "flask", "unknown"]


def detect_framework(app: Any) -> Framework:
    """
    Duck-typed host detection. Looks at the routing structures the adapters
    read, not at class names, so subclasses and wrappers still match.
    """
    if app is None:
        return "unknown"
    if hasattr(getattr(app, "url_map", None), "iter_rules") and isinstance(
        getattr(app, "view_functions", None), dict
    ):
        return "flask"
    routes = getattr(app, "routes", None)
    if routes is None:
        routes = getattr(getattr(app, "router", None), "routes", None)
    if isinstance(routes, list) and callable(app):
        return "starlette"
    return "unknown"


def detect_route_source(app: Any, settings: Optional[AtomicDocsSettings] = None) -> RouteSource:
    """
    Pick the RouteSource adapter for `app`. Never raises: hosts nobody
    understands get a source that reports no routes and logs a warning.
    """
    settings = settings or AtomicDocsSettings()
    framework = detect_framework(app)
    try:
        if framework == "flask":
            from atomicdocs.extractors.flask import FlaskRouteSource

            return FlaskRouteSource(
                app,
                docs_prefix=settings.docs_prefix,
                max_handler_chars=settings.max_handler_chars,
            )
        if framework == "starlette":
            from atomicdocs.extractors.starlette import StarletteRouteSource

            return StarletteRouteSource(
                app,
                docs_prefix=settings.docs_prefix,
                include_hidden=settings.include_hidden_routes,
                max_handler_chars=settings.max_handler_chars,
            )
    except DiscoveryError as e:
        return EmptyRouteSource(str(e))
    return EmptyRouteSource(f"could not find a router structure on {type(app).__name__}")
