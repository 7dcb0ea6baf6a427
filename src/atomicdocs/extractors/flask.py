from __future__ import annotations

import logging
from typing import Any

from atomicdocs.domain.models import RouteDescriptor, method_sort_key
from atomicdocs.errors import DiscoveryError
from atomicdocs.extractors.walker import RawRoute
from atomicdocs.normalize import normalize_routes

logger = logging.getLogger(__name__)

# added by Werkzeug/Flask to every rule unless the view declares them itself
_IMPLICIT_METHODS = {"HEAD", "OPTIONS"}


class FlaskRouteSource:
    """
    RouteSource over a Flask app's flat `url_map`.

    Blueprints are already flattened into the map with their url_prefix
    applied, so no tree walk is needed; rules are read in registration order.
    """

    def __init__(self, app: Any, docs_prefix: str = "/docs", max_handler_chars: int = 8000):
        if not hasattr(getattr(app, "url_map", None), "iter_rules"):
            raise DiscoveryError(f"{type(app).__name__} has no Werkzeug url_map")
        self.app = app
        self.docs_prefix = docs_prefix
        self.max_handler_chars = max_handler_chars

    def list_routes(self) -> list[RouteDescriptor]:
        try:
            raw = list(self._raw_routes())
        except (AttributeError, TypeError) as e:
            logger.warning("AtomicDocs: could not read Flask url_map: %s", e)
            return []
        return normalize_routes(raw, docs_prefix=self.docs_prefix, max_handler_chars=self.max_handler_chars)

    def _raw_routes(self):
        view_functions = getattr(self.app, "view_functions", {}) or {}
        for rule in self.app.url_map.iter_rules():
            if rule.endpoint == "static":
                continue
            methods = {m.upper() for m in (rule.methods or ())}
            explicit = methods - _IMPLICIT_METHODS
            if explicit:
                methods = explicit
            handler = view_functions.get(rule.endpoint)
            for method in sorted(methods, key=method_sort_key):
                yield RawRoute(method=method, path=rule.rule, handler=handler)
