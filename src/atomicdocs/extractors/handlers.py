from __future__ import annotations

import functools
import inspect
import textwrap
from typing import Any


def handler_source(handler: Any, max_chars: int = 8000) -> str:
    """
    Best-effort source text for a route handler. Never executes the handler.

    Strings pass through (already captured elsewhere); callables go through
    inspect.getsource after unwrapping decorators and partials. Anything that
    cannot be read yields "".
    """
    if handler is None or max_chars <= 0:
        return ""
    if isinstance(handler, str):
        return handler[:max_chars]

    target = handler
    while isinstance(target, functools.partial):
        target = target.func
    try:
        target = inspect.unwrap(target)
    except ValueError:
        pass
    # class-based endpoints (Starlette HTTPEndpoint, Flask MethodView.as_view)
    target = getattr(target, "view_class", target)

    try:
        source = inspect.getsource(target)
    except (OSError, TypeError):
        return ""
    return textwrap.dedent(source)[:max_chars]
