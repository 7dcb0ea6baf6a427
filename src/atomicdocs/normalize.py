from __future__ import annotations

from typing import Iterable, List

from atomicdocs.domain.models import RouteDescriptor
from atomicdocs.extractors.handlers import handler_source
from atomicdocs.extractors.patterns import to_colon_params
from atomicdocs.extractors.walker import RawRoute


def is_docs_path(path: str, docs_prefix: str = "/docs") -> bool:
    return path.startswith(docs_prefix)


def normalize_path(path: str) -> str:
    p = (path or "").strip()
    if not p.startswith("/"):
        p = "/" + p
    return to_colon_params(p)


def normalize_routes(
    raw_routes: Iterable[RawRoute],
    docs_prefix: str = "/docs",
    max_handler_chars: int = 8000,
) -> List[RouteDescriptor]:
    """
    Convert raw (method, path, handler) triples into RouteDescriptors.

    - method upper-cased
    - placeholders rewritten to `:name`
    - anything under `docs_prefix` dropped so the docs never document themselves
    - handler source captured best-effort, empty when unavailable

    Input order is preserved.
    """
    out: list[RouteDescriptor] = []
    for r in raw_routes:
        method = str(r.method or "").strip().upper()
        if not method:
            continue
        path = normalize_path(str(r.path or ""))
        if is_docs_path(path, docs_prefix):
            continue
        out.append(
            RouteDescriptor(
                method=method,
                path=path,
                handler=handler_source(r.handler, max_chars=max_handler_chars),
            )
        )
    return out
