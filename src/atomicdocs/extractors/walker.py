from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Sequence, Union

from atomicdocs.domain.models import method_sort_key
from atomicdocs.extractors.patterns import regex_to_prefix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawRoute:
    method: str
    path: str
    handler: Any = None  # callable, source string, or None


@dataclass(frozen=True)
class RouteLayer:
    """Terminal layer: one local path answering one or more methods."""

    path: str
    methods: tuple[str, ...]
    handler: Any = None


@dataclass(frozen=True)
class MountLayer:
    """
    Nested router / nested app mounted under a prefix.

    `path` is the framework-reported literal prefix, when it has one.
    `path_regex` is the matching regex the prefix can be recovered from.
    `children` may be a callable so nested structures are only touched
    when the walk actually descends into them.
    """

    children: Union[Sequence["Layer"], Callable[[], Iterable["Layer"]]] = field(default=())
    path: Optional[str] = None
    path_regex: Optional[str] = None

    def prefix(self) -> str:
        if self.path is not None:
            return self.path.rstrip("/")
        if self.path_regex:
            return regex_to_prefix(self.path_regex)
        return ""

    def iter_children(self) -> Iterable["Layer"]:
        if callable(self.children):
            return self.children()
        return self.children


Layer = Union[RouteLayer, MountLayer]


def walk_layers(layers: Iterable[Any], base_path: str = "") -> list[RawRoute]:
    """
    Depth-first walk producing one RawRoute per (layer, method), paths fully
    resolved against every enclosing mount prefix. Framework order is kept;
    duplicates are reported as many times as they are registered.
    """
    out: list[RawRoute] = []
    _walk(layers, base_path, out)
    return out


def _walk(layers: Iterable[Any], base_path: str, out: list[RawRoute]) -> None:
    for layer in layers or ():
        if isinstance(layer, RouteLayer):
            for method in sorted({m.upper() for m in layer.methods}, key=method_sort_key):
                out.append(RawRoute(method=method, path=base_path + layer.path, handler=layer.handler))
        elif isinstance(layer, MountLayer):
            _walk(layer.iter_children(), base_path + layer.prefix(), out)
        else:
            logger.debug("Skipping unrecognized router layer %r", layer)
