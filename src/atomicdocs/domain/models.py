from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


# display / emission order for methods declared on a single route
METHOD_ORDER = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD")


class RouteDescriptor(BaseModel):
    """One discovered endpoint, in the shape the docs service expects on the wire."""

    method: str
    path: str
    handler: str = ""

    @field_validator("method")
    @classmethod
    def _upper_method(cls, v: str) -> str:
        return v.strip().upper()


class RouteBatch(BaseModel):
    routes: list[RouteDescriptor] = Field(default_factory=list)
    port: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "routes": [r.model_dump() for r in self.routes],
            "port": self.port,
        }


class ServiceState(str, Enum):
    NOT_STARTED = "not_started"
    STARTING = "starting"
    READY = "ready"
    UNAVAILABLE = "unavailable"  # spawn failed; an external instance may still answer


def method_sort_key(method: str) -> tuple[int, str]:
    m = method.upper()
    if m in METHOD_ORDER:
        return (METHOD_ORDER.index(m), m)
    return (len(METHOD_ORDER), m)
