"""
Configuration for the atomicdocs middleware.

Every field can be overridden through an environment variable carrying the
ATOMICDOCS_ prefix, e.g. ATOMICDOCS_SERVICE_PORT=7000 or ATOMICDOCS_SPAWN=false.

Usage:
    from atomicdocs.config import get_settings

    settings = get_settings()
    print(settings.service_url)
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AtomicDocsSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ATOMICDOCS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # docs service location
    service_host: str = Field(default="localhost", description="Host the docs service listens on")
    service_port: int = Field(default=6174, description="Port the docs service listens on")

    # reserved paths
    docs_path: str = Field(default="/docs", description="Docs page path proxied to the service")
    docs_json_path: str = Field(default="/docs/json", description="Docs JSON path proxied to the service")
    docs_prefix: str = Field(default="/docs", description="Routes under this prefix are never registered")
    register_path: str = Field(default="/api/register", description="Registration endpoint on the service")
    health_path: str = Field(default="/health", description="Readiness probe path on the service")
    app_port_header: str = Field(default="X-App-Port", description="Header scoping docs requests to one app")

    # binary / process
    binary_path: Optional[Path] = Field(default=None, description="Explicit path to the docs service binary")
    bin_dir: Optional[Path] = Field(default=None, description="Directory holding platform binaries")
    spawn: bool = Field(default=True, description="Spawn the docs service binary on first use")

    # timeouts (seconds)
    connect_timeout: float = Field(default=2.0, gt=0)
    read_timeout: float = Field(default=10.0, gt=0)
    ready_timeout: float = Field(default=15.0, gt=0, description="Max total wait for the readiness probe")
    probe_initial_delay: float = Field(default=0.05, ge=0)
    probe_max_delay: float = Field(default=1.0, gt=0)

    # registration retry policy
    retry_initial_delay: float = Field(default=0.1, ge=0)
    retry_max_delay: float = Field(default=5.0, gt=0)
    retry_multiplier: float = Field(default=2.0, ge=1.0)
    retry_max_attempts: Optional[int] = Field(default=None, ge=1, description="None retries until cancelled")

    # limits
    max_body_bytes: int = Field(default=10 * 1024 * 1024, gt=0, description="Cap on proxied response bodies")
    max_handler_chars: int = Field(default=8000, ge=0, description="Cap on captured handler source")

    include_hidden_routes: bool = Field(
        default=False,
        description="Also register routes excluded from the host's own schema (include_in_schema=False)",
    )

    @field_validator("docs_path", "docs_json_path", "docs_prefix", "register_path", "health_path")
    @classmethod
    def _leading_slash(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"path must start with '/': {v!r}")
        return v

    @field_validator("service_port")
    @classmethod
    def _valid_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError(f"port out of range: {v}")
        return v

    @property
    def service_url(self) -> str:
        return f"http://{self.service_host}:{self.service_port}"

    def url_for(self, path: str) -> str:
        return f"{self.service_url}{path}"


@lru_cache()
def get_settings() -> AtomicDocsSettings:
    return AtomicDocsSettings()
