"""Environment-driven settings for the procedure layer.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    Every knob has a default that works for local development and can be
    overridden with a ``PROCLAYER_`` environment variable or a ``.env`` file.

Features:
    - **ProcLayerSettings:** logging, HTTP prefixes, naming warnings, discovery defaults
    - **get_settings():** cached process-wide instance
    - **is_production():** gates development-only diagnostics

Examples:
    >>> from proclayer.core.settings import ProcLayerSettings
    >>> ProcLayerSettings(api_prefix="/v2").api_prefix
    '/v2'

Tags:
    settings, configuration, pydantic, environment, proclayer
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProcLayerSettings(BaseSettings):
    """Settings shared by the builder, discovery loader, HTTP adapter and CLI.

    Order of precedence (highest → lowest):
        1. Environment variables (``PROCLAYER_API_PREFIX``, etc.)
        2. ``.env`` file
        3. Defaults below
    """

    model_config = SettingsConfigDict(
        env_prefix="PROCLAYER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Runtime ──────────────────────────────────────────────────
    environment: str = Field(default="development", description="development | production | test")
    debug: bool = Field(default=False, description="Include exception details in 500 responses")

    # ── Observability ────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Log level")
    log_format: Literal["json", "console", "auto"] = Field(default="auto", description="Log renderer")

    # ── HTTP adapter ─────────────────────────────────────────────
    api_title: str = Field(default="proclayer API", description="API description title")
    api_version: str = Field(default="0.1.0", description="API description version")
    api_prefix: str = Field(default="/api", description="URL prefix for REST routes")
    rpc_prefix: str = Field(default="/trpc", description="URL prefix for RPC routes")

    # ── Builder ──────────────────────────────────────────────────
    naming_warnings: Literal["warn", "strict", "off"] = Field(
        default="warn",
        description="Default naming-convention analysis mode for define_procedures",
    )

    # ── Discovery ────────────────────────────────────────────────
    discovery_recursive: bool = Field(default=False, description="Scan subdirectories")
    discovery_on_invalid_export: Literal["throw", "warn", "silent"] = Field(
        default="throw",
        description="Policy for exports that look like collections but are invalid",
    )

    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache(maxsize=1)
def get_settings() -> ProcLayerSettings:
    """Cached settings: loaded once per process."""
    return ProcLayerSettings()


__all__ = ["ProcLayerSettings", "get_settings"]
