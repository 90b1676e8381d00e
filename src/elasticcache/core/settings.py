"""Settings for the Elasticsearch cache backend.

Connection parameters, the target index and the behavioral knobs of the
backend come from ``ELASTICCACHE_*`` environment variables or a ``.env``
file, validated by pydantic at startup.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    A typo in the transport scheme or a negative lifetime must fail when
    the backend is built, not on the first cache miss.

    - **Pydantic validation:** Type-checked at startup
    - **Environment-driven:** ``ELASTICCACHE_HOST``, ``ELASTICCACHE_INDEX_NAME`` ...
    - **Sensible defaults:** ``http://localhost:9200/``, index ``t3cache``

Examples:
    >>> from elasticcache.core.settings import ElasticCacheSettings
    >>> settings = ElasticCacheSettings(host="es.internal", index_name="pages")
    >>> settings.url
    'http://es.internal:9200/'

Tags:
    settings, configuration, pydantic, environment, elasticcache
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ElasticCacheSettings(BaseSettings):
    """Elasticsearch cache backend configuration.

    Fields
    ──────
    host / port / path / transport : where the cluster lives
    index_name          : index holding one document per cache entry
    index_configuration : optional YAML file with settings/mappings/aliases
    default_lifetime    : seconds, used when ``set`` gets no lifetime (0 = never)
    request_timeout     : per-request network timeout in seconds
    ready_timeout       : bound on the wait for a freshly created index
    ready_poll_interval : delay between readiness polls
    scroll_size         : page size when scrolling tag lookups
    scroll_keepalive    : scroll context keep-alive (Elasticsearch time unit)
    refresh_on_write    : make writes and deletes visible before returning
    """

    model_config = SettingsConfigDict(
        env_prefix="ELASTICCACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Connection ───────────────────────────────────────────────
    host: str = "localhost"
    port: int = Field(default=9200, ge=1, le=65535)
    path: str = "/"
    transport: str = "http"

    # ── Index ────────────────────────────────────────────────────
    index_name: str = "t3cache"
    index_configuration: Path | None = Field(
        default=None,
        description="YAML file with the index settings/mappings/aliases",
    )

    # ── Cache behaviour ──────────────────────────────────────────
    default_lifetime: int = Field(default=3600, ge=0)
    refresh_on_write: bool = False

    # ── Timeouts ─────────────────────────────────────────────────
    request_timeout: float = Field(default=10.0, gt=0)
    ready_timeout: float = Field(default=30.0, gt=0)
    ready_poll_interval: float = Field(default=0.5, gt=0)

    # ── Scrolling ────────────────────────────────────────────────
    scroll_size: int = Field(default=1000, ge=1, le=10_000)
    scroll_keepalive: str = "1m"

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "console"

    @field_validator("transport")
    @classmethod
    def _check_transport(cls, value: str) -> str:
        value = value.lower()
        if value not in ("http", "https"):
            raise ValueError(f"transport must be 'http' or 'https', got {value!r}")
        return value

    @field_validator("path")
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        value = value.strip() or "/"
        if not value.startswith("/"):
            value = "/" + value
        return value

    @field_validator("index_name")
    @classmethod
    def _check_index_name(cls, value: str) -> str:
        if not value or value != value.lower() or value.startswith(("_", "-", "+")):
            raise ValueError(
                f"index_name must be a non-empty lower-case name not starting with _, - or +, got {value!r}"
            )
        return value

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        if value not in ("console", "json"):
            raise ValueError(f"log_format must be 'console' or 'json', got {value!r}")
        return value

    # ── Derived properties ───────────────────────────────────────

    @property
    def url(self) -> str:
        return f"{self.transport}://{self.host}:{self.port}{self.path}"


_settings_cache: dict[str, ElasticCacheSettings] = {}


def get_settings(*, _force_reload: bool = False) -> ElasticCacheSettings:
    """Load, validate, and cache an :class:`ElasticCacheSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = ElasticCacheSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = ["ElasticCacheSettings", "get_settings", "clear_settings_cache"]
